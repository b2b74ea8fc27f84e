"""
Risk register endpoints.
"""
import logging
import time
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from compliance_platform.core.database import get_db
from compliance_platform.core.auth import require_role, APIClient
from compliance_platform.core.exceptions import ComplianceError
from compliance_platform.schemas.common import envelope
from compliance_platform.schemas.risk import RiskCreateRequest, RiskUpdateRequest, RiskResponse
from compliance_platform.services.activity_service import log_activity, ActivityAction, ResourceType
from compliance_platform.services.risk_service import RiskRegisterService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_risks(
    assessment_id: Optional[int] = Query(None, description="Only risks raised by this assessment"),
    risk_level: Optional[str] = Query(None, description="Low, Medium, High or Critical (case-insensitive)"),
    mitigation_status: Optional[str] = Query(None, description="open, in_progress, mitigated, accepted or transferred"),
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """List risks, newest first. Filters are AND-combined."""
    try:
        risks = RiskRegisterService(db).get_all(
            assessment_id=assessment_id,
            risk_level=risk_level,
            mitigation_status=mitigation_status,
        )
        return envelope(
            [RiskResponse.model_validate(risk) for risk in risks],
            count=len(risks),
        )
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error listing risks: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve risks"
        )


@router.get("/statistics")
async def get_risk_statistics(
    assessment_id: Optional[int] = Query(None),
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """
    Risk counts by level and by mitigation bucket.

    Returns:
        {total_risks, by_level: {low, medium, high, critical},
         by_status: {not_started, in_progress, completed, deferred}}
    """
    try:
        return envelope(RiskRegisterService(db).get_statistics(assessment_id))
    except Exception as e:
        logger.error(f"Error computing risk statistics: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute risk statistics"
        )


@router.get("/export")
async def export_risks(
    request: Request,
    assessment_id: Optional[int] = Query(None),
    risk_level: Optional[str] = Query(None),
    mitigation_status: Optional[str] = Query(None),
    client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """Download the filtered risk register as CSV."""
    try:
        csv_text = RiskRegisterService(db).export_to_csv(
            assessment_id=assessment_id,
            risk_level=risk_level,
            mitigation_status=mitigation_status,
        )
        filename = f"risk-register-{int(time.time() * 1000)}.csv"

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.RISK_EXPORT,
            resource_type=ResourceType.RISK,
            details={
                "assessment_id": assessment_id,
                "risk_level": risk_level,
                "mitigation_status": mitigation_status,
            },
            request=request,
        )

        return Response(
            content=csv_text,
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error exporting risks: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to export risks"
        )


@router.get("/{risk_id}")
async def get_risk(
    risk_id: int,
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    try:
        risk = RiskRegisterService(db).get_by_id(risk_id)
        return envelope(RiskResponse.model_validate(risk))
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error retrieving risk {risk_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve risk"
        )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_risk(
    payload: RiskCreateRequest,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    """
    Register a risk.

    Score and level are derived from likelihood x impact (defaults 3 x 3);
    residual score and level are derived when both residual factors are given.
    """
    try:
        risk = RiskRegisterService(db).create(payload.model_dump(exclude_unset=True))

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.RISK_CREATE,
            resource_type=ResourceType.RISK,
            resource_id=risk.id,
            details={
                "risk_id": risk.risk_id,
                "risk_score": risk.risk_score,
                "risk_level": risk.risk_level.value,
            },
            request=request,
        )

        return envelope(RiskResponse.model_validate(risk), message="Risk created successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating risk: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create risk"
        )


@router.put("/{risk_id}")
async def update_risk(
    risk_id: int,
    payload: RiskUpdateRequest,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    """Partially update a risk. Only fields present in the body change."""
    try:
        updates = payload.model_dump(exclude_unset=True)
        risk = RiskRegisterService(db).update(risk_id, updates)

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.RISK_UPDATE,
            resource_type=ResourceType.RISK,
            resource_id=risk.id,
            details={"fields": sorted(updates.keys())},
            request=request,
        )

        return envelope(RiskResponse.model_validate(risk), message="Risk updated successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating risk {risk_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update risk"
        )


@router.delete("/{risk_id}")
async def delete_risk(
    risk_id: int,
    request: Request,
    client: APIClient = Depends(require_role("security_analyst")),
    db: Session = Depends(get_db),
):
    """Delete a risk; the removed entry is echoed back."""
    try:
        service = RiskRegisterService(db)
        removed = RiskResponse.model_validate(service.get_by_id(risk_id))
        service.delete(risk_id)

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.RISK_DELETE,
            resource_type=ResourceType.RISK,
            resource_id=risk_id,
            details={"risk_id": removed.risk_id},
            request=request,
        )

        return envelope(removed, message="Risk deleted successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error deleting risk {risk_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete risk"
        )
