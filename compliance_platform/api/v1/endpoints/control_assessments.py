"""
Control assessment endpoints, nested under an assessment.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session

from compliance_platform.core.database import get_db
from compliance_platform.core.auth import require_role, APIClient
from compliance_platform.core.exceptions import ComplianceError
from compliance_platform.models.control_assessment import ImplementationStatus
from compliance_platform.schemas.common import envelope
from compliance_platform.schemas.control_assessment import (
    ControlAssessmentBulkRequest,
    ControlAssessmentRequest,
    ControlAssessmentResponse,
)
from compliance_platform.services.activity_service import log_activity, ActivityAction, ResourceType
from compliance_platform.services.control_assessment_service import ControlAssessmentService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{assessment_id}/controls", status_code=status.HTTP_201_CREATED)
async def assess_control(
    assessment_id: int,
    payload: ControlAssessmentRequest,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    """
    Create or update the assessment of one control.

    A non-compliant status (not_implemented, at_risk, non_compliant) raises or
    refreshes the linked risk register entry; moving back to a compliant
    status marks that entry mitigated. ``risk_register_entry`` carries the
    linked risk_id, or null when there is none.
    """
    try:
        record, risk = ControlAssessmentService(db).assess_control(
            assessment_id,
            payload.model_dump(exclude_unset=True),
            assessed_by=client.api_key_id,
        )
        risk_entry = risk.risk_id if risk is not None else None

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.CONTROL_ASSESS,
            resource_type=ResourceType.CONTROL_ASSESSMENT,
            resource_id=record.id,
            details={
                "assessment_id": assessment_id,
                "control_id": record.control_id,
                "status": record.implementation_status.value,
                "risk_register_entry": risk_entry,
            },
            request=request,
        )

        data = ControlAssessmentResponse.from_model(record).model_dump(mode="json")
        data["risk_register_entry"] = risk_entry
        return envelope(data, message="Control assessment saved successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error assessing control in assessment {assessment_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save control assessment"
        )


@router.post("/{assessment_id}/controls/bulk")
async def bulk_assess_controls(
    assessment_id: int,
    payload: ControlAssessmentBulkRequest,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    """
    Assess several controls at once.

    Every item runs the same risk trigger as a single assessment. Items that
    fail (e.g. unknown control) are listed under ``failed``; ``success`` is
    false when any item failed.
    """
    try:
        result = ControlAssessmentService(db).bulk_assess(
            assessment_id,
            [item.model_dump(exclude_unset=True) for item in payload.controls],
            assessed_by=client.api_key_id,
        )

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.CONTROL_BULK_ASSESS,
            resource_type=ResourceType.ASSESSMENT,
            resource_id=assessment_id,
            details={
                "total_requested": result["total_requested"],
                "successful_count": result["successful_count"],
                "failed_count": result["failed_count"],
            },
            request=request,
        )

        return envelope(
            result,
            message=(
                f"Bulk assessment completed. {result['successful_count']} successful, "
                f"{result['failed_count']} failed."
            ),
            success=result["failed_count"] == 0,
        )
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error in bulk assessment for assessment {assessment_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process bulk control assessment"
        )


@router.get("/{assessment_id}/controls")
async def list_control_assessments(
    assessment_id: int,
    status_filter: Optional[ImplementationStatus] = Query(None, alias="status"),
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    try:
        records = ControlAssessmentService(db).get_all(assessment_id, status=status_filter)
        return envelope(
            [ControlAssessmentResponse.from_model(record) for record in records],
            count=len(records),
        )
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{assessment_id}/controls/statistics")
async def get_control_statistics(
    assessment_id: int,
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    try:
        return envelope(ControlAssessmentService(db).get_statistics(assessment_id))
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{assessment_id}/controls/{control_assessment_id}")
async def get_control_assessment(
    assessment_id: int,
    control_assessment_id: int,
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    try:
        record = ControlAssessmentService(db).get_by_id(assessment_id, control_assessment_id)
        return envelope(ControlAssessmentResponse.from_model(record))
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{assessment_id}/controls/{control_assessment_id}")
async def delete_control_assessment(
    assessment_id: int,
    control_assessment_id: int,
    request: Request,
    client: APIClient = Depends(require_role("security_analyst")),
    db: Session = Depends(get_db),
):
    """Delete a control assessment. Risks it raised stay in the register."""
    try:
        service = ControlAssessmentService(db)
        removed = ControlAssessmentResponse.from_model(service.get_by_id(assessment_id, control_assessment_id))
        service.delete(assessment_id, control_assessment_id)

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.CONTROL_ASSESSMENT_DELETE,
            resource_type=ResourceType.CONTROL_ASSESSMENT,
            resource_id=control_assessment_id,
            details={"assessment_id": assessment_id, "control_id": removed.control_id},
            request=request,
        )

        return envelope(removed, message="Control assessment deleted successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error deleting control assessment {control_assessment_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete control assessment"
        )
