"""
STRIDE threat modeling endpoints: assets, threat models, threats and
mitigations.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session

from compliance_platform.core.database import get_db
from compliance_platform.core.auth import require_role, APIClient
from compliance_platform.core.exceptions import ComplianceError
from compliance_platform.models.threat import StrideCategory
from compliance_platform.schemas.common import envelope
from compliance_platform.schemas.threat import (
    AssetCreateRequest,
    AssetResponse,
    MitigationCreateRequest,
    MitigationUpdateRequest,
    MitigationResponse,
    ThreatModelCreateRequest,
    ThreatModelResponse,
    ThreatCreateRequest,
    ThreatUpdateRequest,
    ThreatResponse,
)
from compliance_platform.services.activity_service import log_activity, ActivityAction, ResourceType
from compliance_platform.services.threat_service import ThreatModelingService, STRIDE_CATEGORIES

logger = logging.getLogger(__name__)

assets_router = APIRouter()
router = APIRouter()


# Assets

@assets_router.get("")
async def list_assets(
    organization_id: Optional[int] = Query(None),
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    assets = ThreatModelingService(db).get_assets(organization_id)
    return envelope([AssetResponse.model_validate(asset) for asset in assets], count=len(assets))


@assets_router.post("", status_code=status.HTTP_201_CREATED)
async def create_asset(
    payload: AssetCreateRequest,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    try:
        asset = ThreatModelingService(db).create_asset(payload.model_dump(exclude_unset=True))

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.ASSET_CREATE,
            resource_type=ResourceType.ASSET,
            resource_id=asset.id,
            details={"name": asset.asset_name, "type": asset.asset_type.value},
            request=request,
        )

        return envelope(AssetResponse.model_validate(asset), message="Asset created successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating asset: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create asset"
        )


@assets_router.delete("/{asset_id}")
async def delete_asset(
    asset_id: int,
    request: Request,
    client: APIClient = Depends(require_role("security_analyst")),
    db: Session = Depends(get_db),
):
    """Delete an asset. Responds 409 while threats reference it."""
    try:
        service = ThreatModelingService(db)
        removed = AssetResponse.model_validate(service.get_asset(asset_id))
        service.delete_asset(asset_id)

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.ASSET_DELETE,
            resource_type=ResourceType.ASSET,
            resource_id=asset_id,
            details={"name": removed.asset_name},
            request=request,
        )

        return envelope(removed, message="Asset deleted successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error deleting asset {asset_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete asset"
        )


# Threat models

@router.get("/stride-categories")
async def list_stride_categories(
    _client: APIClient = Depends(require_role("viewer")),
):
    return envelope(STRIDE_CATEGORIES, count=len(STRIDE_CATEGORIES))


@router.get("")
async def list_threat_models(
    organization_id: Optional[int] = Query(None),
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    models = ThreatModelingService(db).get_threat_models(organization_id)
    return envelope([ThreatModelResponse.model_validate(model) for model in models], count=len(models))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_threat_model(
    payload: ThreatModelCreateRequest,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    try:
        model = ThreatModelingService(db).create_threat_model(payload.model_dump(exclude_unset=True))

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.THREAT_MODEL_CREATE,
            resource_type=ResourceType.THREAT_MODEL,
            resource_id=model.id,
            details={"name": model.model_name},
            request=request,
        )

        return envelope(ThreatModelResponse.model_validate(model), message="Threat model created successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating threat model: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create threat model"
        )


@router.get("/{model_id}")
async def get_threat_model(
    model_id: int,
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """Threat model with its threats, highest score first."""
    try:
        service = ThreatModelingService(db)
        model = service.get_threat_model(model_id)
        data = ThreatModelResponse.model_validate(model).model_dump(mode="json")
        data["threats"] = [
            ThreatResponse.model_validate(threat).model_dump(mode="json")
            for threat in service.get_threats(model_id)
        ]
        return envelope(data)
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# Threats

@router.get("/{model_id}/threats")
async def list_threats(
    model_id: int,
    stride_category: Optional[StrideCategory] = Query(None, description="S, T, R, I, D or E"),
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    try:
        threats = ThreatModelingService(db).get_threats(model_id, stride_category)
        return envelope([ThreatResponse.model_validate(threat) for threat in threats], count=len(threats))
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{model_id}/threats", status_code=status.HTTP_201_CREATED)
async def create_threat(
    model_id: int,
    payload: ThreatCreateRequest,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    """Add a threat; risk score and level come from likelihood x impact."""
    try:
        threat = ThreatModelingService(db).create_threat(model_id, payload.model_dump(exclude_unset=True))

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.THREAT_CREATE,
            resource_type=ResourceType.THREAT,
            resource_id=threat.id,
            details={"threat_model_id": model_id, "risk_score": threat.risk_score},
            request=request,
        )

        return envelope(ThreatResponse.model_validate(threat), message="Threat created successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating threat in model {model_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create threat"
        )


@router.put("/{model_id}/threats/{threat_id}")
async def update_threat(
    model_id: int,
    threat_id: int,
    payload: ThreatUpdateRequest,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    try:
        updates = payload.model_dump(exclude_unset=True)
        threat = ThreatModelingService(db).update_threat(model_id, threat_id, updates)

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.THREAT_UPDATE,
            resource_type=ResourceType.THREAT,
            resource_id=threat_id,
            details={"fields": sorted(updates.keys())},
            request=request,
        )

        return envelope(ThreatResponse.model_validate(threat), message="Threat updated successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating threat {threat_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update threat"
        )


# Mitigations

@router.get("/{model_id}/threats/{threat_id}/mitigations")
async def list_mitigations(
    model_id: int,
    threat_id: int,
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """Mitigations of a threat, critical priority and in-progress work first."""
    try:
        mitigations = ThreatModelingService(db).get_mitigations(model_id, threat_id)
        return envelope(
            [MitigationResponse.model_validate(mitigation) for mitigation in mitigations],
            count=len(mitigations),
        )
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{model_id}/threats/{threat_id}/mitigations", status_code=status.HTTP_201_CREATED)
async def create_mitigation(
    model_id: int,
    threat_id: int,
    payload: MitigationCreateRequest,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    try:
        mitigation = ThreatModelingService(db).create_mitigation(
            model_id, threat_id, payload.model_dump(exclude_unset=True)
        )

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.MITIGATION_CREATE,
            resource_type=ResourceType.MITIGATION,
            resource_id=mitigation.id,
            details={
                "threat_model_id": model_id,
                "threat_id": threat_id,
                "strategy": mitigation.mitigation_strategy.value,
            },
            request=request,
        )

        return envelope(MitigationResponse.model_validate(mitigation), message="Mitigation created successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating mitigation for threat {threat_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create mitigation"
        )


@router.put("/{model_id}/threats/{threat_id}/mitigations/{mitigation_id}")
async def update_mitigation(
    model_id: int,
    threat_id: int,
    mitigation_id: int,
    payload: MitigationUpdateRequest,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    """Moving to implemented or verified stamps completed_at."""
    try:
        updates = payload.model_dump(exclude_unset=True)
        mitigation = ThreatModelingService(db).update_mitigation(model_id, threat_id, mitigation_id, updates)

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.MITIGATION_UPDATE,
            resource_type=ResourceType.MITIGATION,
            resource_id=mitigation_id,
            details={"threat_id": threat_id, "fields": sorted(updates.keys())},
            request=request,
        )

        return envelope(MitigationResponse.model_validate(mitigation), message="Mitigation updated successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating mitigation {mitigation_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update mitigation"
        )


@router.delete("/{model_id}/threats/{threat_id}/mitigations/{mitigation_id}")
async def delete_mitigation(
    model_id: int,
    threat_id: int,
    mitigation_id: int,
    request: Request,
    client: APIClient = Depends(require_role("security_analyst")),
    db: Session = Depends(get_db),
):
    try:
        service = ThreatModelingService(db)
        removed = MitigationResponse.model_validate(service.get_mitigation(model_id, threat_id, mitigation_id))
        service.delete_mitigation(model_id, threat_id, mitigation_id)

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.MITIGATION_DELETE,
            resource_type=ResourceType.MITIGATION,
            resource_id=mitigation_id,
            details={"threat_id": threat_id, "title": removed.mitigation_title},
            request=request,
        )

        return envelope(removed, message="Mitigation deleted successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error deleting mitigation {mitigation_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete mitigation"
        )


@router.get("/{model_id}/mitigations/statistics")
async def get_mitigation_statistics(
    model_id: int,
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    try:
        return envelope(ThreatModelingService(db).get_mitigation_statistics(model_id))
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
