"""
Organization endpoints.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from compliance_platform.core.database import get_db
from compliance_platform.core.auth import require_role, APIClient
from compliance_platform.core.exceptions import ComplianceError
from compliance_platform.schemas.common import envelope
from compliance_platform.schemas.organization import OrganizationCreateRequest, OrganizationResponse
from compliance_platform.services.activity_service import log_activity, ActivityAction, ResourceType
from compliance_platform.services.assessment_service import OrganizationService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_organizations(
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    organizations = OrganizationService(db).get_all()
    return envelope(
        [OrganizationResponse.model_validate(org) for org in organizations],
        count=len(organizations),
    )


@router.get("/{organization_id}")
async def get_organization(
    organization_id: int,
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    try:
        organization = OrganizationService(db).get_by_id(organization_id)
        return envelope(OrganizationResponse.model_validate(organization))
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_organization(
    payload: OrganizationCreateRequest,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    try:
        organization = OrganizationService(db).create(payload.model_dump())

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.ORGANIZATION_CREATE,
            resource_type=ResourceType.ORGANIZATION,
            resource_id=organization.id,
            details={"name": organization.name},
            request=request,
        )

        return envelope(OrganizationResponse.model_validate(organization), message="Organization created successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating organization: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create organization"
        )
