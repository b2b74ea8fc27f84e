"""
API key management endpoints.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from compliance_platform.core.database import get_db
from compliance_platform.core.auth import (
    require_role,
    get_current_api_client,
    generate_api_key,
    hash_api_key,
    APIClient,
)
from compliance_platform.models.api_key import APIKey
from compliance_platform.schemas.common import envelope
from compliance_platform.schemas.api_key import (
    APIKeyCreateRequest,
    APIKeyCreateResponse,
    APIKeyResponse,
    APIKeyUpdateRequest,
)
from compliance_platform.services.activity_service import log_activity, ActivityAction, ResourceType

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_api_keys(
    _client: APIClient = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    """List all API keys (admin only). Hashes are masked."""
    keys = db.query(APIKey).order_by(APIKey.created_at.desc(), APIKey.id.desc()).all()
    items = [APIKeyResponse.from_model(key) for key in keys]
    logger.info(f"Listed {len(items)} API keys")
    return envelope(items, count=len(items))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_api_key(
    payload: APIKeyCreateRequest,
    request: Request,
    client: APIClient = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    """
    Create a new API key (admin only).

    The raw key is returned once; only its salted hash is stored.
    """
    try:
        new_key = generate_api_key()
        key_hash = hash_api_key(new_key)

        if db.query(APIKey).filter(APIKey.key_hash == key_hash).first():
            new_key = generate_api_key()
            key_hash = hash_api_key(new_key)

        db_key = APIKey(
            key_hash=key_hash,
            label=payload.name,
            role=payload.role,
            is_active=True,
        )
        db.add(db_key)
        db.commit()
        db.refresh(db_key)

        logger.info(f"Created API key: id={db_key.id}, label={payload.name}, role={payload.role}")

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.API_KEY_CREATE,
            resource_type=ResourceType.API_KEY,
            resource_id=db_key.id,
            details={"label": payload.name, "role": payload.role},
            request=request,
        )

        return envelope(
            APIKeyCreateResponse(
                id=db_key.id,
                name=db_key.label,
                role=db_key.role,
                is_active=db_key.is_active,
                created_at=db_key.created_at,
                key=new_key,
            ),
            message="API key created successfully. Store it now; it will not be shown again.",
        )
    except Exception as e:
        logger.error(f"Error creating API key: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create API key"
        )


@router.patch("/{key_id}")
async def update_api_key(
    key_id: int,
    payload: APIKeyUpdateRequest,
    request: Request,
    client: APIClient = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    """Update label, role or active flag of an API key (admin only)."""
    try:
        db_key = db.query(APIKey).filter(APIKey.id == key_id).first()
        if not db_key:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"API key with id {key_id} not found"
            )

        changes = payload.model_dump(exclude_none=True)
        for key, value in changes.items():
            setattr(db_key, key, value)
        db.commit()
        db.refresh(db_key)

        logger.info(f"Updated API key: id={key_id}")

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.API_KEY_UPDATE,
            resource_type=ResourceType.API_KEY,
            resource_id=key_id,
            details=changes,
            request=request,
        )

        return envelope(APIKeyResponse.from_model(db_key), message="API key updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating API key: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update API key"
        )


@router.delete("/{key_id}")
async def delete_api_key(
    key_id: int,
    request: Request,
    client: APIClient = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    """Soft-delete an API key (admin only): sets is_active=False."""
    try:
        db_key = db.query(APIKey).filter(APIKey.id == key_id).first()
        if not db_key:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"API key with id {key_id} not found"
            )

        db_key.is_active = False
        db.commit()

        logger.info(f"Deactivated API key: id={key_id}")

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.API_KEY_DEACTIVATE,
            resource_type=ResourceType.API_KEY,
            resource_id=key_id,
            details={},
            request=request,
        )

        return envelope({"id": key_id, "is_active": False}, message="API key deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting API key: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete API key"
        )


auth_router = APIRouter()


@auth_router.get("/me")
async def get_current_user_info(
    client: APIClient = Depends(get_current_api_client),
):
    """Role and source of the calling key."""
    return envelope({
        "role": client.role,
        "source": client.source,
        "is_admin": client.role == "admin",
        "api_key_id": client.api_key_id,
    })
