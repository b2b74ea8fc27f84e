"""
API key authentication and RBAC for protected endpoints.
"""
import hashlib
import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException, status, Security, Depends
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from compliance_platform.core.config import settings
from compliance_platform.core.database import get_db
from compliance_platform.core.roles import Role, normalize_role, has_permission
from compliance_platform.models.api_key import APIKey

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


class APIClient:
    """Simple object representing an authenticated API client."""
    def __init__(self, source: str, role: str, api_key_id: Optional[int] = None):
        self.source = source  # "static" or "db"
        self.role = normalize_role(role)
        self.api_key_id = api_key_id  # None for the static key


def generate_api_key() -> str:
    """Generate a secure random API key."""
    return f"cp_{secrets.token_urlsafe(32)}"


def hash_api_key(key: str) -> str:
    """Hash an API key using SHA-256 with the configured salt."""
    return hashlib.sha256(f"{settings.API_KEY_SALT}{key}".encode()).hexdigest()


def verify_api_key_hash(raw_key: str, key_hash: str) -> bool:
    """Verify a raw API key against its hash."""
    return secrets.compare_digest(hash_api_key(raw_key), key_hash)


def get_current_api_client(
    api_key: Optional[str] = Security(api_key_header),
    db: Session = Depends(get_db)
) -> APIClient:
    """
    Dependency to verify API key and return API client info.

    Accepts either the static key from settings (admin) or an active
    database-backed key. When API_KEY is not configured, authentication is
    disabled and every caller is treated as admin (dev/test mode).

    Raises:
        HTTPException: 401 if the key is missing or invalid
    """
    if not settings.API_KEY or settings.API_KEY.strip() == "":
        logger.debug("API_KEY not configured - authentication is disabled")
        return APIClient(source="static", role=Role.ADMIN.value)

    if not api_key:
        logger.warning("API key missing from request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if secrets.compare_digest(api_key, settings.API_KEY):
        logger.debug("Authenticated with static API key")
        return APIClient(source="static", role=Role.ADMIN.value)

    db_key = (
        db.query(APIKey)
        .filter(APIKey.key_hash == hash_api_key(api_key), APIKey.is_active.is_(True))
        .first()
    )

    if db_key:
        db_key.last_used_at = datetime.now(timezone.utc)
        db.commit()

        normalized_role = normalize_role(db_key.role)
        logger.debug(f"Authenticated with DB API key: {db_key.label or db_key.id} (role: {normalized_role})")
        return APIClient(source="db", role=normalized_role, api_key_id=db_key.id)

    logger.warning(f"Invalid API key attempted: {api_key[:4]}...")
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid API key",
        headers={"WWW-Authenticate": "ApiKey"},
    )


def require_role(min_role: str = "viewer"):
    """
    Dependency factory for role-based access control.

    Args:
        min_role: Minimum required role (viewer, operator, security_analyst, auditor, admin)

    Returns:
        Dependency function that checks role permissions
    """
    def check_role(client: APIClient = Depends(get_current_api_client)) -> APIClient:
        if not has_permission(client.role, min_role):
            normalized_min = normalize_role(min_role)
            logger.warning(
                f"Access denied: client role '{client.role}' does not meet minimum requirement '{normalized_min}'"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {normalized_min}",
            )

        return client

    return check_role
