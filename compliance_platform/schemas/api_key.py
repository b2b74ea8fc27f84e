"""Schemas for API key management."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from compliance_platform.core.roles import normalize_role


class APIKeyCreateRequest(BaseModel):
    """Request schema for creating a new API key."""
    name: str = Field(..., min_length=1, max_length=255, description="Label/name for the API key")
    role: str = Field(..., description="Role: viewer, operator, security_analyst, auditor, or admin")

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        return normalize_role(v)


class APIKeyUpdateRequest(BaseModel):
    """Request schema for updating an API key."""
    label: Optional[str] = Field(None, max_length=255)
    role: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return normalize_role(v)


class APIKeyResponse(BaseModel):
    """Safe fields of an API key (hash masked)."""
    id: int
    name: Optional[str] = None
    role: str
    is_active: bool
    created_at: datetime
    last_used_at: Optional[datetime] = None
    key_masked: Optional[str] = None

    @classmethod
    def from_model(cls, api_key) -> "APIKeyResponse":
        return cls(
            id=api_key.id,
            name=api_key.label,
            role=api_key.role,
            is_active=api_key.is_active,
            created_at=api_key.created_at,
            last_used_at=api_key.last_used_at,
            key_masked=f"{api_key.key_hash[:8]}..." if len(api_key.key_hash) > 8 else "***",
        )


class APIKeyCreateResponse(BaseModel):
    """Creation response, the only time the raw key is returned."""
    id: int
    name: Optional[str] = None
    role: str
    is_active: bool
    created_at: datetime
    key: str
