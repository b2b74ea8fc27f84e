"""Schemas for STRIDE threat modeling."""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field

from compliance_platform.models.risk import RiskLevel
from compliance_platform.models.threat import (
    AssetType,
    Criticality,
    EffectivenessRating,
    MitigationImplementationStatus,
    MitigationStrategy,
    RatingLevel,
    StrideCategory,
    ThreatModelStatus,
    ThreatStatus,
)


class AssetCreateRequest(BaseModel):
    organization_id: int
    asset_name: str = Field(..., min_length=1, max_length=255)
    asset_type: AssetType
    description: Optional[str] = None
    criticality: Optional[Criticality] = None
    owner: Optional[str] = Field(None, max_length=255)


class AssetResponse(BaseModel):
    id: int
    organization_id: int
    asset_name: str
    asset_type: AssetType
    description: Optional[str] = None
    criticality: Criticality
    owner: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ThreatModelCreateRequest(BaseModel):
    organization_id: int
    model_name: str = Field(..., min_length=1, max_length=255)
    model_version: Optional[str] = Field(None, max_length=50)
    system_name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    scope: Optional[str] = None
    status: Optional[ThreatModelStatus] = None


class ThreatModelResponse(BaseModel):
    id: int
    organization_id: int
    model_name: str
    model_version: str
    system_name: Optional[str] = None
    description: Optional[str] = None
    scope: Optional[str] = None
    status: ThreatModelStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ThreatCreateRequest(BaseModel):
    """Likelihood and impact default to medium."""
    stride_category: StrideCategory
    threat_title: str = Field(..., min_length=1, max_length=500)
    threat_description: Optional[str] = None
    impact_description: Optional[str] = None
    asset_id: Optional[int] = None
    likelihood: Optional[RatingLevel] = None
    impact: Optional[RatingLevel] = None
    status: Optional[ThreatStatus] = None


class ThreatUpdateRequest(BaseModel):
    stride_category: Optional[StrideCategory] = None
    threat_title: Optional[str] = Field(None, max_length=500)
    threat_description: Optional[str] = None
    impact_description: Optional[str] = None
    asset_id: Optional[int] = None
    likelihood: Optional[RatingLevel] = None
    impact: Optional[RatingLevel] = None
    status: Optional[ThreatStatus] = None


class ThreatResponse(BaseModel):
    id: int
    threat_model_id: int
    asset_id: Optional[int] = None
    stride_category: StrideCategory
    threat_title: str
    threat_description: Optional[str] = None
    impact_description: Optional[str] = None
    likelihood: RatingLevel
    impact: RatingLevel
    risk_score: int
    risk_level: RiskLevel
    status: ThreatStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MitigationCreateRequest(BaseModel):
    """Status defaults to proposed, priority to medium."""
    mitigation_title: str = Field(..., min_length=1, max_length=500)
    mitigation_description: Optional[str] = None
    mitigation_strategy: MitigationStrategy
    implementation_status: Optional[MitigationImplementationStatus] = None
    priority: Optional[Criticality] = None
    assigned_to: Optional[str] = Field(None, max_length=255)
    estimated_effort: Optional[str] = Field(None, max_length=100)
    cost_estimate: Optional[float] = Field(None, ge=0)
    implementation_date: Optional[date] = None
    verification_method: Optional[str] = None
    effectiveness_rating: Optional[EffectivenessRating] = None


class MitigationUpdateRequest(BaseModel):
    mitigation_title: Optional[str] = Field(None, max_length=500)
    mitigation_description: Optional[str] = None
    mitigation_strategy: Optional[MitigationStrategy] = None
    implementation_status: Optional[MitigationImplementationStatus] = None
    priority: Optional[Criticality] = None
    assigned_to: Optional[str] = Field(None, max_length=255)
    estimated_effort: Optional[str] = Field(None, max_length=100)
    cost_estimate: Optional[float] = Field(None, ge=0)
    implementation_date: Optional[date] = None
    verification_method: Optional[str] = None
    effectiveness_rating: Optional[EffectivenessRating] = None


class MitigationResponse(BaseModel):
    id: int
    threat_id: int
    mitigation_title: str
    mitigation_description: Optional[str] = None
    mitigation_strategy: MitigationStrategy
    implementation_status: MitigationImplementationStatus
    priority: Criticality
    assigned_to: Optional[str] = None
    estimated_effort: Optional[str] = None
    cost_estimate: Optional[float] = None
    implementation_date: Optional[date] = None
    verification_method: Optional[str] = None
    effectiveness_rating: Optional[EffectivenessRating] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
