"""Schemas for the risk register."""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field

from compliance_platform.models.risk import RiskCategory, RiskLevel, MitigationStatus


class RiskCreateRequest(BaseModel):
    """Request schema for registering a risk. Only the description is required."""
    risk_description: str = Field(..., min_length=1, description="What could go wrong")
    assessment_id: Optional[int] = None
    control_id: Optional[int] = None
    subcategory_id: Optional[str] = Field(None, max_length=50, description="Control code, e.g. PR.AC-1")
    risk_category: Optional[str] = Field(None, description="Strategic, Operational, Financial, Compliance, Reputational or Technology")
    likelihood: Optional[int] = Field(None, ge=1, le=5, description="1-5, defaults to 3")
    impact: Optional[int] = Field(None, ge=1, le=5, description="1-5, defaults to 3")
    mitigation_strategy: Optional[str] = None
    mitigation_owner: Optional[str] = Field(None, max_length=255)
    mitigation_deadline: Optional[date] = None
    mitigation_status: Optional[str] = Field(None, description="open, in_progress, mitigated, accepted or transferred")
    residual_likelihood: Optional[int] = Field(None, ge=1, le=5)
    residual_impact: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = None
    comments: Optional[str] = None


class RiskUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are applied."""
    risk_description: Optional[str] = None
    risk_category: Optional[str] = None
    likelihood: Optional[int] = Field(None, ge=1, le=5)
    impact: Optional[int] = Field(None, ge=1, le=5)
    mitigation_strategy: Optional[str] = None
    mitigation_owner: Optional[str] = Field(None, max_length=255)
    mitigation_deadline: Optional[date] = None
    mitigation_status: Optional[str] = None
    residual_likelihood: Optional[int] = Field(None, ge=1, le=5)
    residual_impact: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = None
    comments: Optional[str] = None
    # Accepted only so that attempts to re-link a risk are rejected explicitly
    assessment_id: Optional[int] = None
    control_id: Optional[int] = None
    subcategory_id: Optional[str] = None
    risk_id: Optional[str] = None


class RiskResponse(BaseModel):
    """Response schema for a risk register entry."""
    id: int
    risk_id: str
    assessment_id: Optional[int] = None
    control_id: Optional[int] = None
    subcategory_id: Optional[str] = None
    risk_description: str
    risk_category: Optional[RiskCategory] = None
    likelihood: int
    impact: int
    risk_score: int
    risk_level: RiskLevel
    mitigation_strategy: Optional[str] = None
    mitigation_owner: Optional[str] = None
    mitigation_deadline: Optional[date] = None
    mitigation_status: MitigationStatus
    residual_likelihood: Optional[int] = None
    residual_impact: Optional[int] = None
    residual_risk_score: Optional[int] = None
    residual_risk_level: Optional[RiskLevel] = None
    notes: Optional[str] = None
    comments: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
