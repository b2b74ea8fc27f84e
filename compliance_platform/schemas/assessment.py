"""Schemas for compliance assessments."""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field

from compliance_platform.models.assessment import AssessmentStatus


class AssessmentCreateRequest(BaseModel):
    """Request schema for starting a new assessment."""
    organization_id: int
    assessment_name: str = Field(..., min_length=1, max_length=255)
    assessment_version: Optional[str] = Field(None, max_length=50)
    framework_version: Optional[str] = Field(None, max_length=50, description="Defaults to NIST CSF v1.1")
    status: Optional[AssessmentStatus] = None
    scope: Optional[str] = None
    assessment_date: Optional[date] = None
    due_date: Optional[date] = None


class AssessmentUpdateRequest(BaseModel):
    assessment_name: Optional[str] = Field(None, max_length=255)
    assessment_version: Optional[str] = Field(None, max_length=50)
    framework_version: Optional[str] = Field(None, max_length=50)
    status: Optional[AssessmentStatus] = None
    scope: Optional[str] = None
    assessment_date: Optional[date] = None
    due_date: Optional[date] = None


class AssessmentResponse(BaseModel):
    id: int
    organization_id: int
    assessment_name: str
    assessment_version: str
    framework_version: str
    status: AssessmentStatus
    scope: Optional[str] = None
    assessment_date: Optional[date] = None
    due_date: Optional[date] = None
    completion_percentage: float
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
