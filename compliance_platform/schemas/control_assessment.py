"""Schemas for control assessments."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from compliance_platform.models.control_assessment import ImplementationStatus, MaturityLevel


class ControlAssessmentRequest(BaseModel):
    """
    Request schema for assessing one control.

    The control is identified either by ``control_id`` or by its code in
    ``subcategory_id`` (e.g. "PR.AC-1"). ``risk_likelihood``/``risk_impact``
    override the factors of a risk raised by a non-compliant status.
    """
    control_id: Optional[int] = None
    subcategory_id: Optional[str] = Field(None, max_length=50)
    status: ImplementationStatus
    questionnaire_response: Optional[str] = Field(None, max_length=5000)
    comments: Optional[str] = Field(None, max_length=5000)
    remediation_plan: Optional[str] = Field(None, max_length=5000)
    maturity_level: Optional[MaturityLevel] = None
    compliance_score: Optional[float] = Field(None, ge=0, le=100)
    evidence_count: Optional[int] = Field(None, ge=0)
    risk_likelihood: Optional[int] = Field(None, ge=1, le=5)
    risk_impact: Optional[int] = Field(None, ge=1, le=5)
    risk_category: Optional[str] = None

    @model_validator(mode="after")
    def require_control_reference(self):
        if self.control_id is None and not self.subcategory_id:
            raise ValueError("Either control_id or subcategory_id is required")
        return self


class ControlAssessmentResponse(BaseModel):
    id: int
    assessment_id: int
    control_id: int
    control_code: Optional[str] = None
    control_name: Optional[str] = None
    implementation_status: ImplementationStatus
    maturity_level: Optional[MaturityLevel] = None
    compliance_score: Optional[float] = None
    questionnaire_response: Optional[str] = None
    comments: Optional[str] = None
    recommendations: Optional[str] = None
    evidence_count: int = 0
    assessed_by: Optional[int] = None
    assessed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_model(cls, record) -> "ControlAssessmentResponse":
        response = cls.model_validate(record)
        if record.control is not None:
            response.control_code = record.control.control_code
            response.control_name = record.control.control_name
        return response


class ControlAssessmentBulkRequest(BaseModel):
    """Request schema for assessing several controls of one assessment."""
    controls: List[ControlAssessmentRequest] = Field(..., min_length=1, max_length=500)
