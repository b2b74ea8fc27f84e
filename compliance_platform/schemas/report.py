"""Schemas for stored compliance reports."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from compliance_platform.models.compliance_report import ReportType


class ComplianceReportResponse(BaseModel):
    """Report metadata; the document itself is served by the download endpoint."""
    id: int
    assessment_id: int
    report_type: ReportType
    report_format: str
    file_name: str
    file_size: int
    overall_score: Optional[float] = None
    generated_by: Optional[int] = None
    generated_at: datetime

    model_config = {"from_attributes": True}
