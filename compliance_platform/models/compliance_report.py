"""
Stored compliance report model.
"""
import enum

from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey, LargeBinary, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, deferred

from compliance_platform.core.database import Base, enum_values


class ReportType(str, enum.Enum):
    COMPLIANCE_REPORT = "compliance_report"


class ComplianceReport(Base):
    """A generated report document kept for later download."""
    __tablename__ = "compliance_reports"

    id = Column(Integer, primary_key=True, index=True)
    assessment_id = Column(
        Integer,
        ForeignKey("compliance_assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    report_type = Column(
        Enum(ReportType, values_callable=enum_values, native_enum=False, length=50),
        nullable=False,
        default=ReportType.COMPLIANCE_REPORT,
    )
    report_format = Column(String(20), nullable=False, default="pdf")
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)
    # Loaded only on download
    file_data = deferred(Column(LargeBinary, nullable=False))
    overall_score = Column(Float, nullable=True)

    generated_by = Column(Integer, ForeignKey("api_keys.id", ondelete="SET NULL"), nullable=True)
    generated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    assessment = relationship("Assessment", back_populates="reports")
