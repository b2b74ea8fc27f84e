"""
Control assessment model: the response recorded for one control within an assessment.
"""
import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Float, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from compliance_platform.core.database import Base, enum_values


class ImplementationStatus(str, enum.Enum):
    """Implementation status recorded for a control."""
    NOT_IMPLEMENTED = "not_implemented"
    PARTIALLY_IMPLEMENTED = "partially_implemented"
    LARGELY_IMPLEMENTED = "largely_implemented"
    FULLY_IMPLEMENTED = "fully_implemented"
    NOT_APPLICABLE = "not_applicable"
    AT_RISK = "at_risk"
    NON_COMPLIANT = "non_compliant"


# Statuses that open (or keep open) a risk register entry
NON_COMPLIANT_STATUSES = frozenset({
    ImplementationStatus.NOT_IMPLEMENTED,
    ImplementationStatus.AT_RISK,
    ImplementationStatus.NON_COMPLIANT,
})


class MaturityLevel(str, enum.Enum):
    """CMMI-style maturity levels."""
    INITIAL = "initial"
    MANAGED = "managed"
    DEFINED = "defined"
    QUANTITATIVELY_MANAGED = "quantitatively_managed"
    OPTIMIZING = "optimizing"


class ControlAssessment(Base):
    """Assessment result for a single control."""
    __tablename__ = "compliance_control_assessments"
    __table_args__ = (
        UniqueConstraint("assessment_id", "control_id", name="uq_control_assessment_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    assessment_id = Column(
        Integer, ForeignKey("compliance_assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    control_id = Column(Integer, ForeignKey("nist_csf_controls.id", ondelete="CASCADE"), nullable=False, index=True)

    implementation_status = Column(
        Enum(ImplementationStatus, values_callable=enum_values, native_enum=False, length=50),
        nullable=False,
        default=ImplementationStatus.NOT_IMPLEMENTED,
        index=True,
    )
    maturity_level = Column(
        Enum(MaturityLevel, values_callable=enum_values, native_enum=False, length=50),
        nullable=True,
    )
    compliance_score = Column(Float, nullable=True)  # 0-100

    questionnaire_response = Column(Text, nullable=True)
    comments = Column(Text, nullable=True)
    recommendations = Column(Text, nullable=True)  # Remediation plan

    # Evidence files live outside this service; only the count is tracked
    evidence_count = Column(Integer, nullable=False, default=0)

    assessed_by = Column(Integer, ForeignKey("api_keys.id"), nullable=True)
    assessed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    assessment = relationship("Assessment", back_populates="control_assessments")
    control = relationship("CsfControl")
