"""
Risk register model.
"""
import enum

from sqlalchemy import Column, Integer, String, DateTime, Date, Text, ForeignKey, Enum, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from compliance_platform.core.database import Base, enum_values


class RiskLevel(str, enum.Enum):
    """Qualitative risk level bucketed from the 1-25 score."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class RiskCategory(str, enum.Enum):
    """Risk categories."""
    STRATEGIC = "Strategic"
    OPERATIONAL = "Operational"
    FINANCIAL = "Financial"
    COMPLIANCE = "Compliance"
    REPUTATIONAL = "Reputational"
    TECHNOLOGY = "Technology"


class MitigationStatus(str, enum.Enum):
    """Mitigation workflow states."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    MITIGATED = "mitigated"
    ACCEPTED = "accepted"
    TRANSFERRED = "transferred"


_level_enum = Enum(RiskLevel, values_callable=enum_values, native_enum=False, length=50)


class Risk(Base):
    """One identified compliance or security gap."""
    __tablename__ = "risk_register"
    __table_args__ = (
        CheckConstraint("likelihood BETWEEN 1 AND 5", name="ck_risk_likelihood"),
        CheckConstraint("impact BETWEEN 1 AND 5", name="ck_risk_impact"),
        CheckConstraint("residual_likelihood BETWEEN 1 AND 5", name="ck_risk_residual_likelihood"),
        CheckConstraint("residual_impact BETWEEN 1 AND 5", name="ck_risk_residual_impact"),
    )

    id = Column(Integer, primary_key=True, index=True)
    risk_id = Column(String(100), unique=True, nullable=False, index=True)  # RISK-<ts36>-<rand>

    # Links to the control assessment that raised the risk (never cleared)
    assessment_id = Column(Integer, ForeignKey("compliance_assessments.id"), nullable=True, index=True)
    control_id = Column(Integer, ForeignKey("nist_csf_controls.id"), nullable=True, index=True)
    subcategory_id = Column(String(50), nullable=True)  # Control code, e.g. PR.AC-1

    risk_description = Column(Text, nullable=False)
    risk_category = Column(
        Enum(RiskCategory, values_callable=enum_values, native_enum=False, length=50),
        nullable=True,
    )

    # Initial scoring
    likelihood = Column(Integer, nullable=False)
    impact = Column(Integer, nullable=False)
    risk_score = Column(Integer, nullable=False)
    risk_level = Column(_level_enum, nullable=False, index=True)

    # Mitigation
    mitigation_strategy = Column(Text, nullable=True)
    mitigation_owner = Column(String(255), nullable=True)
    mitigation_deadline = Column(Date, nullable=True)
    mitigation_status = Column(
        Enum(MitigationStatus, values_callable=enum_values, native_enum=False, length=50),
        nullable=False,
        default=MitigationStatus.OPEN,
        index=True,
    )

    # Residual scoring, null until reassessed
    residual_likelihood = Column(Integer, nullable=True)
    residual_impact = Column(Integer, nullable=True)
    residual_risk_score = Column(Integer, nullable=True)
    residual_risk_level = Column(_level_enum, nullable=True)

    notes = Column(Text, nullable=True)
    comments = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    assessment = relationship("Assessment")
    control = relationship("CsfControl")
