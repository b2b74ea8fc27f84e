"""
Compliance assessment model.
"""
import enum

from sqlalchemy import Column, Integer, String, DateTime, Date, Text, Float, ForeignKey, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from compliance_platform.core.database import Base, enum_values


class AssessmentStatus(str, enum.Enum):
    """Assessment workflow states."""
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    UNDER_REVIEW = "under_review"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Assessment(Base):
    """A NIST CSF assessment run by an organization."""
    __tablename__ = "compliance_assessments"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)

    assessment_name = Column(String(255), nullable=False)
    assessment_version = Column(String(50), nullable=False, default="1.0")
    framework_version = Column(String(50), nullable=False, default="NIST CSF v1.1")
    status = Column(
        Enum(AssessmentStatus, values_callable=enum_values, native_enum=False, length=50),
        nullable=False,
        default=AssessmentStatus.DRAFT,
        index=True,
    )
    scope = Column(Text, nullable=True)
    assessment_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)

    # Share of catalog controls assessed so far (0-100)
    completion_percentage = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    organization = relationship("Organization", back_populates="assessments")
    control_assessments = relationship(
        "ControlAssessment",
        back_populates="assessment",
        cascade="all, delete-orphan",
    )
    reports = relationship(
        "ComplianceReport",
        back_populates="assessment",
        cascade="all, delete-orphan",
    )
