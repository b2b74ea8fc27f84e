"""
Organization and compliance assessment service.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from compliance_platform.core.exceptions import ConflictError, NotFoundError, ValidationError
from compliance_platform.models.assessment import Assessment, AssessmentStatus
from compliance_platform.models.control_assessment import ControlAssessment
from compliance_platform.models.nist_csf import CsfControl
from compliance_platform.models.organization import Organization
from compliance_platform.models.risk import Risk

logger = logging.getLogger(__name__)

ASSESSMENT_UPDATABLE_FIELDS = frozenset({
    "assessment_name",
    "assessment_version",
    "framework_version",
    "status",
    "scope",
    "assessment_date",
    "due_date",
})


class OrganizationService:
    """Service for organization operations."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, data: Dict[str, Any]) -> Organization:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Organization name is required")

        organization = Organization(
            name=name,
            description=data.get("description"),
            industry=data.get("industry"),
            size=data.get("size"),
        )
        self.db.add(organization)
        self.db.commit()
        self.db.refresh(organization)
        logger.info(f"Created organization: id={organization.id}, name={organization.name}")
        return organization

    def get_by_id(self, organization_id: int) -> Organization:
        organization = self.db.query(Organization).filter(Organization.id == organization_id).first()
        if not organization:
            raise NotFoundError(f"Organization with id {organization_id} not found")
        return organization

    def get_all(self) -> List[Organization]:
        return self.db.query(Organization).order_by(Organization.name.asc()).all()


class AssessmentService:
    """Service for compliance assessment operations."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, data: Dict[str, Any]) -> Assessment:
        OrganizationService(self.db).get_by_id(data["organization_id"])

        name = (data.get("assessment_name") or "").strip()
        if not name:
            raise ValidationError("Assessment name is required")

        assessment = Assessment(
            organization_id=data["organization_id"],
            assessment_name=name,
            assessment_version=data.get("assessment_version") or "1.0",
            framework_version=data.get("framework_version") or "NIST CSF v1.1",
            status=data.get("status") or AssessmentStatus.DRAFT,
            scope=data.get("scope"),
            assessment_date=data.get("assessment_date"),
            due_date=data.get("due_date"),
            completion_percentage=0.0,
        )
        self.db.add(assessment)
        self.db.commit()
        self.db.refresh(assessment)
        logger.info(f"Created assessment: id={assessment.id}, organization_id={assessment.organization_id}")
        return assessment

    def get_by_id(self, assessment_id: int) -> Assessment:
        assessment = self.db.query(Assessment).filter(Assessment.id == assessment_id).first()
        if not assessment:
            raise NotFoundError(f"Assessment with id {assessment_id} not found")
        return assessment

    def get_all(
        self,
        organization_id: Optional[int] = None,
        status: Optional[AssessmentStatus] = None,
    ) -> List[Assessment]:
        query = self.db.query(Assessment)
        if organization_id is not None:
            query = query.filter(Assessment.organization_id == organization_id)
        if status is not None:
            query = query.filter(Assessment.status == status)
        return query.order_by(Assessment.created_at.desc(), Assessment.id.desc()).all()

    def update(self, assessment_id: int, updates: Dict[str, Any]) -> Assessment:
        assessment = self.get_by_id(assessment_id)
        changes = {key: value for key, value in updates.items() if key in ASSESSMENT_UPDATABLE_FIELDS}

        if "assessment_name" in changes:
            name = (changes["assessment_name"] or "").strip()
            if not name:
                raise ValidationError("Assessment name cannot be empty")
            changes["assessment_name"] = name
        if "status" in changes and changes["status"] is None:
            raise ValidationError("status cannot be cleared")

        for key, value in changes.items():
            setattr(assessment, key, value)

        if changes.get("status") == AssessmentStatus.COMPLETED and assessment.completed_at is None:
            assessment.completed_at = datetime.now(timezone.utc)

        self.db.commit()
        self.db.refresh(assessment)
        logger.info(f"Updated assessment: id={assessment.id}, fields={sorted(changes.keys())}")
        return assessment

    def delete(self, assessment_id: int) -> Assessment:
        """
        Delete an assessment and its control assessments.

        Raises:
            ConflictError: risks in the register still reference the assessment
        """
        assessment = self.get_by_id(assessment_id)

        linked_risks = self.db.query(func.count(Risk.id)).filter(Risk.assessment_id == assessment_id).scalar()
        if linked_risks:
            raise ConflictError(
                f"Assessment {assessment_id} has {linked_risks} linked risk(s). "
                f"Delete or reassign them before deleting the assessment."
            )

        self.db.delete(assessment)
        self.db.commit()
        logger.info(f"Deleted assessment: id={assessment_id}")
        return assessment

    def update_completion_percentage(self, assessment_id: int) -> float:
        """Assessed controls / catalog controls x 100, rounded to 2 places."""
        assessment = self.get_by_id(assessment_id)
        catalog_size = self.db.query(func.count(CsfControl.id)).scalar() or 0
        assessed = (
            self.db.query(func.count(ControlAssessment.id))
            .filter(ControlAssessment.assessment_id == assessment_id)
            .scalar()
            or 0
        )
        percentage = round(assessed / catalog_size * 100, 2) if catalog_size else 0.0
        assessment.completion_percentage = percentage
        self.db.commit()
        return percentage
