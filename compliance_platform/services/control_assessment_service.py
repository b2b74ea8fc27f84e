"""
Control assessment service.

Persisting a control assessment drives the risk register: a non-compliant
status raises (or refreshes) the linked risk, and a control that recovers
from non-compliance has its open risks marked mitigated.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from compliance_platform.core.exceptions import ComplianceError, NotFoundError, ValidationError
from compliance_platform.models.control_assessment import (
    ControlAssessment,
    ImplementationStatus,
    NON_COMPLIANT_STATUSES,
)
from compliance_platform.models.nist_csf import CsfControl
from compliance_platform.models.risk import Risk
from compliance_platform.services.assessment_service import AssessmentService
from compliance_platform.services.risk_service import RiskRegisterService

logger = logging.getLogger(__name__)


class ControlAssessmentService:
    """Service for assessing individual NIST CSF controls."""

    def __init__(self, db: Session):
        self.db = db
        self.assessments = AssessmentService(db)
        self.risks = RiskRegisterService(db)

    def resolve_control(self, control_id: Optional[int] = None, subcategory_id: Optional[str] = None) -> CsfControl:
        """Look a control up by primary key or by its code (e.g. PR.AC-1)."""
        if control_id is None and not subcategory_id:
            raise ValidationError("Either control_id or subcategory_id is required")

        query = self.db.query(CsfControl)
        if control_id is not None:
            control = query.filter(CsfControl.id == control_id).first()
        else:
            control = query.filter(CsfControl.control_code == subcategory_id.strip().upper()).first()

        if not control:
            raise NotFoundError(f"Control {control_id if control_id is not None else subcategory_id} not found")
        return control

    def assess_control(
        self,
        assessment_id: int,
        data: Dict[str, Any],
        assessed_by: Optional[int] = None,
    ) -> Tuple[ControlAssessment, Optional[Risk]]:
        """
        Create or update the assessment of one control and run the risk trigger.

        Returns:
            (control assessment, linked risk or None)
        """
        self.assessments.get_by_id(assessment_id)
        control, record, previous_status = self._save_control_assessment(assessment_id, data, assessed_by)

        self.assessments.update_completion_percentage(assessment_id)
        risk = self._run_risk_trigger(assessment_id, control, record, previous_status, data)
        return record, risk

    def bulk_assess(
        self,
        assessment_id: int,
        items: List[Dict[str, Any]],
        assessed_by: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Assess several controls in one call.

        Each item is saved and run through the risk trigger on its own; an
        item that fails is reported under ``failed`` without undoing the
        others. Completion percentage is recomputed once at the end.
        """
        self.assessments.get_by_id(assessment_id)

        successful: List[Dict[str, Any]] = []
        failed: List[Dict[str, Any]] = []
        for item in items:
            reference = {"control_id": item.get("control_id"), "subcategory_id": item.get("subcategory_id")}
            try:
                control, record, previous_status = self._save_control_assessment(assessment_id, item, assessed_by)
            except ComplianceError as e:
                self.db.rollback()
                failed.append({**reference, "error": e.message})
                continue

            risk = self._run_risk_trigger(assessment_id, control, record, previous_status, item)
            successful.append({
                "control_id": control.id,
                "subcategory_id": control.control_code,
                "control_assessment_id": record.id,
                "status": record.implementation_status.value,
                "risk_register_entry": risk.risk_id if risk is not None else None,
            })

        self.assessments.update_completion_percentage(assessment_id)
        logger.info(
            f"Bulk assessment {assessment_id}: {len(successful)} successful, {len(failed)} failed"
        )
        return {
            "assessment_id": assessment_id,
            "total_requested": len(items),
            "successful_count": len(successful),
            "failed_count": len(failed),
            "successful": successful,
            "failed": failed,
        }

    def _save_control_assessment(
        self,
        assessment_id: int,
        data: Dict[str, Any],
        assessed_by: Optional[int],
    ) -> Tuple[CsfControl, ControlAssessment, Optional[ImplementationStatus]]:
        control = self.resolve_control(data.get("control_id"), data.get("subcategory_id"))
        status = ImplementationStatus(data["status"])

        record = (
            self.db.query(ControlAssessment)
            .filter(
                ControlAssessment.assessment_id == assessment_id,
                ControlAssessment.control_id == control.id,
            )
            .first()
        )
        previous_status = record.implementation_status if record else None

        if record is None:
            record = ControlAssessment(assessment_id=assessment_id, control_id=control.id)
            self.db.add(record)

        record.implementation_status = status
        record.questionnaire_response = data.get("questionnaire_response")
        record.comments = data.get("comments")
        record.recommendations = data.get("remediation_plan")
        if data.get("maturity_level") is not None:
            record.maturity_level = data["maturity_level"]
        if data.get("compliance_score") is not None:
            record.compliance_score = data["compliance_score"]
        if data.get("evidence_count") is not None:
            record.evidence_count = data["evidence_count"]
        record.assessed_by = assessed_by
        record.assessed_at = datetime.now(timezone.utc)

        self.db.commit()
        self.db.refresh(record)
        logger.info(
            f"Assessed control {control.control_code} in assessment {assessment_id}: "
            f"{previous_status.value if previous_status else None} -> {status.value}"
        )

        return control, record, previous_status

    def _run_risk_trigger(
        self,
        assessment_id: int,
        control: CsfControl,
        record: ControlAssessment,
        previous_status: Optional[ImplementationStatus],
        data: Dict[str, Any],
    ) -> Optional[Risk]:
        # A failing trigger never fails the control assessment itself
        try:
            if record.implementation_status in NON_COMPLIANT_STATUSES:
                return self.risks.create_from_control_assessment(
                    assessment_id,
                    control,
                    questionnaire_response=record.questionnaire_response,
                    comments=record.comments,
                    likelihood=data.get("risk_likelihood"),
                    impact=data.get("risk_impact"),
                    risk_category=data.get("risk_category"),
                )

            if previous_status in NON_COMPLIANT_STATUSES:
                self.risks.mark_mitigated(assessment_id, control.id)
            return self.risks.find_for_control(assessment_id, control.id)
        except Exception as e:
            self.db.rollback()
            logger.error(
                f"Risk register update failed for assessment={assessment_id}, "
                f"control={control.control_code}: {e}",
                exc_info=True,
            )
            return None

    def get_all(self, assessment_id: int, status: Optional[ImplementationStatus] = None) -> List[ControlAssessment]:
        self.assessments.get_by_id(assessment_id)
        query = (
            self.db.query(ControlAssessment)
            .join(CsfControl, ControlAssessment.control_id == CsfControl.id)
            .filter(ControlAssessment.assessment_id == assessment_id)
        )
        if status is not None:
            query = query.filter(ControlAssessment.implementation_status == status)
        return query.order_by(CsfControl.control_code.asc()).all()

    def get_by_id(self, assessment_id: int, control_assessment_id: int) -> ControlAssessment:
        record = (
            self.db.query(ControlAssessment)
            .filter(
                ControlAssessment.id == control_assessment_id,
                ControlAssessment.assessment_id == assessment_id,
            )
            .first()
        )
        if not record:
            raise NotFoundError(f"Control assessment with id {control_assessment_id} not found")
        return record

    def delete(self, assessment_id: int, control_assessment_id: int) -> ControlAssessment:
        """Delete a control assessment. Linked risks stay in the register."""
        record = self.get_by_id(assessment_id, control_assessment_id)
        self.db.delete(record)
        self.db.commit()
        self.assessments.update_completion_percentage(assessment_id)
        logger.info(f"Deleted control assessment: id={control_assessment_id}, assessment_id={assessment_id}")
        return record

    def get_statistics(self, assessment_id: int) -> Dict[str, Any]:
        assessment = self.assessments.get_by_id(assessment_id)

        by_status = {status.value: 0 for status in ImplementationStatus}
        rows = (
            self.db.query(ControlAssessment.implementation_status, func.count(ControlAssessment.id))
            .filter(ControlAssessment.assessment_id == assessment_id)
            .group_by(ControlAssessment.implementation_status)
            .all()
        )
        total = 0
        for status, count in rows:
            by_status[status.value] = count
            total += count

        average_score = (
            self.db.query(func.avg(ControlAssessment.compliance_score))
            .filter(
                ControlAssessment.assessment_id == assessment_id,
                ControlAssessment.compliance_score.isnot(None),
            )
            .scalar()
        )
        catalog_size = self.db.query(func.count(CsfControl.id)).scalar() or 0

        return {
            "total_assessed": total,
            "total_controls": catalog_size,
            "by_status": by_status,
            "non_compliant": sum(by_status[status.value] for status in NON_COMPLIANT_STATUSES),
            "average_compliance_score": round(float(average_score), 2) if average_score is not None else None,
            "completion_percentage": assessment.completion_percentage,
        }
