"""
Risk register service: persistence, statistics and auto-creation of risks
from failed control assessments.
"""
import logging
import secrets
import time
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from compliance_platform.core.config import settings
from compliance_platform.core.exceptions import NotFoundError, RiskNotFoundError, RiskValidationError
from compliance_platform.models.assessment import Assessment
from compliance_platform.models.nist_csf import CsfControl
from compliance_platform.models.risk import Risk, RiskCategory, RiskLevel, MitigationStatus
from compliance_platform.services.risk_scoring import score_pair, validate_factor
from compliance_platform.utils.csv_export import risks_to_csv

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

# Fields a caller may change through update(); links to the originating
# assessment/control are deliberately absent.
UPDATABLE_FIELDS = frozenset({
    "risk_description",
    "risk_category",
    "likelihood",
    "impact",
    "mitigation_strategy",
    "mitigation_owner",
    "mitigation_deadline",
    "mitigation_status",
    "residual_likelihood",
    "residual_impact",
    "notes",
    "comments",
})

LINK_FIELDS = frozenset({"assessment_id", "control_id", "subcategory_id", "risk_id"})

# Statistics buckets for the mitigation workflow
STATUS_BUCKETS = {
    MitigationStatus.OPEN: "not_started",
    MitigationStatus.IN_PROGRESS: "in_progress",
    MitigationStatus.MITIGATED: "completed",
    MitigationStatus.ACCEPTED: "deferred",
    MitigationStatus.TRANSFERRED: "deferred",
}

# Default category for auto-created risks, keyed by CSF function prefix
FUNCTION_CATEGORY_DEFAULTS = {
    "ID": RiskCategory.STRATEGIC,
    "PR": RiskCategory.TECHNOLOGY,
    "DE": RiskCategory.TECHNOLOGY,
    "RS": RiskCategory.OPERATIONAL,
    "RC": RiskCategory.OPERATIONAL,
}

DEFAULT_LIKELIHOOD = 3
DEFAULT_IMPACT = 3


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_risk_id() -> str:
    """Human-readable identifier: RISK-<epoch ms in base36>-<5 random chars>."""
    timestamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(5))
    return f"RISK-{timestamp}-{suffix}".upper()


def parse_risk_level(value: Union[str, RiskLevel, None]) -> Optional[RiskLevel]:
    """Case-insensitive lookup of a risk level ("high" == "High")."""
    if value is None or isinstance(value, RiskLevel):
        return value
    for level in RiskLevel:
        if level.value.lower() == str(value).strip().lower():
            return level
    valid = ", ".join(level.value for level in RiskLevel)
    raise RiskValidationError(f"Invalid risk level '{value}'. Must be one of: {valid}")


def parse_mitigation_status(value: Union[str, MitigationStatus, None]) -> Optional[MitigationStatus]:
    if value is None or isinstance(value, MitigationStatus):
        return value
    normalized = str(value).strip().lower().replace(" ", "_")
    try:
        return MitigationStatus(normalized)
    except ValueError:
        valid = ", ".join(status.value for status in MitigationStatus)
        raise RiskValidationError(f"Invalid mitigation status '{value}'. Must be one of: {valid}")


def parse_risk_category(value: Union[str, RiskCategory, None]) -> Optional[RiskCategory]:
    if value is None or isinstance(value, RiskCategory):
        return value
    for category in RiskCategory:
        if category.value.lower() == str(value).strip().lower():
            return category
    valid = ", ".join(category.value for category in RiskCategory)
    raise RiskValidationError(f"Invalid risk category '{value}'. Must be one of: {valid}")


class RiskRegisterService:
    """Service for risk register operations."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Scoring helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _check_factor(name: str, value) -> int:
        try:
            return validate_factor(name, value)
        except ValueError as e:
            raise RiskValidationError(str(e))

    def _apply_initial_score(self, risk: Risk) -> None:
        risk.risk_score, risk.risk_level = score_pair(risk.likelihood, risk.impact)

    def _apply_residual_score(self, risk: Risk) -> None:
        risk.residual_risk_score, risk.residual_risk_level = score_pair(
            risk.residual_likelihood, risk.residual_impact
        )

    def _resolve_links(
        self,
        assessment_id: Optional[int],
        control_id: Optional[int],
        subcategory_id: Optional[str],
    ) -> Tuple[Optional[int], Optional[int], Optional[str]]:
        """
        Check that linked assessment and control exist.

        A bare ``subcategory_id`` is resolved to its control. When both
        ``control_id`` and ``subcategory_id`` are given they must name the
        same control.

        Raises:
            NotFoundError: assessment or control does not exist
            RiskValidationError: subcategory_id does not match control_id
        """
        if assessment_id is not None:
            exists = self.db.query(Assessment.id).filter(Assessment.id == assessment_id).first()
            if not exists:
                raise NotFoundError(f"Assessment with id {assessment_id} not found")

        subcategory = (subcategory_id or "").strip() or None

        if control_id is not None:
            control = self.db.query(CsfControl).filter(CsfControl.id == control_id).first()
            if not control:
                raise NotFoundError(f"Control {control_id} not found")
            if subcategory is not None and subcategory.upper() != control.control_code.upper():
                raise RiskValidationError(
                    f"subcategory_id {subcategory} does not match control {control.control_code}"
                )
            return assessment_id, control.id, control.control_code

        if subcategory is not None:
            control = (
                self.db.query(CsfControl)
                .filter(func.upper(CsfControl.control_code) == subcategory.upper())
                .first()
            )
            if not control:
                raise NotFoundError(f"Control {subcategory} not found")
            return assessment_id, control.id, control.control_code

        return assessment_id, None, None

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------
    def create(self, data: Dict[str, Any]) -> Risk:
        """
        Create a risk.

        Only ``risk_description`` is required. Likelihood and impact default
        to 3, mitigation status to ``open``.

        Raises:
            RiskValidationError: missing description, out-of-range factors
                or a subcategory_id that does not match control_id
            NotFoundError: linked assessment or control does not exist
        """
        description = (data.get("risk_description") or "").strip()
        if not description:
            raise RiskValidationError("Risk description is required")

        likelihood = data.get("likelihood")
        impact = data.get("impact")
        likelihood = self._check_factor("likelihood", DEFAULT_LIKELIHOOD if likelihood is None else likelihood)
        impact = self._check_factor("impact", DEFAULT_IMPACT if impact is None else impact)

        residual_likelihood = data.get("residual_likelihood")
        residual_impact = data.get("residual_impact")
        if residual_likelihood is not None:
            self._check_factor("residual_likelihood", residual_likelihood)
        if residual_impact is not None:
            self._check_factor("residual_impact", residual_impact)

        assessment_id, control_id, subcategory_id = self._resolve_links(
            data.get("assessment_id"), data.get("control_id"), data.get("subcategory_id")
        )

        risk = Risk(
            risk_id=generate_risk_id(),
            assessment_id=assessment_id,
            control_id=control_id,
            subcategory_id=subcategory_id,
            risk_description=description,
            risk_category=parse_risk_category(data.get("risk_category")),
            likelihood=likelihood,
            impact=impact,
            mitigation_strategy=data.get("mitigation_strategy"),
            mitigation_owner=data.get("mitigation_owner"),
            mitigation_deadline=data.get("mitigation_deadline"),
            mitigation_status=parse_mitigation_status(data.get("mitigation_status")) or MitigationStatus.OPEN,
            residual_likelihood=residual_likelihood,
            residual_impact=residual_impact,
            notes=data.get("notes"),
            comments=data.get("comments"),
        )
        self._apply_initial_score(risk)
        self._apply_residual_score(risk)

        self.db.add(risk)
        self.db.commit()
        self.db.refresh(risk)

        logger.info(
            f"Created risk: id={risk.id}, risk_id={risk.risk_id}, "
            f"score={risk.risk_score}, level={risk.risk_level.value}"
        )
        return risk

    def get_by_id(self, risk_pk: int) -> Risk:
        risk = self.db.query(Risk).filter(Risk.id == risk_pk).first()
        if not risk:
            raise RiskNotFoundError(risk_pk)
        return risk

    def get_by_risk_id(self, risk_id: str) -> Risk:
        risk = self.db.query(Risk).filter(Risk.risk_id == risk_id.upper()).first()
        if not risk:
            raise RiskNotFoundError(risk_id)
        return risk

    def get_all(
        self,
        assessment_id: Optional[int] = None,
        risk_level: Union[str, RiskLevel, None] = None,
        mitigation_status: Union[str, MitigationStatus, None] = None,
    ) -> List[Risk]:
        """List risks; filters are AND-combined and absent filters impose no constraint."""
        query = self.db.query(Risk)

        if assessment_id is not None:
            query = query.filter(Risk.assessment_id == assessment_id)

        level = parse_risk_level(risk_level)
        if level is not None:
            query = query.filter(Risk.risk_level == level)

        status = parse_mitigation_status(mitigation_status)
        if status is not None:
            query = query.filter(Risk.mitigation_status == status)

        return query.order_by(Risk.created_at.desc(), Risk.id.desc()).all()

    def update(self, risk_pk: int, updates: Dict[str, Any]) -> Risk:
        """
        Apply a partial update. Only keys present in ``updates`` change.

        Initial score/level are recomputed when likelihood or impact is
        supplied; residual score/level when either residual factor is.
        """
        risk = self.get_by_id(risk_pk)

        for field in LINK_FIELDS & updates.keys():
            if updates[field] != getattr(risk, field):
                raise RiskValidationError(f"{field} cannot be changed once a risk is created")

        changes = {key: value for key, value in updates.items() if key in UPDATABLE_FIELDS}

        if "risk_description" in changes:
            description = (changes["risk_description"] or "").strip()
            if not description:
                raise RiskValidationError("Risk description cannot be empty")
            changes["risk_description"] = description

        for factor in ("likelihood", "impact"):
            if factor in changes:
                if changes[factor] is None:
                    raise RiskValidationError(f"{factor} cannot be cleared")
                self._check_factor(factor, changes[factor])

        for factor in ("residual_likelihood", "residual_impact"):
            if changes.get(factor) is not None:
                self._check_factor(factor, changes[factor])

        if "risk_category" in changes:
            changes["risk_category"] = parse_risk_category(changes["risk_category"])
        if "mitigation_status" in changes:
            if changes["mitigation_status"] is None:
                raise RiskValidationError("mitigation_status cannot be cleared")
            changes["mitigation_status"] = parse_mitigation_status(changes["mitigation_status"])

        for key, value in changes.items():
            setattr(risk, key, value)

        if {"likelihood", "impact"} & changes.keys():
            self._apply_initial_score(risk)
        if {"residual_likelihood", "residual_impact"} & changes.keys():
            self._apply_residual_score(risk)

        self.db.commit()
        self.db.refresh(risk)

        logger.info(f"Updated risk: id={risk.id}, fields={sorted(changes.keys())}")
        return risk

    def delete(self, risk_pk: int) -> Risk:
        """Delete a risk and return the removed row."""
        risk = self.get_by_id(risk_pk)
        risk_id = risk.risk_id
        self.db.delete(risk)
        self.db.commit()
        logger.info(f"Deleted risk: id={risk_pk}, risk_id={risk_id}")
        return risk

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------
    def get_statistics(self, assessment_id: Optional[int] = None) -> Dict[str, Any]:
        """Count risks by level and by mitigation bucket, optionally for one assessment."""
        level_query = self.db.query(Risk.risk_level, func.count(Risk.id))
        status_query = self.db.query(Risk.mitigation_status, func.count(Risk.id))
        if assessment_id is not None:
            level_query = level_query.filter(Risk.assessment_id == assessment_id)
            status_query = status_query.filter(Risk.assessment_id == assessment_id)

        by_level = {level.value.lower(): 0 for level in RiskLevel}
        total = 0
        for level, count in level_query.group_by(Risk.risk_level).all():
            by_level[level.value.lower()] += count
            total += count

        by_status = {"not_started": 0, "in_progress": 0, "completed": 0, "deferred": 0}
        for status, count in status_query.group_by(Risk.mitigation_status).all():
            by_status[STATUS_BUCKETS[status]] += count

        return {
            "total_risks": total,
            "by_level": by_level,
            "by_status": by_status,
        }

    def export_to_csv(
        self,
        assessment_id: Optional[int] = None,
        risk_level: Union[str, RiskLevel, None] = None,
        mitigation_status: Union[str, MitigationStatus, None] = None,
    ) -> str:
        """Serialize the filtered risk set to CSV text."""
        risks = self.get_all(
            assessment_id=assessment_id,
            risk_level=risk_level,
            mitigation_status=mitigation_status,
        )
        logger.info(f"Exporting {len(risks)} risks to CSV")
        return risks_to_csv(risks)

    # ------------------------------------------------------------------
    # Control assessment integration
    # ------------------------------------------------------------------
    def find_for_control(self, assessment_id: int, control_id: int) -> Optional[Risk]:
        return (
            self.db.query(Risk)
            .filter(Risk.assessment_id == assessment_id, Risk.control_id == control_id)
            .order_by(Risk.id.asc())
            .first()
        )

    def create_from_control_assessment(
        self,
        assessment_id: int,
        control: CsfControl,
        questionnaire_response: Optional[str] = None,
        comments: Optional[str] = None,
        likelihood: Optional[int] = None,
        impact: Optional[int] = None,
        risk_category: Union[str, RiskCategory, None] = None,
    ) -> Risk:
        """
        Raise (or refresh) the risk for a control assessed as non-compliant.

        One risk exists per (assessment, control) pair: if it is already
        registered its description, comments and notes are refreshed and a
        mitigated risk is reopened; its scores are left untouched.
        """
        description = (
            (questionnaire_response or "").strip()
            or (comments or "").strip()
            or f"Control at risk: {control.control_name}"
            + (f" - {control.description}" if control.description else "")
        )
        notes = (
            f"Auto-generated from control assessment marked non-compliant. "
            f"Control: {control.control_code}"
        )

        existing = self.find_for_control(assessment_id, control.id)
        if existing:
            existing.risk_description = description
            existing.notes = notes
            if comments:
                existing.comments = comments
            if existing.mitigation_status == MitigationStatus.MITIGATED:
                existing.mitigation_status = MitigationStatus.OPEN
            self.db.commit()
            self.db.refresh(existing)
            logger.info(
                f"Refreshed auto-created risk {existing.risk_id} for "
                f"assessment={assessment_id}, control={control.control_code}"
            )
            return existing

        category = parse_risk_category(risk_category) or FUNCTION_CATEGORY_DEFAULTS.get(
            control.function_code, RiskCategory.COMPLIANCE
        )

        return self.create({
            "assessment_id": assessment_id,
            "control_id": control.id,
            "subcategory_id": control.control_code,
            "risk_description": description,
            "risk_category": category,
            "likelihood": likelihood if likelihood is not None else settings.AUTO_RISK_LIKELIHOOD,
            "impact": impact if impact is not None else settings.AUTO_RISK_IMPACT,
            "mitigation_strategy": f"Address risk for {control.control_name} control",
            "mitigation_status": MitigationStatus.OPEN,
            "notes": notes,
            "comments": comments or None,
        })

    def mark_mitigated(self, assessment_id: int, control_id: int) -> List[Risk]:
        """Set linked risks that are not yet mitigated to mitigated."""
        risks = (
            self.db.query(Risk)
            .filter(
                Risk.assessment_id == assessment_id,
                Risk.control_id == control_id,
                Risk.mitigation_status != MitigationStatus.MITIGATED,
            )
            .all()
        )
        for risk in risks:
            risk.mitigation_status = MitigationStatus.MITIGATED
        if risks:
            self.db.commit()
            logger.info(
                f"Marked {len(risks)} risk(s) mitigated for assessment={assessment_id}, control={control_id}"
            )
        return risks
