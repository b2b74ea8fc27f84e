"""
Compliance report aggregation.

Turns the control assessments of one assessment into the figures shown in
the compliance PDF: overall and per-function weighted completion, the
function/category grouping, key findings, evidence summary and prioritized
recommendations. Pure functions operate on flat row dicts; the service class
loads those rows from the database. Generated PDFs are kept by
ReportArchiveService.
"""
import logging
import math
from datetime import datetime, timezone
from fractions import Fraction
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from compliance_platform.core.exceptions import NotFoundError
from compliance_platform.models.assessment import Assessment
from compliance_platform.models.control_assessment import ControlAssessment, ImplementationStatus
from compliance_platform.models.nist_csf import CsfCategory, CsfControl, CsfFunction
from compliance_platform.services.risk_service import RiskRegisterService

logger = logging.getLogger(__name__)

# NIST CSF functions in report order
NIST_FUNCTIONS = {
    "ID": "Identify",
    "PR": "Protect",
    "DE": "Detect",
    "RS": "Respond",
    "RC": "Recover",
}

COMPLETE = "complete"
IN_PROGRESS = "in_progress"
NOT_STARTED = "not_started"
NOT_APPLICABLE = "not_applicable"

# Functions whose unstarted controls are treated as high priority
CRITICAL_FUNCTIONS = ("PR", "DE")

_REPORT_STATUS = {
    ImplementationStatus.FULLY_IMPLEMENTED: COMPLETE,
    ImplementationStatus.LARGELY_IMPLEMENTED: COMPLETE,
    ImplementationStatus.PARTIALLY_IMPLEMENTED: IN_PROGRESS,
    ImplementationStatus.NOT_APPLICABLE: NOT_APPLICABLE,
}


def map_report_status(implementation_status) -> str:
    """Collapse an implementation status into complete/in_progress/not_started/not_applicable."""
    if implementation_status is None:
        return NOT_STARTED
    try:
        status = ImplementationStatus(getattr(implementation_status, "value", implementation_status))
    except ValueError:
        return NOT_STARTED
    return _REPORT_STATUS.get(status, NOT_STARTED)


def weighted_completion(complete: int, in_progress: int, total: int, not_applicable: int) -> int:
    """
    (complete + 0.5 * in_progress) / (total - not_applicable) * 100,
    rounded half-up to an integer; 0 when nothing is applicable.
    """
    applicable = total - not_applicable
    if applicable <= 0:
        return 0
    percentage = Fraction(2 * complete + in_progress, 2 * applicable) * 100
    return math.floor(percentage + Fraction(1, 2))


def compliance_score_band(score: int) -> str:
    """Colour band for a compliance percentage."""
    if score >= 80:
        return "good"
    if score >= 60:
        return "fair"
    if score >= 40:
        return "weak"
    return "poor"


def _count(rows: List[Dict[str, Any]], status: str) -> int:
    return sum(1 for row in rows if row["assessment_status"] == status)


def calculate_compliance_stats(rows: List[Dict[str, Any]]) -> Dict[str, int]:
    """Overall counts and weighted score across every control."""
    total = len(rows)
    complete = _count(rows, COMPLETE)
    in_progress = _count(rows, IN_PROGRESS)
    not_started = _count(rows, NOT_STARTED)
    not_applicable = _count(rows, NOT_APPLICABLE)

    return {
        "total_controls": total,
        "complete": complete,
        "in_progress": in_progress,
        "not_started": not_started,
        "not_applicable": not_applicable,
        "overall_score": weighted_completion(complete, in_progress, total, not_applicable),
    }


def calculate_function_stats(rows: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Per-function counts and weighted score, for all five functions in order."""
    stats = {}
    for code, name in NIST_FUNCTIONS.items():
        function_rows = [row for row in rows if row["subcategory_id"].startswith(code)]
        total = len(function_rows)
        complete = _count(function_rows, COMPLETE)
        in_progress = _count(function_rows, IN_PROGRESS)
        not_applicable = _count(function_rows, NOT_APPLICABLE)
        stats[code] = {
            "code": code,
            "name": name,
            "total": total,
            "complete": complete,
            "in_progress": in_progress,
            "not_applicable": not_applicable,
            "score": weighted_completion(complete, in_progress, total, not_applicable),
        }
    return stats


def group_controls_by_function_and_category(
    rows: List[Dict[str, Any]],
) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
    """{function code: {category name: [rows]}} preserving input order."""
    grouped: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}
    for row in rows:
        function_code = row["subcategory_id"][:2]
        grouped.setdefault(function_code, {}).setdefault(row["category_name"], []).append(row)
    return grouped


def generate_key_findings(stats: Dict[str, int], function_stats: Dict[str, Dict[str, Any]]) -> List[str]:
    """Narrative findings from fixed thresholds over the aggregates."""
    findings = []
    overall = stats["overall_score"]

    if overall >= 80:
        findings.append(
            f"Strong overall compliance at {overall}%, demonstrating mature cybersecurity practices."
        )
    elif overall >= 50:
        findings.append(
            f"Moderate compliance at {overall}%, with significant room for improvement in cybersecurity posture."
        )
    else:
        findings.append(
            f"Low compliance at {overall}%, indicating critical gaps in cybersecurity controls "
            f"that require immediate attention."
        )

    # Functions without any assessed control are not ranked
    ranked = [entry for entry in function_stats.values() if entry["total"] > 0]
    if ranked:
        weakest = min(ranked, key=lambda entry: entry["score"])
        if weakest["score"] < 70:
            findings.append(
                f"The {weakest['name']} function shows the lowest compliance at {weakest['score']}%, "
                f"representing a priority area for improvement."
            )
        strongest = max(ranked, key=lambda entry: entry["score"])
        if strongest["score"] >= 80:
            findings.append(
                f"The {strongest['name']} function demonstrates strong compliance at {strongest['score']}%, "
                f"serving as a model for other areas."
            )

    if stats["in_progress"] > 0:
        findings.append(
            f"{stats['in_progress']} controls are currently in progress, "
            f"showing active effort toward improving compliance."
        )

    total = stats["total_controls"]
    if total and stats["not_started"] > total * 0.3:
        share = weighted_completion(stats["not_started"], 0, total, 0)
        findings.append(
            f"{stats['not_started']} controls have not been started ({share}% of total), "
            f"requiring immediate action planning."
        )

    return findings


def generate_evidence_summary(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    with_evidence = [row for row in rows if (row.get("evidence_count") or 0) > 0]
    return {
        "total_files": sum(row["evidence_count"] for row in with_evidence),
        "controls_with_evidence": len(with_evidence),
        "by_control": [
            {
                "subcategory_id": row["subcategory_id"],
                "subcategory_name": row["subcategory_name"],
                "evidence_count": row["evidence_count"],
            }
            for row in with_evidence
        ],
    }


def generate_recommendations(rows: List[Dict[str, Any]], stats: Dict[str, int]) -> List[Dict[str, str]]:
    """Priority-tagged (High/Medium/Low) recommendations."""
    recommendations = []

    critical_not_started = [
        row for row in rows
        if row["assessment_status"] == NOT_STARTED and row["subcategory_id"].startswith(CRITICAL_FUNCTIONS)
    ]
    if critical_not_started:
        recommendations.append({
            "priority": "High",
            "title": "Implement Critical Protection and Detection Controls",
            "description": (
                f"{len(critical_not_started)} critical controls in the Protect and Detect functions "
                f"have not been started. These are essential for preventing and identifying security incidents."
            ),
        })

    if stats["in_progress"] > 5:
        recommendations.append({
            "priority": "Medium",
            "title": "Complete In-Progress Controls",
            "description": (
                f"Focus on completing the {stats['in_progress']} controls currently in progress "
                f"to improve overall compliance score."
            ),
        })

    no_evidence = [
        row for row in rows
        if row["assessment_status"] == COMPLETE and not row.get("evidence_count")
    ]
    if no_evidence:
        recommendations.append({
            "priority": "Medium",
            "title": "Document Evidence for Completed Controls",
            "description": (
                f"{len(no_evidence)} controls are marked complete but lack supporting evidence. "
                f"Upload documentation to strengthen audit readiness."
            ),
        })

    other_not_started = [
        row for row in rows
        if row["assessment_status"] == NOT_STARTED and not row["subcategory_id"].startswith(CRITICAL_FUNCTIONS)
    ]
    if other_not_started:
        recommendations.append({
            "priority": "Low",
            "title": "Begin Assessment of Remaining Controls",
            "description": (
                f"{len(other_not_started)} controls in the Identify, Respond, and Recover functions "
                f"require assessment to achieve comprehensive coverage."
            ),
        })

    return recommendations


def build_compliance_report(
    rows: List[Dict[str, Any]],
    assessment: Optional[Dict[str, Any]] = None,
    organization_name: Optional[str] = None,
    risk_statistics: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Assemble every aggregate the compliance report needs."""
    stats = calculate_compliance_stats(rows)
    function_stats = calculate_function_stats(rows)
    return {
        "assessment": assessment or {},
        "organization_name": organization_name,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "stats": stats,
        "function_stats": list(function_stats.values()),
        "grouped_controls": group_controls_by_function_and_category(rows),
        "key_findings": generate_key_findings(stats, function_stats),
        "evidence_summary": generate_evidence_summary(rows),
        "recommendations": generate_recommendations(rows, stats),
        "risk_summary": risk_statistics,
    }


class ComplianceReportService:
    """Loads assessment data and builds the compliance report aggregate."""

    def __init__(self, db: Session):
        self.db = db

    def load_rows(self, assessment_id: int) -> List[Dict[str, Any]]:
        """Flat control-assessment rows in catalog order."""
        results = (
            self.db.query(ControlAssessment, CsfControl, CsfCategory)
            .join(CsfControl, ControlAssessment.control_id == CsfControl.id)
            .join(CsfCategory, CsfControl.category_id == CsfCategory.id)
            .join(CsfFunction, CsfCategory.function_id == CsfFunction.id)
            .filter(ControlAssessment.assessment_id == assessment_id)
            .order_by(CsfFunction.display_order, CsfCategory.display_order, CsfControl.display_order)
            .all()
        )
        return [
            {
                "subcategory_id": control.control_code,
                "subcategory_name": control.control_name,
                "category_name": category.category_name,
                "implementation_status": control_assessment.implementation_status.value,
                "assessment_status": map_report_status(control_assessment.implementation_status),
                "comments": control_assessment.comments,
                "evidence_count": control_assessment.evidence_count or 0,
            }
            for control_assessment, control, category in results
        ]

    def build(self, assessment_id: int) -> Dict[str, Any]:
        assessment = self.db.query(Assessment).filter(Assessment.id == assessment_id).first()
        if not assessment:
            raise NotFoundError(f"Assessment with id {assessment_id} not found")

        rows = self.load_rows(assessment_id)
        risk_statistics = RiskRegisterService(self.db).get_statistics(assessment_id)
        organization_name = assessment.organization.name if assessment.organization else None

        report = build_compliance_report(
            rows,
            assessment={
                "id": assessment.id,
                "assessment_name": assessment.assessment_name,
                "framework_version": assessment.framework_version,
                "status": assessment.status.value,
            },
            organization_name=organization_name,
            risk_statistics=risk_statistics,
        )
        logger.info(
            f"Built compliance report: assessment_id={assessment_id}, controls={len(rows)}, "
            f"overall_score={report['stats']['overall_score']}"
        )
        return report
