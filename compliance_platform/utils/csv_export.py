"""
CSV serialization for the risk register.
"""
import csv
import io
from typing import Any, Iterable, List

CSV_HEADERS = [
    "Risk ID",
    "Assessment ID",
    "Control ID",
    "Subcategory",
    "Description",
    "Category",
    "Likelihood",
    "Impact",
    "Risk Score",
    "Risk Level",
    "Mitigation Strategy",
    "Owner",
    "Deadline",
    "Status",
    "Residual Likelihood",
    "Residual Impact",
    "Residual Score",
    "Residual Level",
    "Notes",
    "Created At",
]


def _cell(value: Any) -> str:
    if value is None:
        return ""
    # Enum columns export their stored value
    if hasattr(value, "value"):
        return str(value.value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def risk_to_row(risk: Any) -> List[str]:
    """Flatten one risk into the fixed column order."""
    return [
        _cell(risk.risk_id),
        _cell(risk.assessment_id),
        _cell(risk.control_id),
        _cell(risk.subcategory_id),
        _cell(risk.risk_description),
        _cell(risk.risk_category),
        _cell(risk.likelihood),
        _cell(risk.impact),
        _cell(risk.risk_score),
        _cell(risk.risk_level),
        _cell(risk.mitigation_strategy),
        _cell(risk.mitigation_owner),
        _cell(risk.mitigation_deadline),
        _cell(risk.mitigation_status),
        _cell(risk.residual_likelihood),
        _cell(risk.residual_impact),
        _cell(risk.residual_risk_score),
        _cell(risk.residual_risk_level),
        _cell(risk.notes),
        _cell(risk.created_at),
    ]


def risks_to_csv(risks: Iterable[Any]) -> str:
    """
    Render risks as RFC 4180 CSV text (CRLF rows, fields with commas,
    quotes or line breaks quoted, embedded quotes doubled).
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(CSV_HEADERS)
    for risk in risks:
        writer.writerow(risk_to_row(risk))
    return buffer.getvalue()
