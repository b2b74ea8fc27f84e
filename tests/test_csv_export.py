"""
Tests for risk register CSV serialization.
"""
import csv
import io
from datetime import date, datetime, timezone
from types import SimpleNamespace

from compliance_platform.models.risk import MitigationStatus, RiskCategory, RiskLevel
from compliance_platform.utils.csv_export import CSV_HEADERS, risk_to_row, risks_to_csv


def _risk(**overrides):
    fields = dict(
        risk_id="RISK-ABC-12345",
        assessment_id=7,
        control_id=3,
        subcategory_id="PR.AC-1",
        risk_description="Weak passwords",
        risk_category=RiskCategory.TECHNOLOGY,
        likelihood=4,
        impact=3,
        risk_score=12,
        risk_level=RiskLevel.HIGH,
        mitigation_strategy=None,
        mitigation_owner="IT Ops",
        mitigation_deadline=date(2026, 12, 31),
        mitigation_status=MitigationStatus.IN_PROGRESS,
        residual_likelihood=None,
        residual_impact=None,
        residual_risk_score=None,
        residual_risk_level=None,
        notes=None,
        created_at=datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_row_formats_values():
    row = dict(zip(CSV_HEADERS, risk_to_row(_risk())))

    assert row["Category"] == "Technology"
    assert row["Risk Level"] == "High"
    assert row["Status"] == "in_progress"
    assert row["Deadline"] == "2026-12-31"
    assert row["Created At"] == "2026-01-02T03:04:05+00:00"
    assert row["Mitigation Strategy"] == ""
    assert row["Residual Score"] == ""


def test_csv_quotes_special_characters():
    text = risks_to_csv([_risk(risk_description='Line one,\n"quoted" line two')])

    assert text.startswith("Risk ID,Assessment ID")
    assert "\r\n" in text
    assert '"Line one,\n""quoted"" line two"' in text

    rows = list(csv.reader(io.StringIO(text, newline="")))
    assert rows[1][CSV_HEADERS.index("Description")] == 'Line one,\n"quoted" line two'


def test_csv_with_no_risks_is_header_only():
    assert risks_to_csv([]) == ",".join(CSV_HEADERS) + "\r\n"
