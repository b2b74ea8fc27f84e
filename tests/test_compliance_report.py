"""
Tests for compliance report aggregation and PDF generation.
"""
from fastapi import status

from compliance_platform.services.compliance_report_service import (
    build_compliance_report,
    calculate_compliance_stats,
    calculate_function_stats,
    compliance_score_band,
    generate_evidence_summary,
    generate_key_findings,
    generate_recommendations,
    group_controls_by_function_and_category,
    map_report_status,
    weighted_completion,
)
from compliance_platform.utils.pdf_generator import generate_compliance_report_pdf


def _row(code, report_status, category="Asset Management", evidence=0):
    return {
        "subcategory_id": code,
        "subcategory_name": f"Control {code}",
        "category_name": category,
        "implementation_status": None,
        "assessment_status": report_status,
        "comments": None,
        "evidence_count": evidence,
    }


def test_map_report_status():
    assert map_report_status("fully_implemented") == "complete"
    assert map_report_status("largely_implemented") == "complete"
    assert map_report_status("partially_implemented") == "in_progress"
    assert map_report_status("not_applicable") == "not_applicable"
    assert map_report_status("not_implemented") == "not_started"
    assert map_report_status("at_risk") == "not_started"
    assert map_report_status(None) == "not_started"
    assert map_report_status("bogus") == "not_started"


def test_weighted_completion_rounds_half_up():
    # (1 + 0.5) / 4 = 37.5%
    assert weighted_completion(1, 1, 4, 0) == 38
    # (0 + 0.5) / 8 = 6.25%
    assert weighted_completion(0, 1, 8, 0) == 6
    assert weighted_completion(3, 0, 3, 0) == 100


def test_weighted_completion_excludes_not_applicable():
    assert weighted_completion(2, 0, 4, 2) == 100
    assert weighted_completion(0, 0, 2, 2) == 0
    assert weighted_completion(0, 0, 0, 0) == 0


def test_compliance_score_band():
    assert compliance_score_band(80) == "good"
    assert compliance_score_band(79) == "fair"
    assert compliance_score_band(60) == "fair"
    assert compliance_score_band(40) == "weak"
    assert compliance_score_band(39) == "poor"


def test_stats_and_function_stats():
    rows = [
        _row("ID.AM-1", "complete"),
        _row("ID.AM-2", "in_progress"),
        _row("PR.AC-1", "not_started", category="Access Control"),
        _row("PR.AC-3", "not_applicable", category="Access Control"),
    ]

    stats = calculate_compliance_stats(rows)
    assert stats == {
        "total_controls": 4,
        "complete": 1,
        "in_progress": 1,
        "not_started": 1,
        "not_applicable": 1,
        "overall_score": 50,
    }

    function_stats = calculate_function_stats(rows)
    assert list(function_stats.keys()) == ["ID", "PR", "DE", "RS", "RC"]
    assert function_stats["ID"]["score"] == 75
    assert function_stats["PR"]["score"] == 0
    assert function_stats["DE"]["total"] == 0
    assert function_stats["DE"]["score"] == 0


def test_grouping_preserves_order():
    rows = [
        _row("ID.AM-1", "complete"),
        _row("ID.BE-1", "complete", category="Business Environment"),
        _row("ID.AM-2", "complete"),
    ]

    grouped = group_controls_by_function_and_category(rows)

    assert list(grouped["ID"].keys()) == ["Asset Management", "Business Environment"]
    assert [row["subcategory_id"] for row in grouped["ID"]["Asset Management"]] == ["ID.AM-1", "ID.AM-2"]


def test_key_findings_for_low_compliance():
    rows = [_row("PR.AC-1", "not_started"), _row("PR.AC-3", "not_started"), _row("ID.AM-1", "complete")]
    stats = calculate_compliance_stats(rows)

    findings = generate_key_findings(stats, calculate_function_stats(rows))

    assert findings[0].startswith("Low compliance at 33%")
    assert any("Protect function shows the lowest compliance at 0%" in f for f in findings)
    assert any("Identify function demonstrates strong compliance at 100%" in f for f in findings)
    assert any("2 controls have not been started (67% of total)" in f for f in findings)


def test_key_findings_skip_unassessed_functions():
    rows = [_row("ID.AM-1", "complete"), _row("ID.AM-2", "complete")]
    stats = calculate_compliance_stats(rows)

    findings = generate_key_findings(stats, calculate_function_stats(rows))

    assert findings[0].startswith("Strong overall compliance at 100%")
    assert not any("lowest compliance" in f for f in findings)


def test_evidence_summary():
    rows = [_row("ID.AM-1", "complete", evidence=3), _row("ID.AM-2", "complete"), _row("PR.AC-1", "in_progress", evidence=1)]

    summary = generate_evidence_summary(rows)

    assert summary["total_files"] == 4
    assert summary["controls_with_evidence"] == 2
    assert [entry["subcategory_id"] for entry in summary["by_control"]] == ["ID.AM-1", "PR.AC-1"]


def test_recommendations_priorities():
    rows = [
        _row("PR.AC-1", "not_started"),
        _row("DE.CM-1", "not_started"),
        _row("ID.AM-1", "complete"),
        _row("RS.RP-1", "not_started"),
    ] + [_row(f"ID.GV-{i}", "in_progress") for i in range(6)]
    stats = calculate_compliance_stats(rows)

    recommendations = generate_recommendations(rows, stats)

    assert [r["priority"] for r in recommendations] == ["High", "Medium", "Medium", "Low"]
    assert recommendations[0]["description"].startswith("2 critical controls")
    assert "6 controls currently in progress" in recommendations[1]["description"]
    assert recommendations[2]["title"] == "Document Evidence for Completed Controls"
    assert recommendations[3]["description"].startswith("1 controls")


def test_empty_report():
    report = build_compliance_report([])

    assert report["stats"]["overall_score"] == 0
    assert report["recommendations"] == []
    assert report["evidence_summary"]["total_files"] == 0
    assert len(report["function_stats"]) == 5


def test_pdf_generation_from_aggregate():
    rows = [_row("ID.AM-1", "complete", evidence=2), _row("PR.AC-1", "not_started", category="Access <Control> & Co")]
    report = build_compliance_report(
        rows,
        assessment={"id": 1, "assessment_name": "Q3 Review", "framework_version": "NIST CSF v1.1", "status": "draft"},
        organization_name="Acme & Sons",
        risk_statistics={
            "total_risks": 1,
            "by_level": {"low": 0, "medium": 1, "high": 0, "critical": 0},
            "by_status": {"not_started": 1, "in_progress": 0, "completed": 0, "deferred": 0},
        },
    )

    pdf_bytes = generate_compliance_report_pdf(report)

    assert pdf_bytes.startswith(b"%PDF")
    assert len(pdf_bytes) > 1000


def test_report_summary_endpoint(client, assessment):
    client.post(
        f"/api/assessments/{assessment.id}/controls",
        json={"subcategory_id": "ID.AM-1", "status": "fully_implemented", "evidence_count": 2},
    )
    client.post(
        f"/api/assessments/{assessment.id}/controls",
        json={"subcategory_id": "PR.AC-1", "status": "partially_implemented"},
    )
    client.post(
        f"/api/assessments/{assessment.id}/controls",
        json={"subcategory_id": "DE.CM-1", "status": "not_implemented"},
    )

    response = client.get(f"/api/assessments/{assessment.id}/report/summary")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["organization_name"] == "Acme Corp"
    assert data["stats"]["total_controls"] == 3
    assert data["stats"]["overall_score"] == 50
    assert data["evidence_summary"]["total_files"] == 2
    assert data["risk_summary"]["total_risks"] == 1
    assert data["recommendations"][0]["priority"] == "High"


def test_report_pdf_endpoint(client, assessment):
    client.post(
        f"/api/assessments/{assessment.id}/controls",
        json={"subcategory_id": "ID.AM-1", "status": "fully_implemented"},
    )

    response = client.get(f"/api/assessments/{assessment.id}/report")

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="NIST_CSF_Report_FY26_CSF_Baseline.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_report_for_missing_assessment(client):
    assert client.get("/api/assessments/999999/report/summary").status_code == status.HTTP_404_NOT_FOUND
    assert client.get("/api/assessments/999999/report").status_code == status.HTTP_404_NOT_FOUND
