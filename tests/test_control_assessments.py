"""
Tests for control assessments and the risk register trigger.
"""
from fastapi import status

from compliance_platform.models.nist_csf import CsfControl


def _assess(client, assessment_id, **fields):
    response = client.post(f"/api/assessments/{assessment_id}/controls", json=fields)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


def _risks_for(client, assessment_id):
    return client.get("/api/risks", params={"assessment_id": assessment_id}).json()["data"]


def test_compliant_control_creates_no_risk(client, assessment):
    body = _assess(client, assessment.id, subcategory_id="ID.AM-1", status="fully_implemented")

    assert body["message"] == "Control assessment saved successfully"
    assert body["data"]["control_code"] == "ID.AM-1"
    assert body["data"]["risk_register_entry"] is None
    assert _risks_for(client, assessment.id) == []


def test_non_compliant_control_creates_risk(client, assessment):
    body = _assess(
        client,
        assessment.id,
        subcategory_id="PR.AC-1",
        status="not_implemented",
        questionnaire_response="Shared admin accounts on core switches",
    )

    risk_id = body["data"]["risk_register_entry"]
    assert risk_id.startswith("RISK-")

    risks = _risks_for(client, assessment.id)
    assert len(risks) == 1
    risk = risks[0]
    assert risk["risk_id"] == risk_id
    assert risk["subcategory_id"] == "PR.AC-1"
    assert risk["risk_description"] == "Shared admin accounts on core switches"
    assert risk["likelihood"] == 3
    assert risk["impact"] == 3
    assert risk["risk_score"] == 9
    assert risk["risk_level"] == "Medium"
    assert risk["mitigation_status"] == "open"


def test_reassessing_non_compliant_control_is_idempotent(client, assessment):
    first = _assess(client, assessment.id, subcategory_id="DE.CM-1", status="at_risk", comments="No SIEM")
    second = _assess(client, assessment.id, subcategory_id="DE.CM-1", status="non_compliant", comments="Still no SIEM")

    assert first["data"]["id"] == second["data"]["id"]
    assert first["data"]["risk_register_entry"] == second["data"]["risk_register_entry"]

    risks = _risks_for(client, assessment.id)
    assert len(risks) == 1
    assert risks[0]["comments"] == "Still no SIEM"


def test_recovered_control_marks_risk_mitigated(client, assessment):
    created = _assess(client, assessment.id, subcategory_id="RS.RP-1", status="not_implemented")
    recovered = _assess(client, assessment.id, subcategory_id="RS.RP-1", status="largely_implemented")

    assert recovered["data"]["risk_register_entry"] == created["data"]["risk_register_entry"]
    risks = _risks_for(client, assessment.id)
    assert len(risks) == 1
    assert risks[0]["mitigation_status"] == "mitigated"


def test_relapse_reopens_mitigated_risk(client, assessment):
    _assess(client, assessment.id, subcategory_id="RC.RP-1", status="not_implemented")
    _assess(client, assessment.id, subcategory_id="RC.RP-1", status="fully_implemented")
    _assess(client, assessment.id, subcategory_id="RC.RP-1", status="at_risk")

    risks = _risks_for(client, assessment.id)
    assert len(risks) == 1
    assert risks[0]["mitigation_status"] == "open"


def test_explicit_risk_factors_are_used(client, assessment):
    _assess(
        client,
        assessment.id,
        subcategory_id="PR.DS-1",
        status="non_compliant",
        risk_likelihood=4,
        risk_impact=5,
        risk_category="Compliance",
    )

    risk = _risks_for(client, assessment.id)[0]
    assert risk["risk_score"] == 20
    assert risk["risk_level"] == "Critical"
    assert risk["risk_category"] == "Compliance"


def test_assess_by_control_id(client, assessment, db_session):
    control = db_session.query(CsfControl).filter(CsfControl.control_code == "ID.GV-1").first()

    body = _assess(client, assessment.id, control_id=control.id, status="partially_implemented")

    assert body["data"]["control_id"] == control.id
    assert body["data"]["control_code"] == "ID.GV-1"


def test_control_reference_is_required(client, assessment):
    response = client.post(f"/api/assessments/{assessment.id}/controls", json={"status": "fully_implemented"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_unknown_control_returns_404(client, assessment):
    response = client.post(
        f"/api/assessments/{assessment.id}/controls",
        json={"subcategory_id": "XX.YY-9", "status": "fully_implemented"},
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_unknown_assessment_returns_404(client):
    response = client.post(
        "/api/assessments/999999/controls",
        json={"subcategory_id": "ID.AM-1", "status": "fully_implemented"},
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_completion_percentage_tracks_catalog(client, assessment, db_session):
    catalog_size = db_session.query(CsfControl).count()
    _assess(client, assessment.id, subcategory_id="ID.AM-1", status="fully_implemented")
    _assess(client, assessment.id, subcategory_id="ID.AM-2", status="partially_implemented")

    data = client.get(f"/api/assessments/{assessment.id}").json()["data"]

    assert data["completion_percentage"] == round(2 / catalog_size * 100, 2)


def test_control_statistics(client, assessment):
    _assess(client, assessment.id, subcategory_id="ID.AM-1", status="fully_implemented", compliance_score=90)
    _assess(client, assessment.id, subcategory_id="ID.AM-2", status="not_implemented", compliance_score=10)
    _assess(client, assessment.id, subcategory_id="ID.AM-3", status="at_risk")

    response = client.get(f"/api/assessments/{assessment.id}/controls/statistics")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["total_assessed"] == 3
    assert data["by_status"]["fully_implemented"] == 1
    assert data["by_status"]["not_implemented"] == 1
    assert data["by_status"]["at_risk"] == 1
    assert data["by_status"]["not_applicable"] == 0
    assert data["non_compliant"] == 2
    assert data["average_compliance_score"] == 50.0


def test_list_filter_and_delete(client, assessment):
    _assess(client, assessment.id, subcategory_id="ID.AM-1", status="fully_implemented")
    failing = _assess(client, assessment.id, subcategory_id="ID.AM-2", status="not_implemented")

    listed = client.get(f"/api/assessments/{assessment.id}/controls", params={"status": "not_implemented"}).json()
    assert listed["count"] == 1
    assert listed["data"][0]["control_code"] == "ID.AM-2"

    record_id = failing["data"]["id"]
    response = client.delete(f"/api/assessments/{assessment.id}/controls/{record_id}")
    assert response.status_code == status.HTTP_200_OK
    assert client.get(f"/api/assessments/{assessment.id}/controls/{record_id}").status_code == status.HTTP_404_NOT_FOUND

    # The risk raised by the deleted assessment stays in the register
    assert len(_risks_for(client, assessment.id)) == 1


def test_assessment_with_risks_cannot_be_deleted(client, assessment):
    _assess(client, assessment.id, subcategory_id="PR.AC-3", status="non_compliant")

    response = client.delete(f"/api/assessments/{assessment.id}")

    assert response.status_code == status.HTTP_409_CONFLICT
    assert "linked risk" in response.json()["message"]


def test_assessment_without_risks_can_be_deleted(client, assessment):
    _assess(client, assessment.id, subcategory_id="PR.AC-3", status="fully_implemented")

    response = client.delete(f"/api/assessments/{assessment.id}")

    assert response.status_code == status.HTTP_200_OK
    assert client.get(f"/api/assessments/{assessment.id}").status_code == status.HTTP_404_NOT_FOUND


def test_bulk_assessment_runs_risk_trigger_per_item(client, assessment, db_session):
    catalog_size = db_session.query(CsfControl).count()

    response = client.post(
        f"/api/assessments/{assessment.id}/controls/bulk",
        json={"controls": [
            {"subcategory_id": "ID.AM-1", "status": "fully_implemented"},
            {"subcategory_id": "PR.AC-1", "status": "not_implemented", "comments": "No MFA"},
            {"subcategory_id": "DE.CM-1", "status": "at_risk"},
        ]},
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Bulk assessment completed. 3 successful, 0 failed."
    data = body["data"]
    assert data["assessment_id"] == assessment.id
    assert data["total_requested"] == 3
    assert data["successful_count"] == 3
    assert data["failed_count"] == 0

    entries = {item["subcategory_id"]: item["risk_register_entry"] for item in data["successful"]}
    assert entries["ID.AM-1"] is None
    assert entries["PR.AC-1"].startswith("RISK-")
    assert entries["DE.CM-1"].startswith("RISK-")

    risks = _risks_for(client, assessment.id)
    assert sorted(risk["subcategory_id"] for risk in risks) == ["DE.CM-1", "PR.AC-1"]

    completion = client.get(f"/api/assessments/{assessment.id}").json()["data"]["completion_percentage"]
    assert completion == round(3 / catalog_size * 100, 2)


def test_bulk_assessment_reports_failed_items(client, assessment):
    response = client.post(
        f"/api/assessments/{assessment.id}/controls/bulk",
        json={"controls": [
            {"subcategory_id": "ID.AM-2", "status": "largely_implemented"},
            {"subcategory_id": "XX.YY-9", "status": "fully_implemented"},
        ]},
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Bulk assessment completed. 1 successful, 1 failed."
    assert body["data"]["failed"] == [
        {"control_id": None, "subcategory_id": "XX.YY-9", "error": "Control XX.YY-9 not found"}
    ]

    listed = client.get(f"/api/assessments/{assessment.id}/controls").json()
    assert [record["control_code"] for record in listed["data"]] == ["ID.AM-2"]


def test_bulk_assessment_recovery_marks_risk_mitigated(client, assessment):
    _assess(client, assessment.id, subcategory_id="RS.RP-1", status="not_implemented")

    client.post(
        f"/api/assessments/{assessment.id}/controls/bulk",
        json={"controls": [{"subcategory_id": "RS.RP-1", "status": "fully_implemented"}]},
    )

    risks = _risks_for(client, assessment.id)
    assert len(risks) == 1
    assert risks[0]["mitigation_status"] == "mitigated"


def test_bulk_assessment_requires_items(client, assessment):
    response = client.post(f"/api/assessments/{assessment.id}/controls/bulk", json={"controls": []})

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_bulk_assessment_unknown_assessment_returns_404(client):
    response = client.post(
        "/api/assessments/999999/controls/bulk",
        json={"controls": [{"subcategory_id": "ID.AM-1", "status": "fully_implemented"}]},
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
