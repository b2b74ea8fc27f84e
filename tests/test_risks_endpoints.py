"""
Tests for the risk register endpoints.
"""
import csv
import io

from fastapi import status

from compliance_platform.utils.csv_export import CSV_HEADERS


def _create_risk(client, **fields):
    payload = {"risk_description": "Generic risk"}
    payload.update(fields)
    response = client.post("/api/risks", json=payload)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["data"]


def test_create_risk_scores_initial_and_residual(client, assessment):
    data = _create_risk(
        client,
        risk_description="Ransomware encrypts file shares",
        assessment_id=assessment.id,
        risk_category="Operational",
        likelihood=4,
        impact=5,
        residual_likelihood=2,
        residual_impact=2,
    )

    assert data["risk_id"].startswith("RISK-")
    assert data["risk_score"] == 20
    assert data["risk_level"] == "Critical"
    assert data["residual_risk_score"] == 4
    assert data["residual_risk_level"] == "Low"
    assert data["risk_category"] == "Operational"


def test_create_risk_with_only_description_uses_defaults(client):
    response = client.post("/api/risks", json={"risk_description": "Shadow IT SaaS usage"})

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Risk created successfully"
    assert body["data"]["likelihood"] == 3
    assert body["data"]["impact"] == 3
    assert body["data"]["risk_score"] == 9
    assert body["data"]["risk_level"] == "Medium"
    assert body["data"]["mitigation_status"] == "open"
    assert body["data"]["residual_risk_score"] is None


def test_create_risk_with_empty_description_fails(client):
    response = client.post("/api/risks", json={"risk_description": ""})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert any(error["field"] == "risk_description" for error in body["errors"])


def test_create_risk_with_out_of_range_factor_fails(client):
    response = client.post("/api/risks", json={"risk_description": "Too likely", "likelihood": 6})

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_create_risk_with_invalid_category_fails(client):
    response = client.post("/api/risks", json={"risk_description": "Odd", "risk_category": "Weather"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "Invalid risk category" in response.json()["message"]


def test_get_risk(client):
    created = _create_risk(client, risk_description="Stale firewall rules")

    response = client.get(f"/api/risks/{created['id']}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["risk_id"] == created["risk_id"]


def test_update_owner_only_keeps_score(client):
    created = _create_risk(client, likelihood=4, impact=3)

    response = client.put(f"/api/risks/{created['id']}", json={"mitigation_owner": "CISO"})

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["mitigation_owner"] == "CISO"
    assert data["risk_score"] == 12
    assert data["risk_level"] == "High"
    assert response.json()["message"] == "Risk updated successfully"


def test_update_factor_rescores(client):
    created = _create_risk(client, likelihood=1, impact=2)

    response = client.put(f"/api/risks/{created['id']}", json={"likelihood": 5, "impact": 4})

    data = response.json()["data"]
    assert data["risk_score"] == 20
    assert data["risk_level"] == "Critical"


def test_update_cannot_relink_assessment(client, assessment):
    created = _create_risk(client, assessment_id=assessment.id)

    response = client.put(f"/api/risks/{created['id']}", json={"assessment_id": assessment.id + 500})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "assessment_id cannot be changed" in response.json()["message"]


def test_delete_risk_returns_removed_entry(client):
    created = _create_risk(client, risk_description="Temporary risk")

    response = client.delete(f"/api/risks/{created['id']}")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message"] == "Risk deleted successfully"
    assert body["data"]["risk_id"] == created["risk_id"]
    assert client.get(f"/api/risks/{created['id']}").status_code == status.HTTP_404_NOT_FOUND


def test_missing_risk_returns_404(client):
    assert client.get("/api/risks/999999").status_code == status.HTTP_404_NOT_FOUND
    assert client.put("/api/risks/999999", json={"notes": "x"}).status_code == status.HTTP_404_NOT_FOUND
    assert client.delete("/api/risks/999999").status_code == status.HTTP_404_NOT_FOUND


def test_list_filters_combine(client, assessment):
    _create_risk(client, assessment_id=assessment.id, likelihood=5, impact=5)
    _create_risk(client, assessment_id=assessment.id, likelihood=5, impact=5, mitigation_status="mitigated")
    _create_risk(client, assessment_id=assessment.id, likelihood=1, impact=1)
    _create_risk(client, likelihood=5, impact=5)

    response = client.get(
        "/api/risks",
        params={"assessment_id": assessment.id, "risk_level": "critical", "mitigation_status": "open"},
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["count"] == 1
    assert body["data"][0]["risk_level"] == "Critical"
    assert body["data"][0]["mitigation_status"] == "open"
    assert body["data"][0]["assessment_id"] == assessment.id


def test_list_with_invalid_level_fails(client):
    response = client.get("/api/risks", params={"risk_level": "extreme"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_statistics_for_assessment(client, assessment):
    _create_risk(client, assessment_id=assessment.id, likelihood=1, impact=2)
    _create_risk(client, assessment_id=assessment.id, likelihood=3, impact=4)
    _create_risk(client, assessment_id=assessment.id, likelihood=5, impact=4, mitigation_status="accepted")

    response = client.get("/api/risks/statistics", params={"assessment_id": assessment.id})

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["total_risks"] == 3
    assert data["by_level"] == {"low": 1, "medium": 0, "high": 1, "critical": 1}
    assert data["by_status"] == {"not_started": 2, "in_progress": 0, "completed": 0, "deferred": 1}


def test_export_csv(client, assessment):
    _create_risk(
        client,
        assessment_id=assessment.id,
        risk_description='Vendor said "patch soon", still open',
        likelihood=2,
        impact=3,
    )

    response = client.get("/api/risks/export", params={"assessment_id": assessment.id})

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"].startswith("text/csv")
    disposition = response.headers["content-disposition"]
    assert "attachment" in disposition
    assert "risk-register-" in disposition and disposition.endswith('.csv"')

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == CSV_HEADERS
    assert len(rows) == 2
    record = dict(zip(CSV_HEADERS, rows[1]))
    assert record["Description"] == 'Vendor said "patch soon", still open'
    assert record["Risk Score"] == "6"
    assert record["Risk Level"] == "Medium"
    assert record["Residual Score"] == ""


def test_export_empty_result_has_header_only(client, assessment):
    response = client.get("/api/risks/export", params={"assessment_id": assessment.id})

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows == [CSV_HEADERS]


def test_risk_mutations_are_logged(client):
    created = _create_risk(client, risk_description="Logged risk")

    response = client.get("/api/activity", params={"resource_type": "risk", "resource_id": created["id"]})

    assert response.status_code == status.HTTP_200_OK
    actions = [entry["action"] for entry in response.json()["data"]]
    assert "risk_create" in actions


def test_create_risk_with_unknown_assessment_returns_404(client):
    response = client.post("/api/risks", json={"risk_description": "Orphan risk", "assessment_id": 999999})

    assert response.status_code == status.HTTP_404_NOT_FOUND
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Assessment with id 999999 not found"
    assert client.get("/api/risks", params={"assessment_id": 999999}).json()["data"] == []


def test_create_risk_with_unknown_control_returns_404(client, assessment):
    response = client.post(
        "/api/risks",
        json={"risk_description": "Orphan control", "assessment_id": assessment.id, "control_id": 999999},
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Control 999999 not found"


def test_create_risk_with_unknown_subcategory_returns_404(client):
    response = client.post("/api/risks", json={"risk_description": "Bad code", "subcategory_id": "ZZ.ZZ-9"})

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Control ZZ.ZZ-9 not found"


def test_create_risk_with_mismatched_subcategory_returns_400(client, db_session):
    from compliance_platform.models.nist_csf import CsfControl

    control = db_session.query(CsfControl).filter(CsfControl.control_code == "PR.AC-1").first()

    response = client.post(
        "/api/risks",
        json={"risk_description": "Mismatch", "control_id": control.id, "subcategory_id": "DE.CM-1"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "does not match control PR.AC-1" in response.json()["message"]
