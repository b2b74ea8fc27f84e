"""
Tests for STRIDE threat modeling.
"""
import pytest
from fastapi import status

from compliance_platform.models.risk import RiskLevel
from compliance_platform.models.threat import RatingLevel
from compliance_platform.services.threat_service import score_threat


@pytest.fixture
def organization_id(client):
    response = client.post("/api/organizations", json={"name": "Threat Org", "industry": "Finance"})
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["data"]["id"]


@pytest.fixture
def threat_model_id(client, organization_id):
    response = client.post(
        "/api/threat-models",
        json={"organization_id": organization_id, "model_name": "Payments API", "system_name": "payments"},
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["data"]["id"]


def test_score_threat_maps_ratings():
    assert score_threat(RatingLevel.VERY_LOW, RatingLevel.VERY_LOW) == (1, RiskLevel.LOW)
    assert score_threat(RatingLevel.MEDIUM, RatingLevel.MEDIUM) == (9, RiskLevel.MEDIUM)
    assert score_threat(RatingLevel.HIGH, RatingLevel.VERY_HIGH) == (20, RiskLevel.CRITICAL)
    assert score_threat("low", "high") == (8, RiskLevel.MEDIUM)


def test_stride_categories(client):
    response = client.get("/api/threat-models/stride-categories")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert [category["code"] for category in data] == ["S", "T", "R", "I", "D", "E"]
    assert data[3]["security_property"] == "Confidentiality"


def test_create_threat_defaults_to_medium(client, threat_model_id):
    response = client.post(
        f"/api/threat-models/{threat_model_id}/threats",
        json={"stride_category": "S", "threat_title": "Stolen session token reuse"},
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()["data"]
    assert data["likelihood"] == "medium"
    assert data["impact"] == "medium"
    assert data["risk_score"] == 9
    assert data["risk_level"] == "Medium"


def test_threats_sorted_by_score_and_filtered(client, threat_model_id):
    client.post(
        f"/api/threat-models/{threat_model_id}/threats",
        json={"stride_category": "T", "threat_title": "Tampered ledger", "likelihood": "low", "impact": "low"},
    )
    client.post(
        f"/api/threat-models/{threat_model_id}/threats",
        json={"stride_category": "D", "threat_title": "API flood", "likelihood": "very_high", "impact": "high"},
    )

    listed = client.get(f"/api/threat-models/{threat_model_id}/threats").json()
    assert [threat["risk_score"] for threat in listed["data"]] == [20, 4]

    filtered = client.get(f"/api/threat-models/{threat_model_id}/threats", params={"stride_category": "T"}).json()
    assert filtered["count"] == 1
    assert filtered["data"][0]["threat_title"] == "Tampered ledger"

    model = client.get(f"/api/threat-models/{threat_model_id}").json()["data"]
    assert model["model_name"] == "Payments API"
    assert len(model["threats"]) == 2


def test_update_threat_rescores(client, threat_model_id):
    created = client.post(
        f"/api/threat-models/{threat_model_id}/threats",
        json={"stride_category": "E", "threat_title": "Admin route without role check"},
    ).json()["data"]

    response = client.put(
        f"/api/threat-models/{threat_model_id}/threats/{created['id']}",
        json={"likelihood": "very_high", "impact": "very_high", "status": "mitigated"},
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["risk_score"] == 25
    assert data["risk_level"] == "Critical"
    assert data["status"] == "mitigated"


def test_invalid_stride_category_fails(client, threat_model_id):
    response = client.post(
        f"/api/threat-models/{threat_model_id}/threats",
        json={"stride_category": "X", "threat_title": "Unknown"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_threat_in_missing_model_returns_404(client):
    response = client.post(
        "/api/threat-models/999999/threats",
        json={"stride_category": "S", "threat_title": "Orphan"},
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_asset_referenced_by_threat_cannot_be_deleted(client, organization_id, threat_model_id):
    asset = client.post(
        "/api/assets",
        json={"organization_id": organization_id, "asset_name": "Card vault", "asset_type": "data_store"},
    ).json()["data"]
    assert asset["criticality"] == "medium"

    client.post(
        f"/api/threat-models/{threat_model_id}/threats",
        json={"stride_category": "I", "threat_title": "PAN leak", "asset_id": asset["id"]},
    )

    response = client.delete(f"/api/assets/{asset['id']}")

    assert response.status_code == status.HTTP_409_CONFLICT
    assert "referenced by 1 threat(s)" in response.json()["message"]


def test_unreferenced_asset_can_be_deleted(client, organization_id):
    asset = client.post(
        "/api/assets",
        json={"organization_id": organization_id, "asset_name": "Build server", "asset_type": "process"},
    ).json()["data"]

    response = client.delete(f"/api/assets/{asset['id']}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["asset_name"] == "Build server"


def test_asset_for_missing_organization_returns_404(client):
    response = client.post(
        "/api/assets",
        json={"organization_id": 999999, "asset_name": "Ghost", "asset_type": "process"},
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.fixture
def threat_id(client, threat_model_id):
    response = client.post(
        f"/api/threat-models/{threat_model_id}/threats",
        json={"stride_category": "I", "threat_title": "Card data in debug logs"},
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["data"]["id"]


def _add_mitigation(client, threat_model_id, threat_id, **fields):
    payload = {"mitigation_title": "Mask PAN in logs", "mitigation_strategy": "reduce"}
    payload.update(fields)
    response = client.post(f"/api/threat-models/{threat_model_id}/threats/{threat_id}/mitigations", json=payload)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["data"]


def test_create_mitigation_defaults(client, threat_model_id, threat_id):
    data = _add_mitigation(client, threat_model_id, threat_id)

    assert data["threat_id"] == threat_id
    assert data["implementation_status"] == "proposed"
    assert data["priority"] == "medium"
    assert data["completed_at"] is None


def test_mitigations_ordered_by_priority_then_status(client, threat_model_id, threat_id):
    _add_mitigation(client, threat_model_id, threat_id, mitigation_title="Low done", priority="low",
                    implementation_status="verified")
    _add_mitigation(client, threat_model_id, threat_id, mitigation_title="Critical proposed", priority="critical")
    _add_mitigation(client, threat_model_id, threat_id, mitigation_title="Critical in flight", priority="critical",
                    implementation_status="in_progress")

    listed = client.get(f"/api/threat-models/{threat_model_id}/threats/{threat_id}/mitigations").json()

    assert listed["count"] == 3
    assert [item["mitigation_title"] for item in listed["data"]] == [
        "Critical in flight",
        "Critical proposed",
        "Low done",
    ]


def test_implemented_mitigation_stamps_completed_at(client, threat_model_id, threat_id):
    created = _add_mitigation(client, threat_model_id, threat_id)
    url = f"/api/threat-models/{threat_model_id}/threats/{threat_id}/mitigations/{created['id']}"

    done = client.put(url, json={"implementation_status": "implemented", "effectiveness_rating": "high"})
    assert done.status_code == status.HTTP_200_OK
    assert done.json()["data"]["completed_at"] is not None
    assert done.json()["data"]["effectiveness_rating"] == "high"

    reopened = client.put(url, json={"implementation_status": "in_progress"})
    assert reopened.json()["data"]["completed_at"] is None


def test_delete_mitigation(client, threat_model_id, threat_id):
    created = _add_mitigation(client, threat_model_id, threat_id)
    url = f"/api/threat-models/{threat_model_id}/threats/{threat_id}/mitigations/{created['id']}"

    response = client.delete(url)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["id"] == created["id"]
    assert client.put(url, json={"priority": "high"}).status_code == status.HTTP_404_NOT_FOUND


def test_mitigation_for_threat_in_other_model_returns_404(client, organization_id, threat_id):
    other = client.post(
        "/api/threat-models", json={"organization_id": organization_id, "model_name": "Other model"}
    ).json()["data"]["id"]

    response = client.post(
        f"/api/threat-models/{other}/threats/{threat_id}/mitigations",
        json={"mitigation_title": "Misplaced", "mitigation_strategy": "accept"},
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_invalid_mitigation_strategy_fails(client, threat_model_id, threat_id):
    response = client.post(
        f"/api/threat-models/{threat_model_id}/threats/{threat_id}/mitigations",
        json={"mitigation_title": "Pray", "mitigation_strategy": "ignore"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_mitigation_statistics(client, threat_model_id, threat_id):
    client.post(
        f"/api/threat-models/{threat_model_id}/threats",
        json={"stride_category": "S", "threat_title": "Unmitigated spoofing"},
    )
    _add_mitigation(client, threat_model_id, threat_id, implementation_status="implemented", priority="high")
    _add_mitigation(client, threat_model_id, threat_id, mitigation_strategy="transfer")
    _add_mitigation(client, threat_model_id, threat_id, mitigation_strategy="accept",
                    implementation_status="rejected", priority="low")

    response = client.get(f"/api/threat-models/{threat_model_id}/mitigations/statistics")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["total_mitigations"] == 3
    assert data["completed_mitigations"] == 1
    assert data["total_threats"] == 2
    assert data["threats_with_mitigations"] == 1
    assert data["by_status"]["implemented"] == 1
    assert data["by_status"]["proposed"] == 1
    assert data["by_status"]["rejected"] == 1
    assert data["by_strategy"]["reduce"] == {"count": 1, "completed": 1}
    assert data["by_strategy"]["transfer"] == {"count": 1, "completed": 0}
    assert data["by_priority"] == {"low": 1, "medium": 1, "high": 1, "critical": 0}
