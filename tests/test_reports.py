"""
Tests for stored compliance reports.
"""
from fastapi import status

from compliance_platform.services.report_archive_service import ReportArchiveService


def _generate(client, assessment_id):
    response = client.post(f"/api/assessments/{assessment_id}/reports")
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["data"]


def test_generate_report_stores_metadata(client, assessment):
    client.post(
        f"/api/assessments/{assessment.id}/controls",
        json={"subcategory_id": "ID.AM-1", "status": "fully_implemented"},
    )

    data = _generate(client, assessment.id)

    assert data["assessment_id"] == assessment.id
    assert data["report_type"] == "compliance_report"
    assert data["report_format"] == "pdf"
    assert data["file_name"] == "NIST_CSF_Report_FY26_CSF_Baseline.pdf"
    assert data["file_size"] > 1000
    assert data["overall_score"] == 100
    assert "file_data" not in data


def test_list_reports_for_assessment(client, assessment):
    first = _generate(client, assessment.id)
    second = _generate(client, assessment.id)

    response = client.get(f"/api/assessments/{assessment.id}/reports")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["count"] == 2
    assert {item["id"] for item in body["data"]} == {first["id"], second["id"]}


def test_download_stored_report(client, assessment):
    stored = _generate(client, assessment.id)

    response = client.get(f"/api/reports/{stored['id']}/download")

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"] == "application/pdf"
    assert f'filename="{stored["file_name"]}"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")
    assert len(response.content) == stored["file_size"]


def test_get_and_delete_report(client, assessment):
    stored = _generate(client, assessment.id)

    fetched = client.get(f"/api/reports/{stored['id']}")
    assert fetched.status_code == status.HTTP_200_OK
    assert fetched.json()["data"]["file_name"] == stored["file_name"]

    deleted = client.delete(f"/api/reports/{stored['id']}")
    assert deleted.status_code == status.HTTP_200_OK
    assert deleted.json()["message"] == "Report deleted successfully"
    assert client.get(f"/api/reports/{stored['id']}").status_code == status.HTTP_404_NOT_FOUND
    assert client.get(f"/api/reports/{stored['id']}/download").status_code == status.HTTP_404_NOT_FOUND


def test_reports_for_missing_assessment(client):
    assert client.post("/api/assessments/999999/reports").status_code == status.HTTP_404_NOT_FOUND
    assert client.get("/api/assessments/999999/reports").status_code == status.HTTP_404_NOT_FOUND


def test_service_loads_file_only_on_request(db_session, assessment):
    service = ReportArchiveService(db_session)
    stored = service.generate(assessment.id)

    db_session.expire_all()
    with_file = service.get_by_id(stored.id, with_file=True)

    assert with_file.file_data.startswith(b"%PDF")
    assert service.get_all(assessment.id)[0].id == stored.id
