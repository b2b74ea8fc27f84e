"""
Tests for health check endpoints.
"""
from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from compliance_platform.core.database import get_db
from compliance_platform.main import app


def test_health_endpoint_returns_ok(client):
    """/api/health reports the database and the loaded catalog."""
    response = client.get("/api/health")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["data"]["ok"] is True
    assert body["data"]["db"] is True
    assert body["data"]["catalog_controls"] > 0
    assert "environment" in body["data"]


def test_health_endpoint_with_db_failure():
    """/api/health returns 503 when the database cannot be queried."""
    class BrokenSession:
        def execute(self, *args, **kwargs):
            raise SQLAlchemyError("Simulated DB failure")

    def broken_get_db():
        yield BrokenSession()

    app.dependency_overrides[get_db] = broken_get_db
    try:
        response = TestClient(app).get("/api/health")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Database connection failed"
    finally:
        app.dependency_overrides.clear()


def test_health_endpoint_trace_id_header(client):
    """RequestLoggingMiddleware adds X-Trace-ID to every response."""
    response = client.get("/api/health")

    assert "X-Trace-ID" in response.headers
    assert len(response.headers["X-Trace-ID"]) > 0


def test_incoming_trace_id_is_echoed(client):
    response = client.get("/api/health", headers={"X-Trace-ID": "trace-abc-123"})

    assert response.headers["X-Trace-ID"] == "trace-abc-123"


def test_liveness_check(client):
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/does-not-exist")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["success"] is False
