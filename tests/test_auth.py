"""
Tests for API key authentication and RBAC.
"""
from fastapi import status

from compliance_platform.core.auth import hash_api_key
from compliance_platform.core.roles import LEGACY_ROLE_MAP, normalize_role
from compliance_platform.models.api_key import APIKey


def _add_key(db_session, raw_key: str, role: str, is_active: bool = True) -> APIKey:
    key = APIKey(key_hash=hash_api_key(raw_key), label=f"{role} key", role=role, is_active=is_active)
    db_session.add(key)
    db_session.commit()
    return key


def test_request_without_api_key_fails(client_with_auth):
    """Requests without a key are rejected when API_KEY is configured."""
    response = client_with_auth.get("/api/risks")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Missing API key"


def test_request_with_invalid_api_key_fails(client_with_auth):
    response = client_with_auth.get("/api/risks", headers={"X-API-Key": "invalid-key"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Invalid API key"


def test_static_api_key_is_admin(client_with_auth):
    response = client_with_auth.get("/api/auth/me", headers={"X-API-Key": "test-key"})

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["role"] == "admin"
    assert data["source"] == "static"
    assert data["is_admin"] is True


def test_viewer_can_read_but_not_write(client_with_auth, db_session):
    _add_key(db_session, "viewer-rbac-key", "viewer")
    headers = {"X-API-Key": "viewer-rbac-key"}

    assert client_with_auth.get("/api/risks", headers=headers).status_code == status.HTTP_200_OK

    response = client_with_auth.post("/api/risks", headers=headers, json={"risk_description": "Nope"})
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == "Insufficient permissions. Required role: operator"


def test_operator_can_create_but_not_delete(client_with_auth, db_session):
    _add_key(db_session, "operator-rbac-key", "operator")
    headers = {"X-API-Key": "operator-rbac-key"}

    created = client_with_auth.post("/api/risks", headers=headers, json={"risk_description": "Operator risk"})
    assert created.status_code == status.HTTP_201_CREATED

    risk_pk = created.json()["data"]["id"]
    response = client_with_auth.delete(f"/api/risks/{risk_pk}", headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_security_analyst_can_delete(client_with_auth, db_session):
    _add_key(db_session, "analyst-rbac-key", "security_analyst")
    headers = {"X-API-Key": "analyst-rbac-key"}

    created = client_with_auth.post("/api/risks", headers=headers, json={"risk_description": "Analyst risk"})
    risk_pk = created.json()["data"]["id"]

    response = client_with_auth.delete(f"/api/risks/{risk_pk}", headers=headers)
    assert response.status_code == status.HTTP_200_OK


def test_membership_role_is_normalized(client_with_auth, db_session):
    """A key stored with the member membership role behaves as operator."""
    _add_key(db_session, "member-role-key", "member")

    response = client_with_auth.get("/api/auth/me", headers={"X-API-Key": "member-role-key"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["role"] == "operator"


def test_read_only_is_not_a_mapped_role():
    assert "read_only" not in LEGACY_ROLE_MAP
    assert normalize_role("owner") == "admin"
    assert normalize_role("read_only") == "viewer"


def test_inactive_db_key_is_rejected(client_with_auth, db_session):
    _add_key(db_session, "inactive-key", "admin", is_active=False)

    response = client_with_auth.get("/api/risks", headers={"X-API-Key": "inactive-key"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_db_key_use_updates_last_used_at(client_with_auth, db_session):
    key = _add_key(db_session, "last-used-key", "viewer")
    assert key.last_used_at is None

    client_with_auth.get("/api/risks", headers={"X-API-Key": "last-used-key"})

    db_session.expire_all()
    refreshed = db_session.query(APIKey).filter(APIKey.id == key.id).first()
    assert refreshed.last_used_at is not None
