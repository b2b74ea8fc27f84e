"""
Tests for API key management endpoints.
"""
from fastapi import status

from compliance_platform.core.auth import hash_api_key, verify_api_key_hash
from compliance_platform.models.activity_log import ActivityLog
from compliance_platform.models.api_key import APIKey

ADMIN = {"X-API-Key": "test-key"}


def test_list_api_keys_requires_admin(client_with_auth, db_session):
    raw_key = "viewer-list-key"
    db_session.add(APIKey(key_hash=hash_api_key(raw_key), label="Viewer", role="viewer", is_active=True))
    db_session.commit()

    response = client_with_auth.get("/api/api-keys", headers={"X-API-Key": raw_key})

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_admin_can_list_api_keys(client_with_auth, db_session):
    db_session.add(APIKey(key_hash=hash_api_key("list-key-1"), label="Key 1", role="viewer", is_active=True))
    db_session.add(APIKey(key_hash=hash_api_key("list-key-2"), label="Key 2", role="admin", is_active=True))
    db_session.commit()

    response = client_with_auth.get("/api/api-keys", headers=ADMIN)

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["count"] >= 2
    for item in body["data"]:
        assert item["key_masked"].endswith("...")
        assert "last_used_at" in item


def test_admin_can_create_api_key(client_with_auth, db_session):
    response = client_with_auth.post(
        "/api/api-keys",
        headers=ADMIN,
        json={"name": "Assessor laptop", "role": "operator"},
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()["data"]
    assert data["name"] == "Assessor laptop"
    assert data["role"] == "operator"
    assert data["is_active"] is True
    assert data["key"].startswith("cp_")

    db_key = db_session.query(APIKey).filter(APIKey.id == data["id"]).first()
    assert db_key is not None
    assert db_key.key_hash != data["key"]
    assert verify_api_key_hash(data["key"], db_key.key_hash)

    # The new key authenticates with its role
    me = client_with_auth.get("/api/auth/me", headers={"X-API-Key": data["key"]})
    assert me.json()["data"]["role"] == "operator"


def test_create_api_key_is_logged(client_with_auth, db_session):
    response = client_with_auth.post(
        "/api/api-keys",
        headers=ADMIN,
        json={"name": "Audited key", "role": "viewer"},
    )
    key_id = response.json()["data"]["id"]

    entry = (
        db_session.query(ActivityLog)
        .filter(ActivityLog.action == "api_key_create", ActivityLog.resource_id == key_id)
        .first()
    )
    assert entry is not None
    assert entry.actor_source == "static"
    assert entry.details["role"] == "viewer"


def test_admin_can_update_api_key(client_with_auth, db_session):
    key = APIKey(key_hash=hash_api_key("update-me-key"), label="Old", role="viewer", is_active=True)
    db_session.add(key)
    db_session.commit()

    response = client_with_auth.patch(
        f"/api/api-keys/{key.id}",
        headers=ADMIN,
        json={"label": "New", "role": "security_analyst"},
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["name"] == "New"
    assert data["role"] == "security_analyst"


def test_delete_api_key_deactivates(client_with_auth, db_session):
    key = APIKey(key_hash=hash_api_key("delete-me-key"), label="Temp", role="viewer", is_active=True)
    db_session.add(key)
    db_session.commit()

    response = client_with_auth.delete(f"/api/api-keys/{key.id}", headers=ADMIN)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["is_active"] is False

    rejected = client_with_auth.get("/api/risks", headers={"X-API-Key": "delete-me-key"})
    assert rejected.status_code == status.HTTP_401_UNAUTHORIZED


def test_update_missing_api_key_returns_404(client_with_auth):
    response = client_with_auth.patch("/api/api-keys/999999", headers=ADMIN, json={"label": "x"})

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["success"] is False
