"""
Pytest configuration and fixtures.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
from unittest.mock import patch

from compliance_platform.core.database import Base, get_db
from compliance_platform.main import app
from compliance_platform.models import Organization, Assessment
from compliance_platform.services.nist_csf_seeder import ensure_nist_csf_seeded

# Use file-based SQLite for testing (more reliable than in-memory)
TEST_DATABASE_URL = "sqlite:///./test_compliance_platform.db"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    pool_pre_ping=False,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """
    Create all tables and load the NIST CSF catalog once per test session.
    """
    # A previous interrupted run may have left rows behind
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    db = TestingSessionLocal()
    try:
        ensure_nist_csf_seeded(db)
    finally:
        db.close()

    yield

    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function", autouse=True)
def disable_api_key():
    """Disable API key authentication for all tests."""
    with patch("compliance_platform.core.config.settings.API_KEY", None):
        yield


def override_get_db():
    """Override get_db dependency to use test database session."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client():
    """
    Test client with the database dependency pointed at the test database.
    Authentication is disabled, so every request acts as admin.
    """
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client_with_auth():
    """
    Test client with API key authentication enabled (API_KEY="test-key").
    """
    app.dependency_overrides[get_db] = override_get_db
    with patch("compliance_platform.core.config.settings.API_KEY", "test-key"):
        yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def db_session():
    """
    Provide a database session for tests that need direct DB access.
    """
    db = TestingSessionLocal()
    try:
        yield db
        db.rollback()
    finally:
        db.close()


@pytest.fixture(scope="function")
def assessment(db_session):
    """A fresh organization and assessment, so tests can scope queries by assessment_id."""
    organization = Organization(name="Acme Corp", industry="Manufacturing")
    db_session.add(organization)
    db_session.flush()

    record = Assessment(organization_id=organization.id, assessment_name="FY26 CSF Baseline")
    db_session.add(record)
    db_session.commit()
    db_session.refresh(record)
    return record
