"""Shared fixtures for the notra test suite.

Every test gets a fresh in-memory SQLite database. Model, GitHub and memory
calls are patched in the tests that reach them; nothing leaves the process.
"""

import os

# In-memory database and no external credentials before any app imports.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("SUPERMEMORY_API_KEY", None)
os.environ.pop("GITHUB_TOKEN", None)
os.environ["INTEGRATION_ENCRYPTION_KEY"] = "YWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWE="

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from notra.db.database import get_db
from notra.db.integration_service import IntegrationService
from notra.db.models import Base
from notra.main import app


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    """Stands in for notra.db.database.get_session in code that opens its own sessions."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    """FastAPI TestClient with the DB dependency overridden to use the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _no_memory(monkeypatch):
    monkeypatch.delenv("SUPERMEMORY_API_KEY", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


def make_integration(db, organization_id="org_1", owner="acme", repo="widgets", token=None):
    """Integration with one repository; returns (integration, repository)."""
    integration = IntegrationService(db).create_github_integration(
        organization_id, owner, repo, token=token
    )
    return integration, integration.repositories[0]


def make_trigger_body(repository_ids, source_type="cron", output_type="changelog", **source_config):
    if not source_config:
        source_config = (
            {"cron": {"frequency": "daily", "hour": 9, "minute": 0}}
            if source_type == "cron"
            else {"eventTypes": ["release"]}
        )
    return {
        "sourceType": source_type,
        "sourceConfig": source_config,
        "targets": {"repositoryIds": list(repository_ids)},
        "outputType": output_type,
        "enabled": True,
    }
