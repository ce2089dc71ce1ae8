"""
Shared fixtures: environment, in-memory database, moto-backed blob storage,
and an authenticated API client.
"""

from __future__ import annotations

import os

# Settings are read at import time; configure before anything imports ``app``
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["STORAGE_CONNECTION_STRING"] = ""
os.environ["STORAGE_ACCOUNT_NAME"] = "testing"
os.environ["STORAGE_ACCOUNT_KEY"] = "testing"
os.environ["STORAGE_REGION"] = "us-east-1"
os.environ["STORAGE_INIT_ON_STARTUP"] = "false"
os.environ["STORAGE_SELF_TEST_ON_STARTUP"] = "false"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["DEBUG"] = "true"

from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

from app.db.database import Base, SessionLocal, engine
from app.services.ai_service import AIProvider
from app.services.blob_storage_service import BlobStorageService
from app.services.blob_store import BlobStorageConfig

PASSWORD = "Passw0rd!"


# =============================================================================
# STORAGE
# =============================================================================


@pytest.fixture
def storage_config() -> BlobStorageConfig:
    return BlobStorageConfig.from_account_key("testing", "testing", region="us-east-1")


@pytest.fixture
def blob_storage(storage_config):
    """BlobStorageService over moto S3 with every container created."""
    with mock_aws():
        service = BlobStorageService(storage_config)
        service.initialize_containers()
        yield service


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


# =============================================================================
# API
# =============================================================================


@pytest.fixture
def client(db, blob_storage):
    from app.main import app

    with TestClient(app) as test_client:
        app.state.blob_storage = blob_storage
        yield test_client


def register_and_login(client: TestClient, username: str) -> Dict[str, str]:
    response = client.post(
        "/api/v1/auth/register",
        json={"username": username, "password": PASSWORD, "email": f"{username}@lawfirm.com"},
    )
    assert response.status_code == 201, response.text

    response = client.post("/api/v1/auth/login", json={"username": username, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def auth_headers(client) -> Dict[str, str]:
    return register_and_login(client, "alice")


@pytest.fixture
def other_headers(client) -> Dict[str, str]:
    return register_and_login(client, "bob")


@pytest.fixture
def case_id(client, auth_headers) -> str:
    response = client.post(
        "/api/v1/cases/",
        json={"client_name": "Rahul Sharma", "case_number": "PI-2025-001", "case_type": "Motor Vehicle"},
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


# =============================================================================
# AI
# =============================================================================


class FakeAIProvider(AIProvider):
    """Returns canned replies and records every prompt it was sent."""

    name = "fake"

    def __init__(self, reply: str = "ok"):
        self.reply = reply
        self.calls: List[Dict[str, Any]] = []

    def _complete(self, messages, system_prompt: Optional[str] = None, json_mode: bool = False) -> str:
        self.calls.append({"messages": messages, "system_prompt": system_prompt, "json_mode": json_mode})
        return self.reply


@pytest.fixture
def fake_ai(monkeypatch) -> FakeAIProvider:
    """Route every endpoint's AI calls to one FakeAIProvider."""
    provider = FakeAIProvider()
    for module in (
        "app.api.v1.endpoints.documents",
        "app.api.v1.endpoints.chat",
        "app.api.v1.endpoints.demand_letters",
    ):
        monkeypatch.setattr(f"{module}.create_ai_service", lambda user: provider)
    return provider
