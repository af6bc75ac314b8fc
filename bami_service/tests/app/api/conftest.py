import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from bami_service.app.dependencies.services import get_case_repository, get_event_channel, get_pipeline_scheduler
from bami_service.app.main import app
from bami_service.infrastructure.ai.openai_collaborator import get_ai_collaborator


@pytest.fixture
def fake_ai():
    return AsyncMock()

@pytest.fixture
def scheduler():
    return MagicMock()

@pytest.fixture
def client(repository, channel, fake_ai, scheduler):
    app.dependency_overrides[get_case_repository] = lambda: repository
    app.dependency_overrides[get_event_channel] = lambda: channel
    app.dependency_overrides[get_pipeline_scheduler] = lambda: scheduler
    app.dependency_overrides[get_ai_collaborator] = lambda: fake_ai
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def created_case(client):
    response = client.post("/api/ingest/leads", json={"product": "credit-card", "applicant": {"name": "Ana"}})
    assert response.status_code == 200
    return response.json()["case"]
