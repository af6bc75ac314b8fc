# Shared fixtures; environment is pinned before the application settings load
import os

os.environ.setdefault("OTEL_CONSOLE_EXPORTERS_ENABLED", "false")
os.environ["BAMI_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""

import pytest

from bami_service.app.service.cases import CaseService
from bami_service.infrastructure.events import EventChannel
from bami_service.infrastructure.repositories.in_memory import InMemoryCaseRepository


class RecordingSink:
    """Test sink that keeps every frame written to it."""

    def __init__(self):
        self.frames = []
        self._closed = False

    @property
    def closed(self):
        return self._closed

    def write(self, frame):
        if self._closed:
            raise RuntimeError("sink closed")
        self.frames.append(frame)

    def close(self):
        self._closed = True


@pytest.fixture
def repository():
    return InMemoryCaseRepository()

@pytest.fixture
def case_service(repository):
    return CaseService(repository, default_owner="María")

@pytest.fixture
def channel():
    return EventChannel(keepalive_interval=3600)

@pytest.fixture
def recording_sink():
    return RecordingSink()
