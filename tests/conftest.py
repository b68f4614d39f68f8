import os

# Must be set before connection_api.config is imported
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("OTEL_ENABLED", "false")
os.environ.setdefault("SESSION_SECRET", "test-secret")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from connection_api.dependencies import get_notifier, get_storage  # noqa: E402
from connection_api.main import app  # noqa: E402
from connection_api.storage.memory import InMemoryStorage  # noqa: E402

NOW = datetime(2026, 3, 1, 12, 0, 0)


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent = []

    async def send(self, notification) -> None:
        self.sent.append(notification)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(storage, notifier):
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_client(client):
    """Extra clients sharing the same overrides, each with its own cookie jar."""
    def _make():
        return TestClient(app)
    return _make


def register(client, username, interest_tags=(), password="password123"):
    resp = client.post(
        "/api/auth/register",
        json={
            "username": username,
            "password": password,
            "displayName": username.title(),
            "interestTags": list(interest_tags),
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]
