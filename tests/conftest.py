"""Pytest configuration and shared fixtures."""

import pytest
from fastapi.testclient import TestClient

from guestcap.core.rate_limit import api_rate_limiter, download_rate_limiter, upload_rate_limiter
from guestcap.storage.event_store import EventRecord, event_store
from guestcap.storage.local import local_backend


@pytest.fixture(autouse=True)
def reset_state():
    """Start every test with empty stores and rate limiters."""
    event_store.clear()
    for limiter in (upload_rate_limiter, download_rate_limiter, api_rate_limiter):
        limiter.reset_all()
    yield
    event_store.clear()


@pytest.fixture
def local_storage(tmp_path, monkeypatch):
    """Point the local storage backend at a temporary directory."""
    from guestcap.core.config import settings

    monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")
    monkeypatch.setattr(settings, "PUBLIC_BASE_URL", "http://testserver")
    monkeypatch.setattr(local_backend, "base_path", tmp_path)
    return tmp_path


@pytest.fixture
def client(local_storage):
    """Create test client."""
    from guestcap.main import app

    return TestClient(app)


@pytest.fixture
def event():
    """An active event with the default quota."""
    record = EventRecord(event_id="event-123", name="Anna & Tom's Wedding")
    event_store.create_event(record)
    return record


@pytest.fixture
def guest(event):
    """A guest of the active event."""
    return event_store.create_guest(event.event_id, "Alice")
