"""Tests for event archive downloads."""

import io
import zipfile
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from guestcap.core.rate_limit import download_rate_limiter
from guestcap.services.downloads import archive_filename, build_event_archive
from guestcap.services.exceptions import ArchiveError, EventNotFoundError, NoPhotosError
from guestcap.storage.event_store import EventStore, EventRecord, PhotoRecord, PhotoStatus, event_store


def add_photo(store, local_storage, name, data):
    path = f"events/event-123/originals/session-1/{name}"
    if local_storage is not None:
        target = local_storage / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    store.create_photo(
        PhotoRecord(
            photo_id=f"photo-{name}",
            event_id="event-123",
            guest_id="guest-1",
            upload_session_id="session-1",
            path=path,
            url=f"https://cdn.test/{path}",
            original_filename=name,
            status=PhotoStatus.PENDING,
            created_at=datetime.utcnow(),
        )
    )


def test_archive_filename():
    """Test that event names become safe file names."""
    assert archive_filename("Anna & Tom's Wedding") == "Anna-Tom-s-Wedding-photos.zip"
    assert archive_filename("x" * 80) == "x" * 50 + "-photos.zip"


def test_download_event(client, event, local_storage):
    """Test downloading an event's photos as a ZIP."""
    add_photo(event_store, local_storage, "a.jpg", b"photo-a")
    add_photo(event_store, local_storage, "b.HEIC", b"photo-b")

    response = client.get("/api/v1/download/event/event-123")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert response.headers["content-disposition"] == (
        'attachment; filename="Anna-Tom-s-Wedding-photos.zip"'
    )
    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        assert archive.namelist() == ["a.jpg", "b.HEIC"]
        assert archive.read("a.jpg") == b"photo-a"


def test_download_skips_unreadable_photos(client, event, local_storage):
    """Test that photos missing from storage are left out."""
    add_photo(event_store, local_storage, "a.jpg", b"photo-a")
    add_photo(event_store, None, "gone.jpg", b"")

    response = client.get("/api/v1/download/event/event-123")

    assert response.status_code == 200
    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        assert archive.namelist() == ["a.jpg"]


def test_download_unknown_event(client):
    response = client.get("/api/v1/download/event/missing")

    assert response.status_code == 404


def test_download_event_without_photos(client, event):
    """Test downloading an empty event."""
    response = client.get("/api/v1/download/event/event-123")

    assert response.status_code == 400
    assert response.json() == {"error": "No photos to download"}


def test_download_when_no_photo_readable(client, event, local_storage):
    add_photo(event_store, None, "gone.jpg", b"")

    response = client.get("/api/v1/download/event/event-123")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to download any photos"}


def test_download_rate_limited(client, event, local_storage, monkeypatch):
    """Test the per-event download limit."""
    add_photo(event_store, local_storage, "a.jpg", b"photo-a")
    monkeypatch.setattr(download_rate_limiter, "limit", 1)

    assert client.get("/api/v1/download/event/event-123").status_code == 200
    response = client.get("/api/v1/download/event/event-123")

    assert response.status_code == 429
    assert response.json()["error"] == "Rate limit exceeded"


class TestBuildEventArchive:
    """Tests for archive building against an injected store and backend."""

    @pytest.fixture
    def store(self):
        store = EventStore()
        store.create_event(EventRecord(event_id="event-123", name="Party"))
        return store

    @pytest.mark.asyncio
    async def test_reads_through_backend(self, store):
        backend = MagicMock()
        backend.read_object.return_value = b"bytes"
        add_photo(store, None, "a.jpg", b"")

        filename, data = await build_event_archive("event-123", store=store, backend=backend)

        assert filename == "Party-photos.zip"
        backend.read_object.assert_called_once_with("events/event-123/originals/session-1/a.jpg")
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            info = archive.getinfo("a.jpg")
            assert info.compress_type == zipfile.ZIP_DEFLATED

    @pytest.mark.asyncio
    async def test_errors(self, store):
        backend = MagicMock()
        backend.read_object.side_effect = IOError("boom")

        with pytest.raises(EventNotFoundError):
            await build_event_archive("missing", store=store, backend=backend)
        with pytest.raises(NoPhotosError):
            await build_event_archive("event-123", store=store, backend=backend)

        add_photo(store, None, "a.jpg", b"")
        with pytest.raises(ArchiveError):
            await build_event_archive("event-123", store=store, backend=backend)
