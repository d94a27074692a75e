"""Tests for the local object storage routes."""

import time

from guestcap.storage.local import local_backend

PATH = "events/event-123/originals/session-1/file-1.jpg"


def test_put_to_signed_url(client, local_storage):
    """Test uploading bytes to a minted URL."""
    url = local_backend.generate_signed_upload_url(PATH, "image/jpeg", 15)

    response = client.put(url, content=b"\xff\xd8jpeg-data", headers={"Content-Type": "image/jpeg"})

    assert response.status_code == 200
    assert response.json() == {"path": PATH, "size": 11}
    assert (local_storage / PATH).read_bytes() == b"\xff\xd8jpeg-data"


def test_put_replaces_previous_object(client, local_storage):
    """Test that re-sending a file overwrites it."""
    url = local_backend.generate_signed_upload_url(PATH, "image/jpeg", 15)

    client.put(url, content=b"first attempt")
    client.put(url, content=b"retry")

    assert (local_storage / PATH).read_bytes() == b"retry"


def test_put_with_bad_signature(client, local_storage):
    """Test that tampered URLs are refused."""
    expires = int(time.time()) + 60

    response = client.put(
        f"/api/v1/storage/upload/{PATH}",
        params={"expires": expires, "signature": "0" * 64},
        content=b"data",
    )

    assert response.status_code == 403
    assert not (local_storage / PATH).exists()


def test_put_with_expired_url(client, local_storage):
    """Test that expired URLs are refused."""
    expires = int(time.time()) - 10
    signature = local_backend.sign(PATH, expires)

    response = client.put(
        f"/api/v1/storage/upload/{PATH}",
        params={"expires": expires, "signature": signature},
        content=b"data",
    )

    assert response.status_code == 403


def test_put_without_signature(client):
    """Test that unsigned uploads are rejected."""
    response = client.put(f"/api/v1/storage/upload/{PATH}", content=b"data")

    assert response.status_code == 400


def test_get_public_object(client, local_storage):
    """Test serving a stored object."""
    target = local_storage / PATH
    target.parent.mkdir(parents=True)
    target.write_bytes(b"photo")

    response = client.get(f"/api/v1/storage/public/{PATH}")

    assert response.status_code == 200
    assert response.content == b"photo"


def test_get_missing_object(client):
    """Test serving an object that doesn't exist."""
    response = client.get(f"/api/v1/storage/public/{PATH}")

    assert response.status_code == 404


def test_routes_disabled_for_gcs(client, monkeypatch):
    """Test that storage routes only exist for the local backend."""
    from guestcap.core.config import settings

    monkeypatch.setattr(settings, "STORAGE_BACKEND", "gcs")

    response = client.get(f"/api/v1/storage/public/{PATH}")

    assert response.status_code == 404
