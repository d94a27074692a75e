"""Tests for the guest endpoints."""

from guestcap.core.rate_limit import api_rate_limiter
from guestcap.storage.event_store import event_store


def test_create_guest(client, event):
    """Test joining an event."""
    response = client.post("/api/v1/guest/create", json={"name": "  Alice ", "eventId": event.event_id})

    assert response.status_code == 200
    data = response.json()
    assert data["guest"]["name"] == "Alice"
    assert data["guest"]["event_id"] == event.event_id
    assert data["event"] == {"id": "event-123", "name": "Anna & Tom's Wedding"}

    stored = event_store.get_guest(data["guest"]["id"])
    assert stored.guest_token == data["guest"]["guest_token"]


def test_create_guest_blank_name(client, event):
    """Test that a blank name is rejected."""
    response = client.post("/api/v1/guest/create", json={"name": "   ", "eventId": event.event_id})

    assert response.status_code == 400
    assert response.json()["error"] == "Name and eventId are required"


def test_create_guest_missing_fields(client):
    """Test that missing fields are rejected."""
    response = client.post("/api/v1/guest/create", json={"name": "Alice"})

    assert response.status_code == 400


def test_create_guest_unknown_event(client):
    """Test joining an event that doesn't exist."""
    response = client.post("/api/v1/guest/create", json={"name": "Alice", "eventId": "nope"})

    assert response.status_code == 404
    assert response.json() == {"error": "Event not found"}


def test_create_guest_inactive_event(client, event):
    """Test joining a closed event."""
    event.is_active = False

    response = client.post("/api/v1/guest/create", json={"name": "Alice", "eventId": event.event_id})

    assert response.status_code == 403


def test_create_guest_rate_limited(client, event, monkeypatch):
    """Test the per-client API limit."""
    monkeypatch.setattr(api_rate_limiter, "limit", 1)

    client.post("/api/v1/guest/create", json={"name": "Alice", "eventId": event.event_id})
    response = client.post("/api/v1/guest/create", json={"name": "Bob", "eventId": event.event_id})

    assert response.status_code == 429
    assert "Retry-After" in response.headers
