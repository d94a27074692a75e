"""Event, guest, upload session and photo record tracking store."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple
from uuid import uuid4


class SessionStatus(str, Enum):
    """Upload session status enumeration."""

    ACTIVE = "active"  # Destinations minted, awaiting completion call
    COMPLETED = "completed"  # Completion reconciled


class PhotoStatus(str, Enum):
    """Processing status of a stored photo."""

    PENDING = "pending"  # Awaiting derivative generation


@dataclass
class EventRecord:
    """Event owning photos and a storage quota."""

    event_id: str
    name: str
    is_active: bool = True
    storage_limit_mb: Optional[float] = None
    storage_used_mb: float = 0.0


@dataclass
class GuestRecord:
    """Guest identity issued when joining an event."""

    guest_id: str
    event_id: str
    name: str
    guest_token: str
    created_at: datetime


@dataclass
class UploadSessionRecord:
    """One batch submission attempt."""

    session_id: str
    event_id: str
    guest_id: str
    total_files: int
    status: SessionStatus
    created_at: datetime
    uploaded_files: int = 0
    paths: List[str] = field(default_factory=list)
    completed_at: Optional[datetime] = None


@dataclass
class PhotoRecord:
    """Durable record for a successfully uploaded object."""

    photo_id: str
    event_id: str
    guest_id: str
    upload_session_id: str
    path: str
    url: str
    original_filename: str
    status: PhotoStatus
    created_at: datetime


class EventStore:
    """In-memory store for events and everything uploaded to them."""

    def __init__(self):
        self._events: Dict[str, EventRecord] = {}
        self._guests: Dict[str, GuestRecord] = {}
        self._sessions: Dict[str, UploadSessionRecord] = {}
        self._photos: Dict[str, PhotoRecord] = {}
        self._photos_by_path: Dict[Tuple[str, str], str] = {}

    # Events

    def create_event(self, record: EventRecord) -> None:
        """Store a new event record."""
        self._events[record.event_id] = record

    def get_event(self, event_id: str) -> Optional[EventRecord]:
        return self._events.get(event_id)

    def increment_storage(self, event_id: str, size_bytes: int) -> None:
        """Add ``size_bytes`` to the event's storage usage counter."""
        event = self._events.get(event_id)
        if event is not None:
            event.storage_used_mb += size_bytes / (1024 * 1024)

    # Guests

    def create_guest(self, event_id: str, name: str) -> GuestRecord:
        """Create a guest with a freshly issued opaque token."""
        record = GuestRecord(
            guest_id=str(uuid4()),
            event_id=event_id,
            name=name,
            guest_token=str(uuid4()),
            created_at=datetime.utcnow(),
        )
        self._guests[record.guest_id] = record
        return record

    def get_guest(self, guest_id: str) -> Optional[GuestRecord]:
        return self._guests.get(guest_id)

    # Upload sessions

    def create_session(self, event_id: str, guest_id: str, total_files: int) -> UploadSessionRecord:
        """Persist a new active upload session."""
        record = UploadSessionRecord(
            session_id=str(uuid4()),
            event_id=event_id,
            guest_id=guest_id,
            total_files=total_files,
            status=SessionStatus.ACTIVE,
            created_at=datetime.utcnow(),
        )
        self._sessions[record.session_id] = record
        return record

    def get_session(self, session_id: str) -> Optional[UploadSessionRecord]:
        return self._sessions.get(session_id)

    def delete_session(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def mark_session_completed(self, session_id: str, uploaded_files: int) -> None:
        """Transition an active session to completed; later calls are ignored."""
        session = self._sessions.get(session_id)
        if session is None or session.status == SessionStatus.COMPLETED:
            return
        session.status = SessionStatus.COMPLETED
        session.uploaded_files = uploaded_files
        session.completed_at = datetime.utcnow()

    # Photos

    def get_photo_for_path(self, session_id: str, path: str) -> Optional[PhotoRecord]:
        photo_id = self._photos_by_path.get((session_id, path))
        return self._photos.get(photo_id) if photo_id else None

    def create_photo(self, record: PhotoRecord) -> PhotoRecord:
        """Store a photo, returning the existing one if the session path is taken."""
        existing = self.get_photo_for_path(record.upload_session_id, record.path)
        if existing is not None:
            return existing
        self._photos[record.photo_id] = record
        self._photos_by_path[(record.upload_session_id, record.path)] = record.photo_id
        return record

    def list_photos(self, event_id: str) -> List[PhotoRecord]:
        """List an event's photos in creation order."""
        return [p for p in self._photos.values() if p.event_id == event_id]

    def clear(self) -> None:
        """Drop every record."""
        self._events.clear()
        self._guests.clear()
        self._sessions.clear()
        self._photos.clear()
        self._photos_by_path.clear()


# Singleton instance
event_store = EventStore()
