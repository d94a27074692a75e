"""Upload session and storage quota service.

This is the trust boundary of the upload pipeline. Creating a session
authenticates the guest, enforces the event's storage quota and mints one
time-limited upload destination per declared file. Completing a session
turns the paths the client reports as transferred into photo records and
updates the event's storage accounting.

The quota check reads usage that is only committed at completion, so two
concurrent create calls for the same event can both pass it.
"""

import asyncio
import hmac
import logging
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from guestcap.core.config import settings
from guestcap.core.logging import upload_session_context
from guestcap.models.upload import (
    CompleteSessionRequest,
    CompleteSessionResponse,
    CreateSessionRequest,
    CreateSessionResponse,
    FileDescriptor,
    SignedUrl,
)
from guestcap.services.exceptions import (
    DestinationMintingError,
    EventInactiveError,
    EventNotFoundError,
    InvalidGuestTokenError,
    InvalidUploadPathError,
    SessionNotFoundError,
    StorageLimitExceededError,
)
from guestcap.storage.base import StorageBackend, sanitize_path_segment
from guestcap.storage.event_store import (
    EventRecord,
    EventStore,
    GuestRecord,
    PhotoRecord,
    PhotoStatus,
    event_store,
)
from guestcap.storage.factory import get_storage_backend

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024
DEFAULT_EXTENSION = "jpg"


def tokens_match(expected: str, provided: str) -> bool:
    """Exact comparison of two opaque guest tokens."""
    return hmac.compare_digest(expected.encode(), provided.encode())


def build_object_path(event_id: str, session_id: str, file: FileDescriptor) -> str:
    """Storage key for a file: events/{event}/originals/{session}/{file_id}.{ext}"""
    extension = file.name.rsplit(".", 1)[-1] if "." in file.name else DEFAULT_EXTENSION
    extension = sanitize_path_segment(extension) or DEFAULT_EXTENSION
    file_id = sanitize_path_segment(file.id)
    return f"events/{event_id}/originals/{session_id}/{file_id}.{extension}"


class UploadSessionService:
    """Creates and reconciles upload sessions."""

    def __init__(
        self,
        store: Optional[EventStore] = None,
        backend: Optional[StorageBackend] = None,
    ):
        self.store = store if store is not None else event_store
        self._backend = backend

    @property
    def backend(self) -> StorageBackend:
        return self._backend if self._backend is not None else get_storage_backend()

    def authenticate_guest(self, guest_id: str, guest_token: str, event_id: str) -> GuestRecord:
        """Require (guest_id, guest_token, event_id) to match a stored guest.

        Raises:
            InvalidGuestTokenError: If any part of the triple does not match
        """
        guest = self.store.get_guest(guest_id)
        if guest is None or guest.event_id != event_id or not tokens_match(guest.guest_token, guest_token):
            raise InvalidGuestTokenError("Invalid guest token")
        return guest

    def get_active_event(self, event_id: str) -> EventRecord:
        """Load an event that still accepts uploads.

        Raises:
            EventNotFoundError: If the event does not exist
            EventInactiveError: If the event's is_active flag is off
        """
        event = self.store.get_event(event_id)
        if event is None:
            raise EventNotFoundError("Event not found")
        if event.is_active is False:
            raise EventInactiveError("Event is not active")
        return event

    def check_quota(self, event: EventRecord, files: List[FileDescriptor]) -> None:
        """Reject a batch whose declared sizes would exceed the event quota.

        Raises:
            StorageLimitExceededError: With used, limit and requested megabytes
        """
        requested_mb = sum(f.size for f in files) / BYTES_PER_MB
        used_mb = event.storage_used_mb or 0
        limit_mb = event.storage_limit_mb or settings.DEFAULT_STORAGE_LIMIT_MB

        if used_mb + requested_mb > limit_mb:
            logger.warning(
                "Storage limit exceeded",
                extra={
                    "event_id": event.event_id,
                    "used_mb": used_mb,
                    "limit_mb": limit_mb,
                    "requested_mb": requested_mb,
                },
            )
            raise StorageLimitExceededError(used=used_mb, limit=limit_mb, requested=requested_mb)

    async def create_session(self, request: CreateSessionRequest) -> CreateSessionResponse:
        """Authenticate, check quota, persist a session and mint its destinations."""
        self.authenticate_guest(request.guest_id, request.guest_token, request.event_id)
        event = self.get_active_event(request.event_id)
        self.check_quota(event, request.files)

        session = self.store.create_session(
            event_id=event.event_id,
            guest_id=request.guest_id,
            total_files=len(request.files),
        )
        upload_session_context.set(session.session_id)

        minted = await asyncio.gather(
            *(self._mint_destination(event.event_id, session.session_id, f) for f in request.files)
        )
        destinations = [d for d in minted if d is not None]

        if not destinations:
            self.store.delete_session(session.session_id)
            raise DestinationMintingError("Failed to create upload URLs")

        session.paths = [d.path for d in destinations]

        logger.info(
            f"Upload session created: session_id={session.session_id}, "
            f"files={len(request.files)}, destinations={len(destinations)}",
            extra={"event_id": event.event_id, "guest_id": request.guest_id},
        )

        return CreateSessionResponse(session_id=session.session_id, signed_urls=destinations)

    async def _mint_destination(
        self, event_id: str, session_id: str, file: FileDescriptor
    ) -> Optional[SignedUrl]:
        path = build_object_path(event_id, session_id, file)
        try:
            url = await asyncio.to_thread(
                self.backend.generate_signed_upload_url,
                path,
                file.type or "application/octet-stream",
                settings.SIGNED_URL_EXPIRATION_MINUTES,
            )
        except Exception as e:
            logger.error(
                f"Failed to create signed URL: {e}",
                extra={"file_id": file.id, "path": path},
                exc_info=True,
            )
            return None
        return SignedUrl(file_id=file.id, url=url, path=path)

    async def complete_session(self, request: CompleteSessionRequest) -> CompleteSessionResponse:
        """Turn reported paths into photo records and commit storage usage.

        Photo records are keyed by (session, path), so repeating a completion
        returns the records from the first call instead of duplicating them.
        """
        session = self.store.get_session(request.session_id)
        if session is None:
            raise SessionNotFoundError("Session not found")
        upload_session_context.set(session.session_id)

        guest = self.store.get_guest(session.guest_id)
        if guest is None or not tokens_match(guest.guest_token, request.guest_token):
            raise InvalidGuestTokenError("Invalid guest token")

        paths = list(dict.fromkeys(request.uploaded_paths))
        unknown = [p for p in paths if p not in session.paths]
        if unknown:
            raise InvalidUploadPathError(f"Path not issued for this session: {unknown[0]}")

        photos: List[PhotoRecord] = []
        new_paths: List[str] = []
        for path in paths:
            existing = self.store.get_photo_for_path(session.session_id, path)
            if existing is not None:
                photos.append(existing)
                continue

            photo = self.store.create_photo(
                PhotoRecord(
                    photo_id=str(uuid4()),
                    event_id=session.event_id,
                    guest_id=session.guest_id,
                    upload_session_id=session.session_id,
                    path=path,
                    url=self.backend.public_url(path),
                    original_filename=path.split("/")[-1] or "unknown",
                    status=PhotoStatus.PENDING,
                    created_at=datetime.utcnow(),
                )
            )
            photos.append(photo)
            new_paths.append(path)

        total_bytes = await self._measure_stored_bytes(new_paths)
        if total_bytes > 0:
            self.store.increment_storage(session.event_id, total_bytes)

        self.store.mark_session_completed(session.session_id, uploaded_files=len(paths))

        logger.info(
            f"Upload session completed: session_id={session.session_id}, "
            f"photos={len(photos)}, new={len(new_paths)}, bytes={total_bytes}",
            extra={"event_id": session.event_id, "guest_id": session.guest_id},
        )

        return CompleteSessionResponse(
            photos_created=len(photos),
            photo_ids=[p.photo_id for p in photos],
        )

    async def _measure_stored_bytes(self, paths: List[str]) -> int:
        """Sum actual object sizes, skipping objects whose size can't be read."""
        total = 0
        for path in paths:
            try:
                size = await asyncio.to_thread(self.backend.get_object_size, path)
            except Exception as e:
                logger.warning(f"Could not read stored size of {path}: {e}")
                continue
            total += size or 0
        return total


# Singleton instance
upload_session_service = UploadSessionService()
