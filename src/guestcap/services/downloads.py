"""Event photo archive export."""

import asyncio
import io
import logging
import re
import zipfile
from typing import Optional, Tuple

from guestcap.services.exceptions import ArchiveError, EventNotFoundError, NoPhotosError
from guestcap.storage.base import StorageBackend
from guestcap.storage.event_store import EventStore, event_store
from guestcap.storage.factory import get_storage_backend

logger = logging.getLogger(__name__)


def archive_filename(event_name: str) -> str:
    """Filesystem-safe ZIP name derived from the event name."""
    safe = re.sub(r"[^a-z0-9]", "-", event_name, flags=re.IGNORECASE)
    safe = re.sub(r"-+", "-", safe)[:50]
    return f"{safe}-photos.zip"


async def build_event_archive(
    event_id: str,
    store: Optional[EventStore] = None,
    backend: Optional[StorageBackend] = None,
) -> Tuple[str, bytes]:
    """Bundle every photo of an event into a deflate-compressed ZIP.

    Photos that can't be read from storage are skipped.

    Returns:
        Tuple of (archive filename, archive bytes)

    Raises:
        EventNotFoundError: If the event does not exist
        NoPhotosError: If the event has no photos
        ArchiveError: If none of the photos could be read
    """
    store = store if store is not None else event_store
    backend = backend if backend is not None else get_storage_backend()

    event = store.get_event(event_id)
    if event is None:
        raise EventNotFoundError("Event not found")

    photos = store.list_photos(event_id)
    if not photos:
        raise NoPhotosError("No photos to download")

    buffer = io.BytesIO()
    added = 0
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=6) as archive:
        for index, photo in enumerate(photos):
            try:
                data = await asyncio.to_thread(backend.read_object, photo.path)
            except Exception as e:
                logger.error(
                    f"Error downloading {photo.path}: {e}",
                    extra={"photo_id": photo.photo_id, "event_id": event_id},
                )
                continue

            archive.writestr(photo.original_filename or f"photo_{index + 1}.jpg", data)
            added += 1

    if added == 0:
        raise ArchiveError("Failed to download any photos")

    logger.info(
        f"Event archive built: event_id={event_id}, photos={added}/{len(photos)}",
        extra={"event_id": event_id},
    )
    return archive_filename(event.name), buffer.getvalue()
