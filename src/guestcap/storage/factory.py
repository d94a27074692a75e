"""Storage backend selection."""

from guestcap.core.config import settings
from guestcap.storage.base import StorageBackend
from guestcap.storage.gcs import gcs_backend
from guestcap.storage.local import local_backend


def get_storage_backend() -> StorageBackend:
    """Return the backend configured by STORAGE_BACKEND.

    Raises:
        ValueError: If the configured backend is unknown
    """
    if settings.STORAGE_BACKEND == "gcs":
        return gcs_backend
    if settings.STORAGE_BACKEND == "local":
        return local_backend
    raise ValueError(f"Unknown storage backend: {settings.STORAGE_BACKEND}")
