"""Abstract storage backend interface."""

import re
from abc import ABC, abstractmethod
from typing import Optional


class StorageBackend(ABC):
    """Abstract base class for object storage backends.

    Objects are addressed by a durable storage key (``path``). Uploads never
    pass through the API: backends mint time-limited URLs that clients PUT
    object bytes to directly.
    """

    @abstractmethod
    def generate_signed_upload_url(
        self, path: str, content_type: str, expiration_minutes: int
    ) -> str:
        """Mint a time-limited URL accepting a PUT of the object at ``path``.

        Args:
            path: Durable storage key
            content_type: MIME type the upload will declare
            expiration_minutes: Lifetime of the URL

        Returns:
            Write-capable URL
        """
        pass

    @abstractmethod
    def get_object_size(self, path: str) -> Optional[int]:
        """Return the stored size in bytes, or None if the object is missing."""
        pass

    @abstractmethod
    def read_object(self, path: str) -> bytes:
        """Read a stored object's bytes."""
        pass

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Derive the public-facing URL of a stored object."""
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass


def sanitize_path_segment(segment: str) -> str:
    """Remove path traversal and dangerous characters from one key segment."""
    safe = segment.replace("../", "").replace("..\\", "")
    safe = safe.replace("/", "_").replace("\\", "_")
    safe = re.sub(r"[^a-zA-Z0-9._-]", "_", safe)
    return safe[:255]
