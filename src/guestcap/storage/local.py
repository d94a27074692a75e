"""Local filesystem storage backend."""

import hashlib
import hmac
import time
from pathlib import Path
from typing import AsyncIterator, Optional
from urllib.parse import quote, urlencode

from guestcap.core.config import settings
from guestcap.storage.base import StorageBackend


class LocalStorageBackend(StorageBackend):
    """Local filesystem storage backend.

    Stands in for a cloud bucket during development: upload URLs point at
    this service's own storage routes and carry an HMAC-SHA256 signature
    over the object key and expiry time.
    """

    def __init__(self):
        self.base_path = Path(settings.LOCAL_STORAGE_PATH)

    def _object_path(self, path: str) -> Path:
        """Resolve a storage key under base_path, refusing traversal."""
        base = self.base_path.resolve()
        target = (base / path).resolve()
        if target == base or base not in target.parents:
            raise ValueError(f"Invalid storage path: {path}")
        return target

    def sign(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode()
        return hmac.new(settings.URL_SIGNING_SECRET.encode(), message, hashlib.sha256).hexdigest()

    def verify_signature(self, path: str, expires: int, signature: str) -> bool:
        """Check an upload URL signature and that it has not expired."""
        if expires < int(time.time()):
            return False
        return hmac.compare_digest(self.sign(path, expires), signature)

    def generate_signed_upload_url(
        self, path: str, content_type: str, expiration_minutes: int
    ) -> str:
        self._object_path(path)
        expires = int(time.time()) + expiration_minutes * 60
        query = urlencode({"expires": expires, "signature": self.sign(path, expires)})
        return f"{settings.PUBLIC_BASE_URL}/api/v1/storage/upload/{quote(path)}?{query}"

    async def store_object(self, path: str, chunks: AsyncIterator[bytes]) -> int:
        """Stream an object to disk, replacing any previous version.

        Returns:
            Number of bytes written
        """
        target = self._object_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")

        size = 0
        try:
            with open(partial, "wb") as f:
                async for chunk in chunks:
                    f.write(chunk)
                    size += len(chunk)
            partial.replace(target)
        except BaseException:
            # Includes cancellation when the client disconnects mid-body
            partial.unlink(missing_ok=True)
            raise
        return size

    def get_object_size(self, path: str) -> Optional[int]:
        target = self._object_path(path)
        if not target.is_file():
            return None
        return target.stat().st_size

    def read_object(self, path: str) -> bytes:
        return self._object_path(path).read_bytes()

    def public_url(self, path: str) -> str:
        return f"{settings.PUBLIC_BASE_URL}/api/v1/storage/public/{quote(path)}"

    def get_backend_name(self) -> str:
        return "local"


# Singleton instance
local_backend = LocalStorageBackend()
