"""Upload progress and task models for the client-side uploader."""

import math
import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional
from uuid import uuid4

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class UploadStatus(str, Enum):
    """Status of a whole batch."""

    IDLE = "idle"
    UPLOADING = "uploading"
    PROCESSING = "processing"  # Transfers settled, reconciling the session
    COMPLETE = "complete"
    ERROR = "error"
    PAUSED = "paused"


class FileStatus(str, Enum):
    """Status of one file in a batch."""

    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class LocalFile:
    """A local file to upload, held either in memory or on disk."""

    name: str
    size: int
    content_type: str = DEFAULT_CONTENT_TYPE
    data: Optional[bytes] = None
    path: Optional[Path] = None

    @classmethod
    def from_path(cls, path: "Path | str", content_type: Optional[str] = None) -> "LocalFile":
        path = Path(path)
        if content_type is None:
            content_type = mimetypes.guess_type(path.name)[0] or DEFAULT_CONTENT_TYPE
        return cls(name=path.name, size=path.stat().st_size, content_type=content_type, path=path)

    @classmethod
    def from_bytes(cls, name: str, data: bytes, content_type: Optional[str] = None) -> "LocalFile":
        if content_type is None:
            content_type = mimetypes.guess_type(name)[0] or DEFAULT_CONTENT_TYPE
        return cls(name=name, size=len(data), content_type=content_type, data=data)

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        """Yield the file's bytes in chunks of at most ``chunk_size``."""
        if self.data is not None:
            for offset in range(0, len(self.data), chunk_size):
                yield self.data[offset:offset + chunk_size]
            return

        if self.path is None:
            raise ValueError(f"LocalFile {self.name!r} has neither data nor path")

        with open(self.path, "rb") as f:
            while chunk := f.read(chunk_size):
                yield chunk


@dataclass
class FileToUpload:
    """One file queued in a batch."""

    file: LocalFile
    id: str
    progress: int = 0
    status: FileStatus = FileStatus.PENDING
    error: Optional[str] = None

    @classmethod
    def create(cls, file: LocalFile) -> "FileToUpload":
        return cls(file=file, id=str(uuid4()))


@dataclass(frozen=True)
class UploadProgress:
    """Snapshot of a batch's progress.

    ``overall_progress`` is weighted by bytes, not by file count.
    """

    total_files: int
    completed_files: int
    current_file_name: str
    current_file_progress: int
    overall_progress: int
    bytes_uploaded: int
    bytes_total: int
    status: UploadStatus
    error: Optional[str] = None


def percent(part: float, total: float) -> int:
    """Rounded percentage of ``part`` in ``total``; an empty total counts as done."""
    if total <= 0:
        return 100
    return round(part / total * 100)


def format_bytes(size_bytes: int) -> str:
    """Format a byte count as a human readable string (e.g. ``1.5 MB``)."""
    if size_bytes == 0:
        return "0 B"
    k = 1024
    sizes = ["B", "KB", "MB", "GB"]
    i = min(int(math.floor(math.log(size_bytes) / math.log(k))), len(sizes) - 1)
    value = round(size_bytes / math.pow(k, i), 1)
    return f"{value:g} {sizes[i]}"
