"""Client-side photo uploader.

Uploads a guest's batch of files directly to storage through signed URLs
obtained from the upload session API, one file at a time, with progress
reporting, per-file retries and pause/resume/cancel control.
"""

from guestcap.uploader.chunked_uploader import ChunkedUploader
from guestcap.uploader.exceptions import (
    RateLimitExceededError,
    SessionCompleteError,
    SessionCreateError,
    StorageLimitExceededError,
    TransferError,
    UploadAbortedError,
    UploadError,
)
from guestcap.uploader.models import (
    FileStatus,
    FileToUpload,
    LocalFile,
    UploadProgress,
    UploadStatus,
    format_bytes,
)

__all__ = [
    "ChunkedUploader",
    "FileStatus",
    "FileToUpload",
    "LocalFile",
    "UploadProgress",
    "UploadStatus",
    "format_bytes",
    "UploadError",
    "UploadAbortedError",
    "TransferError",
    "SessionCreateError",
    "SessionCompleteError",
    "StorageLimitExceededError",
    "RateLimitExceededError",
]
