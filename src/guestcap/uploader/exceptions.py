"""Exceptions raised by the client-side uploader."""

from typing import List, Optional


class UploadError(Exception):
    """Base exception for uploader failures."""
    pass


class EmptyQueueError(UploadError):
    """Exception raised when starting a batch with no files."""
    pass


class UploadInProgressError(UploadError):
    """Exception raised when starting a batch that is already running."""
    pass


class UploadAbortedError(UploadError):
    """Exception raised when a transfer is aborted by pause or cancel."""
    pass


class TransferError(UploadError):
    """Exception raised when a file transfer fails after all retries."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SessionCreateError(UploadError):
    """Exception raised when the server refuses to create an upload session."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StorageLimitExceededError(SessionCreateError):
    """Exception raised when a batch would exceed the event's storage quota."""

    def __init__(self, used: float, limit: float, requested: float):
        super().__init__("STORAGE_LIMIT_EXCEEDED", status_code=400)
        self.used = used
        self.limit = limit
        self.requested = requested


class RateLimitExceededError(SessionCreateError):
    """Exception raised when the guest must wait before uploading more files."""

    def __init__(self, retry_after: int):
        super().__init__(f"Rate limit exceeded, retry after {retry_after}s", status_code=429)
        self.retry_after = retry_after


class SessionCompleteError(UploadError):
    """Exception raised when transferred files could not be reconciled.

    The files listed in ``uploaded_paths`` reached storage but have no
    photo records.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        uploaded_paths: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.uploaded_paths = list(uploaded_paths or [])


class UnexpectedUploadError(UploadError):
    """Exception wrapping an unhandled error raised during a batch."""
    pass
