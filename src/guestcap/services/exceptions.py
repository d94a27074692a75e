"""Custom exceptions for GuestCap services."""


class GuestCapException(Exception):
    """Base exception for GuestCap services."""
    pass


class InvalidGuestTokenError(GuestCapException):
    """Exception raised when a guest token does not match the guest record."""
    pass


class EventNotFoundError(GuestCapException):
    """Exception raised when an event does not exist."""
    pass


class EventInactiveError(GuestCapException):
    """Exception raised when an event no longer accepts guests or uploads."""
    pass


class StorageLimitExceededError(GuestCapException):
    """Exception raised when a batch would push an event over its storage quota."""

    def __init__(self, used: float, limit: float, requested: float):
        super().__init__("STORAGE_LIMIT_EXCEEDED")
        self.used = used
        self.limit = limit
        self.requested = requested


class SessionNotFoundError(GuestCapException):
    """Exception raised when an upload session does not exist."""
    pass


class InvalidUploadPathError(GuestCapException):
    """Exception raised when a completion reports a path the session never issued."""
    pass


class DestinationMintingError(GuestCapException):
    """Exception raised when no upload destination could be minted for a batch."""
    pass


class NoPhotosError(GuestCapException):
    """Exception raised when an event has no photos to export."""
    pass


class ArchiveError(GuestCapException):
    """Exception raised when an event archive could not be assembled."""
    pass
