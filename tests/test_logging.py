"""Tests for structured logging and exception hierarchies."""

import json
import logging
import sys

import pytest

from guestcap.core.logging import (
    QUIET_LOGGERS,
    SERVER_LOGGERS,
    CloudLoggingFormatter,
    setup_logging,
    upload_session_context,
)
from guestcap.services import exceptions as service_exceptions
from guestcap.uploader import exceptions as uploader_exceptions


def make_record(msg="Upload session created", exc_info=None, **extra):
    record = logging.LogRecord(
        name="guestcap.services.upload_sessions",
        level=logging.INFO if exc_info is None else logging.ERROR,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_outputs_single_line_json():
    """Test the Cloud Logging JSON layout."""
    output = CloudLoggingFormatter().format(make_record(event_id="event-1", files=3))

    assert "\n" not in output
    entry = json.loads(output)
    assert entry["severity"] == "INFO"
    assert entry["message"] == "Upload session created"
    assert entry["logger"] == "guestcap.services.upload_sessions"
    assert entry["event_id"] == "event-1"
    assert entry["files"] == 3
    assert "upload_session_id" not in entry


def test_formatter_includes_upload_session():
    token = upload_session_context.set("session-42")
    try:
        entry = json.loads(CloudLoggingFormatter().format(make_record()))
    finally:
        upload_session_context.reset(token)

    assert entry["upload_session_id"] == "session-42"


def test_formatter_includes_exception():
    try:
        raise RuntimeError("signBlob unavailable")
    except RuntimeError:
        record = make_record("Failed to create signed URL", exc_info=sys.exc_info())

    entry = json.loads(CloudLoggingFormatter().format(record))

    assert entry["severity"] == "ERROR"
    assert entry["exception_type"] == "RuntimeError"
    assert entry["exception_message"] == "signBlob unavailable"
    assert "Traceback" in entry["exception"]


@pytest.fixture
def restore_logging():
    names = ("", *SERVER_LOGGERS, *QUIET_LOGGERS)
    saved = {}
    for name in names:
        target = logging.getLogger(name)
        saved[name] = (target.handlers[:], target.level, target.propagate)
    yield
    for name, (handlers, level, propagate) in saved.items():
        target = logging.getLogger(name)
        target.handlers[:] = handlers
        target.setLevel(level)
        target.propagate = propagate


def test_setup_logging_json_outside_local(monkeypatch, restore_logging):
    """Test that deployed environments log JSON through one shared handler."""
    from guestcap.core.config import settings

    monkeypatch.setattr(settings, "ENV", "prod")
    monkeypatch.setattr(settings, "LOG_LEVEL", "warning")

    setup_logging()

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, CloudLoggingFormatter)

    access = logging.getLogger("uvicorn.access")
    assert access.handlers == root.handlers
    assert access.propagate is False


def test_setup_logging_local_is_text(monkeypatch, restore_logging):
    from guestcap.core.config import settings

    monkeypatch.setattr(settings, "ENV", "local")

    setup_logging()

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert not isinstance(root.handlers[0].formatter, CloudLoggingFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_service_exception_hierarchy():
    """Test that all service exceptions inherit from GuestCapException."""
    for name in (
        "InvalidGuestTokenError",
        "EventNotFoundError",
        "EventInactiveError",
        "StorageLimitExceededError",
        "SessionNotFoundError",
        "InvalidUploadPathError",
        "DestinationMintingError",
        "NoPhotosError",
        "ArchiveError",
    ):
        assert issubclass(getattr(service_exceptions, name), service_exceptions.GuestCapException)


def test_uploader_exception_hierarchy():
    """Test that quota and rate limit refusals are session creation errors."""
    assert issubclass(uploader_exceptions.StorageLimitExceededError, uploader_exceptions.SessionCreateError)
    assert issubclass(uploader_exceptions.RateLimitExceededError, uploader_exceptions.SessionCreateError)
    assert issubclass(uploader_exceptions.SessionCreateError, uploader_exceptions.UploadError)
    assert issubclass(uploader_exceptions.TransferError, uploader_exceptions.UploadError)
