"""Structured logging for GuestCap.

Cloud Run ingests one JSON object per stdout line. Anything passed through
``extra=`` becomes a top-level field, and the upload session being handled
is stamped on every entry emitted while it is in scope.
"""

import contextvars
import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

upload_session_context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "upload_session_id", default=None
)

# Attributes every LogRecord carries; anything else arrived via ``extra``
_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

# Loggers that should write through our handler instead of their own
SERVER_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")

# Chatty client libraries that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "google.auth")


class CloudLoggingFormatter(logging.Formatter):
    """Render records as single-line JSON for Cloud Logging."""

    def format(self, record: logging.LogRecord) -> str:
        entry = self._base_entry(record)

        session_id = upload_session_context.get()
        if session_id:
            entry["upload_session_id"] = session_id

        entry.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRIBUTES
        )

        if record.exc_info:
            entry.update(self._exception_fields(record.exc_info))

        return json.dumps(entry, default=str, ensure_ascii=False)

    @staticmethod
    def _base_entry(record: logging.LogRecord) -> Dict[str, Any]:
        return {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "source": f"{record.module}.{record.funcName}:{record.lineno}",
        }

    @staticmethod
    def _exception_fields(exc_info) -> Dict[str, str]:
        exc_type, exc_value, _ = exc_info
        return {
            "exception": "".join(traceback.format_exception(*exc_info)),
            "exception_type": exc_type.__name__ if exc_type else "Unknown",
            "exception_message": str(exc_value) if exc_value else "",
        }


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging() -> None:
    """Route all application and server logs to stdout.

    ``ENV=local`` gets readable text at DEBUG; every other environment gets
    JSON at ``LOG_LEVEL``.
    """
    from guestcap.core.config import settings

    local = settings.ENV == "local"
    level = logging.DEBUG if local else _resolve_level(settings.LOG_LEVEL)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(TEXT_FORMAT) if local else CloudLoggingFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers[:] = [handler]
        server_logger.setLevel(level)
        server_logger.propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
