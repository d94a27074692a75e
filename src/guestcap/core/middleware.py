"""Middleware for HTTP error logging."""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class HTTPErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to ensure all HTTP errors are logged.

    - 4xx responses: logged at WARN level
    - 5xx responses: logged at ERROR level
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        event_id = None
        guest_id = None
        session_id = None

        # Only JSON bodies are inspected; photo PUTs stream straight through
        content_type = request.headers.get("content-type", "")
        if request.method in ["POST", "PUT", "PATCH"] and content_type.startswith("application/json"):
            try:
                body = await request.json()
                if isinstance(body, dict):
                    event_id = body.get("eventId")
                    guest_id = body.get("guestId")
                    session_id = body.get("sessionId")
            except Exception:
                # Malformed JSON is reported by the route itself
                pass

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        context = {
            "http_status": response.status_code,
            "method": request.method,
            "path": request.url.path,
            "event_id": event_id,
            "guest_id": guest_id,
            "session_id": session_id,
            "duration_ms": duration_ms,
        }

        if 400 <= response.status_code < 500:
            logger.warning("Client error response", extra=context)
        elif response.status_code >= 500:
            logger.error("Server error response", extra=context)

        return response
