"""HTTP client for the upload session endpoints."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from guestcap.core.config import settings
from guestcap.models.upload import CompleteSessionResponse, CreateSessionResponse
from guestcap.uploader.exceptions import (
    RateLimitExceededError,
    SessionCompleteError,
    SessionCreateError,
    StorageLimitExceededError,
)
from guestcap.uploader.models import FileToUpload

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response, default: str) -> str:
    body = _json_body(response)
    message = body.get("error")
    return message if isinstance(message, str) and message else default


def _json_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class SessionProtocolClient:
    """Requests upload destinations for a batch and reports which files landed."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._client = client
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> httpx.Response:
        url = f"{self.base_url}{endpoint}"
        if self._client is not None:
            return await self._client.post(url, json=payload, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, json=payload)

    async def create_session(
        self,
        event_id: str,
        guest_id: str,
        guest_token: str,
        files: List[FileToUpload],
    ) -> CreateSessionResponse:
        """Request one signed destination per file.

        Raises:
            StorageLimitExceededError: If the batch exceeds the event quota
            RateLimitExceededError: If the guest is rate limited
            SessionCreateError: For any other failure
        """
        payload = {
            "eventId": event_id,
            "guestId": guest_id,
            "guestToken": guest_token,
            "files": [
                {
                    "id": f.id,
                    "name": f.file.name,
                    "size": f.file.size,
                    "type": f.file.content_type,
                }
                for f in files
            ],
        }

        try:
            response = await self._post("/upload/create-session", payload)
        except httpx.HTTPError as e:
            logger.warning(
                "Create session request failed",
                extra={"event_id": event_id, "guest_id": guest_id, "error": str(e)},
            )
            raise SessionCreateError(f"Failed to create upload session: {e}") from e

        if response.is_success:
            return CreateSessionResponse.model_validate(response.json())

        body = _json_body(response)
        logger.warning(
            "Create session rejected",
            extra={"event_id": event_id, "status_code": response.status_code, "error": body.get("error")},
        )

        if body.get("error") == "STORAGE_LIMIT_EXCEEDED":
            raise StorageLimitExceededError(
                used=body.get("used", 0),
                limit=body.get("limit", 0),
                requested=body.get("requested", 0),
            )
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After") or body.get("retryAfter") or 0
            try:
                retry_after = int(retry_after)
            except (TypeError, ValueError):
                retry_after = 0
            raise RateLimitExceededError(retry_after=retry_after)

        raise SessionCreateError(
            _error_message(response, "Failed to create upload session"),
            status_code=response.status_code,
        )

    async def complete_session(
        self, session_id: str, guest_token: str, uploaded_paths: List[str]
    ) -> CompleteSessionResponse:
        """Report the paths that were transferred.

        Raises:
            SessionCompleteError: If the server did not reconcile the session
        """
        payload = {
            "sessionId": session_id,
            "guestToken": guest_token,
            "uploadedPaths": uploaded_paths,
        }

        try:
            response = await self._post("/upload/complete", payload)
        except httpx.HTTPError as e:
            logger.warning(
                "Complete session request failed",
                extra={"session_id": session_id, "error": str(e)},
            )
            raise SessionCompleteError(
                f"Failed to complete upload session: {e}", uploaded_paths=uploaded_paths
            ) from e

        if not response.is_success:
            raise SessionCompleteError(
                _error_message(response, "Failed to complete upload session"),
                status_code=response.status_code,
                uploaded_paths=uploaded_paths,
            )

        return CompleteSessionResponse.model_validate(response.json())
