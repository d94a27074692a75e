"""Upload session API routes."""

import logging

from fastapi import APIRouter, Body, HTTPException

from guestcap.core.rate_limit import (
    check_rate_limit,
    rate_limit_exceeded_exception,
    upload_rate_limiter,
)
from guestcap.models.upload import (
    CompleteSessionRequest,
    CompleteSessionResponse,
    CreateSessionRequest,
    CreateSessionResponse,
)
from guestcap.services.exceptions import (
    DestinationMintingError,
    EventInactiveError,
    EventNotFoundError,
    InvalidGuestTokenError,
    InvalidUploadPathError,
    SessionNotFoundError,
    StorageLimitExceededError,
)
from guestcap.services.upload_sessions import upload_session_service

router = APIRouter(prefix="/api/v1", tags=["upload"])
logger = logging.getLogger(__name__)


@router.post("/upload/create-session", response_model=CreateSessionResponse)
async def create_upload_session(
    request: CreateSessionRequest = Body(...)
) -> CreateSessionResponse:
    """Create an upload session and mint one signed upload URL per file."""
    try:
        if not request.event_id.strip() or not request.guest_id.strip() or not request.guest_token.strip():
            raise HTTPException(status_code=400, detail="Missing required fields")

        file_ids = [f.id for f in request.files]
        if any(not file_id.strip() for file_id in file_ids) or len(set(file_ids)) != len(file_ids):
            raise HTTPException(status_code=400, detail="File ids must be unique and non-empty")

        # Counts files, not requests
        rate_limit = await check_rate_limit(
            upload_rate_limiter, request.guest_id, cost=len(request.files)
        )
        if not rate_limit.success:
            raise rate_limit_exceeded_exception(rate_limit.reset)

        try:
            return await upload_session_service.create_session(request)
        except InvalidGuestTokenError as e:
            raise HTTPException(status_code=403, detail=str(e))
        except EventNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except EventInactiveError as e:
            raise HTTPException(status_code=403, detail=str(e))
        except StorageLimitExceededError as e:
            raise HTTPException(
                status_code=400,
                detail={
                    "error": "STORAGE_LIMIT_EXCEEDED",
                    "used": e.used,
                    "limit": e.limit,
                    "requested": e.requested,
                },
            )
        except DestinationMintingError as e:
            raise HTTPException(status_code=500, detail=str(e))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during session creation: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/upload/complete", response_model=CompleteSessionResponse)
async def complete_upload_session(
    request: CompleteSessionRequest = Body(...)
) -> CompleteSessionResponse:
    """Create photo records for the uploaded paths and close the session."""
    try:
        if not request.session_id.strip() or not request.guest_token.strip():
            raise HTTPException(status_code=400, detail="Missing required fields")

        try:
            return await upload_session_service.complete_session(request)
        except SessionNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except InvalidGuestTokenError as e:
            raise HTTPException(status_code=403, detail=str(e))
        except InvalidUploadPathError as e:
            raise HTTPException(status_code=400, detail=str(e))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during upload completion: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
