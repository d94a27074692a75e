"""Guest API routes."""

import logging

from fastapi import APIRouter, Body, HTTPException, Request

from guestcap.core.rate_limit import (
    api_rate_limiter,
    check_rate_limit,
    rate_limit_exceeded_exception,
)
from guestcap.models.guest import CreateGuestRequest, CreateGuestResponse, EventInfo, GuestInfo
from guestcap.storage.event_store import event_store

router = APIRouter(prefix="/api/v1", tags=["guest"])
logger = logging.getLogger(__name__)


@router.post("/guest/create", response_model=CreateGuestResponse)
async def create_guest(
    http_request: Request, request: CreateGuestRequest = Body(...)
) -> CreateGuestResponse:
    """Join an event as a guest and receive the token used for uploads."""
    try:
        client_host = http_request.client.host if http_request.client else "unknown"
        rate_limit = await check_rate_limit(api_rate_limiter, client_host)
        if not rate_limit.success:
            raise rate_limit_exceeded_exception(rate_limit.reset)

        if not request.name.strip() or not request.event_id.strip():
            raise HTTPException(status_code=400, detail="Name and eventId are required")

        event = event_store.get_event(request.event_id)
        if event is None:
            raise HTTPException(status_code=404, detail="Event not found")
        if event.is_active is False:
            raise HTTPException(status_code=403, detail="Event is not active")

        guest = event_store.create_guest(event.event_id, request.name.strip())

        logger.info(f"Guest created: guest_id={guest.guest_id}, event_id={event.event_id}")

        return CreateGuestResponse(
            guest=GuestInfo(
                id=guest.guest_id,
                name=guest.name,
                event_id=guest.event_id,
                guest_token=guest.guest_token,
                created_at=guest.created_at,
            ),
            event=EventInfo(id=event.event_id, name=event.name),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during guest creation: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
