"""Guest data models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CreateGuestRequest(BaseModel):
    """Request model for joining an event as a guest."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    event_id: str = Field(..., alias="eventId")


class GuestInfo(BaseModel):
    """Guest identity returned to the client, including its upload token."""

    id: str
    name: str
    event_id: str
    guest_token: str
    created_at: datetime


class EventInfo(BaseModel):
    """Summary of the joined event."""

    id: str
    name: str


class CreateGuestResponse(BaseModel):
    """Response model for guest creation."""

    guest: GuestInfo
    event: EventInfo
