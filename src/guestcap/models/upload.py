"""Upload session wire models.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class FileDescriptor(BaseModel):
    """Client-declared metadata of one file in a batch."""

    id: str
    name: str
    size: int = Field(..., ge=0, description="Size in bytes")
    type: str = Field("", description="MIME type")


class CreateSessionRequest(BaseModel):
    """Request model for creating an upload session."""

    model_config = ConfigDict(populate_by_name=True)

    event_id: str = Field(..., alias="eventId")
    guest_id: str = Field(..., alias="guestId")
    guest_token: str = Field(..., alias="guestToken")
    files: List[FileDescriptor] = Field(..., min_length=1)


class SignedUrl(BaseModel):
    """Upload destination minted for one file."""

    model_config = ConfigDict(populate_by_name=True)

    file_id: str = Field(..., alias="fileId")
    url: str
    path: str


class CreateSessionResponse(BaseModel):
    """Response model for upload session creation."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    signed_urls: List[SignedUrl] = Field(..., alias="signedUrls")


class CompleteSessionRequest(BaseModel):
    """Request model for reconciling an upload session."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    guest_token: str = Field(..., alias="guestToken")
    uploaded_paths: List[str] = Field(..., alias="uploadedPaths")


class CompleteSessionResponse(BaseModel):
    """Response model for session completion."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    photos_created: int = Field(..., alias="photosCreated")
    photo_ids: List[str] = Field(default_factory=list, alias="photoIds")
