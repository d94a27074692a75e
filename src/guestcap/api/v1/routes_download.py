"""Event download API routes."""

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from guestcap.core.rate_limit import (
    check_rate_limit,
    download_rate_limiter,
    rate_limit_exceeded_exception,
)
from guestcap.services.downloads import build_event_archive
from guestcap.services.exceptions import ArchiveError, EventNotFoundError, NoPhotosError

router = APIRouter(prefix="/api/v1", tags=["download"])
logger = logging.getLogger(__name__)


@router.get("/download/event/{event_id}")
async def download_event_photos(event_id: str) -> Response:
    """Download every photo of an event as one ZIP archive."""
    try:
        rate_limit = await check_rate_limit(download_rate_limiter, event_id)
        if not rate_limit.success:
            raise rate_limit_exceeded_exception(rate_limit.reset)

        try:
            filename, archive = await build_event_archive(event_id)
        except EventNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except NoPhotosError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ArchiveError as e:
            raise HTTPException(status_code=500, detail=str(e))

        return Response(
            content=archive,
            media_type="application/zip",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during event download: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
