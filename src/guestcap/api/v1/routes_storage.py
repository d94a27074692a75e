"""Local object storage routes.

Only mounted behaviour for the ``local`` backend: accepts PUTs to signed
upload URLs and serves stored objects publicly.
"""

import logging

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import FileResponse

from guestcap.core.config import settings
from guestcap.storage.local import local_backend

router = APIRouter(prefix="/api/v1/storage", tags=["storage"])
logger = logging.getLogger(__name__)


def _require_local_backend() -> None:
    if settings.STORAGE_BACKEND != "local":
        raise HTTPException(status_code=404, detail="Not found")


@router.put("/upload/{path:path}")
async def put_object(
    path: str,
    request: Request,
    expires: int = Query(...),
    signature: str = Query(...),
) -> dict:
    """Store an object uploaded to a signed URL."""
    _require_local_backend()

    if not local_backend.verify_signature(path, expires, signature):
        raise HTTPException(status_code=403, detail="Invalid or expired upload URL")

    try:
        size = await local_backend.store_object(path, request.stream())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Object stored: path={path}, size={size}")
    return {"path": path, "size": size}


@router.get("/public/{path:path}")
async def get_object(path: str) -> FileResponse:
    """Serve a stored object."""
    _require_local_backend()

    try:
        size = local_backend.get_object_size(path)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if size is None:
        raise HTTPException(status_code=404, detail="Object not found")

    return FileResponse(local_backend.base_path / path)
