"""Health check endpoint for GuestCap."""

from fastapi import APIRouter

from guestcap.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Report service identity and the configured storage backend."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "storage": settings.STORAGE_BACKEND,
    }
