"""Main application entrypoint for the GuestCap API."""

from fastapi import FastAPI

from guestcap.api.v1 import routes_health
from guestcap.api.v1.routes_download import router as download_router
from guestcap.api.v1.routes_guest import router as guest_router
from guestcap.api.v1.routes_storage import router as storage_router
from guestcap.api.v1.routes_upload import router as upload_router
from guestcap.core.config import settings
from guestcap.core.exceptions import register_exception_handlers
from guestcap.core.logging import setup_logging
from guestcap.core.middleware import HTTPErrorLoggingMiddleware


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    # Initialize logging first
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
    )

    app.add_middleware(HTTPErrorLoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(guest_router)
    app.include_router(upload_router)
    app.include_router(storage_router)
    app.include_router(download_router)

    return app


# Export app instance for ASGI servers
app = create_app()


if __name__ == "__main__":
    import os

    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    uvicorn.run(app, host="0.0.0.0", port=port)
