"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from slideshow_ingest.api.admin import router as admin_router
from slideshow_ingest.api.picker import router as picker_router
from slideshow_ingest.api.processing import router as processing_router
from slideshow_ingest.app_logging import configure_logging
from slideshow_ingest.containers import AppContainer
from slideshow_ingest.domain.errors import (
    IngestError,
    NotFoundError,
    RemoteServiceError,
    SessionExpiredError,
    ValidationError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(picker_router)
    app.include_router(processing_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.exception_handler(IngestError)
    async def ingest_error_handler(request: Request, exc: IngestError) -> JSONResponse:
        status_code, message = _classify_error(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(
                "Request failed",
                extra={"path": request.url.path, "error": str(exc)},
            )
        state_container: AppContainer = request.app.state.container
        return JSONResponse(
            status_code=status_code,
            content={"error": _format_error(state_container, exc, message)},
        )

    return app


def _classify_error(exc: IngestError) -> tuple[int, str]:
    if isinstance(exc, SessionExpiredError):
        return status.HTTP_410_GONE, str(exc)
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND, str(exc)
    if isinstance(exc, ValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc)
    if isinstance(exc, RemoteServiceError):
        return status.HTTP_502_BAD_GATEWAY, f"Upstream {exc.service} request failed"
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal error"


def _format_error(state_container: AppContainer, exc: Exception, fallback: str) -> str:
    """Return a client-facing error message with local debug info."""
    if state_container.settings.environment == "local":
        detail = f"{type(exc).__name__}: {exc}".strip()
        if detail and detail != fallback:
            return f"{fallback} (debug: {detail})"
    return fallback
