"""FastAPI application for photo restyling.

Endpoints:

1. POST /transform - Restyle an uploaded photo (synchronous, up to the request timeout)
2. GET /result/{image_id} - Download a generated image
3. GET /health, /status, /styles, /progress/{request_id} - Informational JSON

Runtime model: one uvicorn worker, one event loop. Capacity, request slots
and the retention sweeper live on ``app.state`` and are created in the
lifespan handler; nothing is shared between worker processes.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from photo_restyle import __version__
from photo_restyle.api.admission import AdmissionController
from photo_restyle.api.files import files_router
from photo_restyle.api.lifecycle import RequestTracker
from photo_restyle.api.routes import router
from photo_restyle.api.sweeper import RetentionSweeper
from photo_restyle.core.config import Settings, get_settings
from photo_restyle.core.exceptions import RestyleError
from photo_restyle.core.logging import get_logger
from photo_restyle.generation.client import ImageEditClient
from photo_restyle.pipeline import TransformPipeline
from photo_restyle.styles import StyleCatalog

logger = get_logger(__name__)


# Cross-Origin Resource Policy middleware: result images are embedded by other origins
class CORPMiddleware(BaseHTTPMiddleware):
    """Add Cross-Origin-Resource-Policy header to all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers.setdefault("Cross-Origin-Resource-Policy", "cross-origin")
        return response


async def restyle_error_handler(_request: Request, exc: RestyleError) -> JSONResponse:
    """Translate domain errors into the ``{success: false, error}`` body."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def request_validation_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Malformed form data is a client error, reported like any other validation failure."""
    logger.debug("Request validation failed: %s", exc)
    return JSONResponse(status_code=400, content={"success": False, "error": "Invalid request"})


async def unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Last resort for errors raised outside the transform route."""
    logger.error("Unhandled error", exc_info=exc)
    return JSONResponse(status_code=500, content=RestyleError().to_payload())


def create_app(
    settings: Settings | None = None,
    *,
    client: ImageEditClient | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration (defaults to the global settings)
        client: Provider client to use instead of one built from settings

    Returns:
        Configured FastAPI app
    """
    cfg = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan handler for startup/shutdown tasks.

        Startup:
        - Create artifact directories
        - Load the style catalog
        - Build admission controller, request tracker, provider client, pipeline
        - Start the retention sweeper

        Shutdown:
        - Stop the sweeper, drop abandoned work, close the provider client
        """
        # Startup
        logger.info("Starting photo-restyle API...")
        for directory in (cfg.upload_dir, cfg.temp_dir, cfg.results_dir):
            directory.mkdir(parents=True, exist_ok=True)

        if not cfg.openai_api_key and client is None:
            logger.warning("No image provider API key configured; transforms will fail.")

        catalog = StyleCatalog.load(cfg.styles_file)
        admission = AdmissionController(cfg.max_concurrent_requests, cfg.minutes_per_request)
        tracker = RequestTracker(admission, timeout_seconds=cfg.request_timeout_seconds)
        edit_client = client or ImageEditClient.from_settings(cfg)
        sweeper = RetentionSweeper.from_settings(cfg)

        app.state.settings = cfg
        app.state.tracker = tracker
        app.state.pipeline = TransformPipeline(cfg, catalog, edit_client)
        app.state.sweeper = sweeper
        app.state.started_at = time.time()

        sweeper.start()
        logger.info(
            "Ready: %d styles, capacity %d, request timeout %.0fs",
            len(catalog),
            admission.capacity,
            cfg.request_timeout_seconds,
        )

        yield

        # Shutdown
        logger.info("Shutting down photo-restyle API...")
        await sweeper.stop()
        tracker.shutdown()
        if client is None:
            await edit_client.aclose()

    app = FastAPI(
        title="Photo Restyle API",
        description="Restyle photos through an image-edit provider with bounded concurrency",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_exception_handler(RestyleError, restyle_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Add CORP middleware first so CORS headers wrap it
    app.add_middleware(CORPMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.frontend_origins,
        allow_credentials=False,  # Not needed - no cookies/auth
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    # Small JSON bodies are sent as-is; PNG results barely shrink but stay correct
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.include_router(router)
    app.include_router(files_router)

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Service information."""
        return {
            "status": "healthy",
            "service": "photo-restyle",
            "version": __version__,
            "endpoints": ["/transform", "/result/{image_id}", "/progress/{request_id}"],
        }

    return app


app = create_app()
