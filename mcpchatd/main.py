"""Main FastAPI application for mcpchatd daemon.

This module creates and configures the FastAPI application that exposes
the chat engine via a REST API and runs the retention sweep.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mcpchat_library.errors import CompletionUnavailableError
from mcpchat_library.errors import RateLimitedError
from mcpchat_library.errors import TurnCancelledError
from mcpchat_library.errors import UnauthorizedError

from . import __version__
from .dependencies import get_session_store
from .dependencies import get_settings
from .models import ErrorResponse
from .routers import chat_router
from .routers import status_router
from .services.retention_scheduler import RetentionScheduler
from .services.turn_registry import get_turn_registry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Starts the retention scheduler on startup; stops it and cancels
    in-flight turns on shutdown.

    Args:
        app: FastAPI application instance
    """
    settings = get_settings()
    logger.info(f"Starting mcpchatd daemon on {settings.host}:{settings.port}")
    if not settings.completion_configured:
        logger.warning("No completion provider configured; chat turns will fail with 503")
    if not settings.tools_configured:
        logger.info("No tool server configured; chat runs without tools")

    scheduler = RetentionScheduler(
        store=get_session_store(),
        retention_days=settings.retention_days,
        schedule=settings.retention_schedule,
    )
    await scheduler.start()
    app.state.retention_scheduler = scheduler

    yield

    # Shutdown
    logger.info("Shutting down mcpchatd daemon")
    await get_turn_registry().cancel_all()
    await scheduler.stop()


def _error(status_code: int, error: str, detail: str, headers: dict[str, str] | None = None, **extra) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail, **extra)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map chat errors to HTTP responses."""

    @app.exception_handler(UnauthorizedError)
    async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
        return _error(403, "forbidden", str(exc))

    @app.exception_handler(RateLimitedError)
    async def rate_limited_handler(request: Request, exc: RateLimitedError) -> JSONResponse:
        retry_after = max(1, int(exc.retry_after + 0.999))
        return _error(
            429,
            "rate_limited",
            "Too many requests. Please wait a moment.",
            headers={"Retry-After": str(retry_after)},
            retry_after=retry_after,
        )

    @app.exception_handler(CompletionUnavailableError)
    async def completion_unavailable_handler(request: Request, exc: CompletionUnavailableError) -> JSONResponse:
        return _error(503, "completion_unavailable", str(exc))

    @app.exception_handler(TurnCancelledError)
    async def cancelled_handler(request: Request, exc: TurnCancelledError) -> JSONResponse:
        return _error(409, "cancelled", str(exc))

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return _error(400, "bad_request", str(exc))

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return _error(500, "internal_error", "Internal server error")


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="mcpchatd",
        description="REST API daemon for tool-calling chat backed by an MCP tool server",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(chat_router)
    app.include_router(status_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint.

        Returns:
            Welcome message with API information
        """
        return {
            "name": "mcpchatd",
            "version": __version__,
            "description": "REST API daemon for tool-calling chat",
            "docs": "/docs",
            "openapi": "/openapi.json",
        }

    return app


app = create_app()
