"""FastAPI application factory and lifespan management."""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from video_orchestrator.api.dependencies import (
    get_settings,
    init_services,
    shutdown_services,
)
from video_orchestrator.api.middleware.error_handler import error_handler_middleware
from video_orchestrator.api.middleware.logging import LoggingMiddleware
from video_orchestrator.api.openapi.routes import (
    health,
    maintenance,
    uploads,
    videos,
    webhooks,
)
from video_orchestrator.commons.settings.models import Settings
from video_orchestrator.commons.telemetry import configure_logging
from video_orchestrator.commons.telemetry.logger import JsonFormatter, TextFormatter

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    """Configure logging for the application.

    Runs at import so our formatters are in place before uvicorn starts.
    """
    telemetry = get_settings().telemetry
    configure_logging(level=telemetry.log_level, format_type=telemetry.log_format)


def _configure_uvicorn_logging() -> None:
    """Point uvicorn loggers at our formatter once their handlers exist."""
    telemetry = get_settings().telemetry
    level = getattr(logging, telemetry.log_level.upper())
    formatter: logging.Formatter = (
        JsonFormatter() if telemetry.log_format == "json" else TextFormatter()
    )

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.setLevel(level)
        for handler in uvicorn_logger.handlers:
            handler.setFormatter(formatter)
            handler.setLevel(level)
        if not uvicorn_logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(formatter)
            handler.setLevel(level)
            uvicorn_logger.addHandler(handler)
            uvicorn_logger.propagate = False


_setup_logging()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan - startup and shutdown.

    Startup creates buckets and indexes; shutdown drains background tasks
    for up to ``app.shutdown_grace_seconds`` and closes every client.
    """
    _configure_uvicorn_logging()

    settings = get_settings()
    await init_services(settings)
    logger.info(
        "Service started",
        extra={
            "environment": settings.app.environment,
            "version": settings.app.version,
        },
    )

    yield

    logger.info("Service shutting down")
    await shutdown_services()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app.name,
        version=settings.app.version,
        description=(
            "Video ingestion and processing orchestrator: registers uploads, "
            "drives them through the processing provider and reconciles its "
            "callbacks."
        ),
        docs_url="/docs" if settings.server.docs_enabled else None,
        redoc_url="/redoc" if settings.server.docs_enabled else None,
        openapi_url="/openapi.json" if settings.server.docs_enabled else None,
        lifespan=lifespan,
    )

    _configure_middleware(app, settings)
    _register_routes(app, settings)

    return app


def _configure_middleware(app: FastAPI, settings: Settings) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    app.middleware("http")(error_handler_middleware)


def _register_routes(app: FastAPI, settings: Settings) -> None:
    prefix = settings.server.api_prefix

    # Health routes (no prefix for standard health checks)
    app.include_router(health.router, tags=["Health"])

    app.include_router(uploads.router, prefix=prefix, tags=["Uploads"])
    app.include_router(videos.router, prefix=prefix, tags=["Videos"])
    app.include_router(webhooks.router, prefix=prefix, tags=["Webhooks"])
    app.include_router(maintenance.router, prefix=prefix, tags=["Maintenance"])


app = create_app()
