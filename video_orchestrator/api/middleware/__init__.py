"""API middleware components."""

from video_orchestrator.api.middleware.error_handler import (
    APIError,
    error_handler_middleware,
)
from video_orchestrator.api.middleware.logging import LoggingMiddleware

__all__ = [
    "APIError",
    "LoggingMiddleware",
    "error_handler_middleware",
]
