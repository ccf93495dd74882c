"""API route handlers."""

from video_orchestrator.api.openapi.routes import (
    health,
    maintenance,
    uploads,
    videos,
    webhooks,
)

__all__ = [
    "health",
    "maintenance",
    "uploads",
    "videos",
    "webhooks",
]
