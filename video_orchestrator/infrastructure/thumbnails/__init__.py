"""Local thumbnail rendering and validation."""

from video_orchestrator.infrastructure.thumbnails.client_capture import (
    DecodedCapture,
    InvalidCaptureError,
    decode_capture,
)
from video_orchestrator.infrastructure.thumbnails.preview_renderer import (
    PALETTE,
    preview_style,
    render_preview,
)

__all__ = [
    "DecodedCapture",
    "InvalidCaptureError",
    "decode_capture",
    "PALETTE",
    "preview_style",
    "render_preview",
]
