"""Abstract base class for the external video processing provider."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AssetStatus(str, Enum):
    """Asset states reported by the provider."""

    PREPARING = "preparing"
    READY = "ready"
    ERRORED = "errored"


class EventKind(str, Enum):
    """Provider callback types the orchestrator understands."""

    ASSET_CREATED = "asset_created"
    UPLOAD_ASSET_CREATED = "upload_asset_created"
    ASSET_READY = "asset_ready"
    ASSET_ERRORED = "asset_errored"
    ASSET_UPDATED = "asset_updated"
    ASSET_DELETED = "asset_deleted"
    TRACK_READY = "track_ready"
    UNKNOWN = "unknown"


@dataclass
class ProviderTrack:
    """A video, audio or text track of an asset."""

    id: str
    type: str
    status: str | None = None
    language_code: str | None = None
    max_width: int | None = None
    max_height: int | None = None
    max_frame_rate: float | None = None


@dataclass
class ProviderAsset:
    """Snapshot of an asset as reported by the provider."""

    id: str
    status: AssetStatus
    playback_id: str | None = None
    duration_seconds: float | None = None
    aspect_ratio: str | None = None
    passthrough: str | None = None
    errors: list[str] = field(default_factory=list)
    tracks: list[ProviderTrack] = field(default_factory=list)

    @property
    def video_track(self) -> ProviderTrack | None:
        return next((t for t in self.tracks if t.type == "video"), None)

    @property
    def is_ready(self) -> bool:
        return self.status == AssetStatus.READY

    @property
    def is_errored(self) -> bool:
        return self.status == AssetStatus.ERRORED


@dataclass
class ProviderEvent:
    """A callback normalized to the fields the orchestrator needs."""

    kind: EventKind
    event_type: str
    external_asset_id: str | None
    event_id: str | None = None
    passthrough: str | None = None
    asset: ProviderAsset | None = None
    track: ProviderTrack | None = None
    errors: list[str] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)


class ProviderError(Exception):
    """Base class for provider failures."""


class ProviderTransientError(ProviderError):
    """Network failure, timeout, throttling or 5xx; worth retrying."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Provider {operation} failed transiently: {reason}")


class ProviderRequestError(ProviderError):
    """The provider rejected the request; retrying will not help."""

    def __init__(self, operation: str, status_code: int, body: str) -> None:
        self.operation = operation
        self.status_code = status_code
        self.body = body
        super().__init__(f"Provider rejected {operation} ({status_code}): {body}")


class ProcessingProviderBase(ABC):
    """External service that transcodes videos and reports back via callbacks."""

    @abstractmethod
    async def create_asset(self, input_url: str, passthrough: str) -> ProviderAsset:
        """Submit a video for processing.

        Args:
            input_url: URL the provider downloads the source from.
            passthrough: Opaque value echoed in callbacks, the record id.

        Returns:
            The newly created asset, usually still preparing.
        """

    @abstractmethod
    async def get_asset(self, asset_id: str) -> ProviderAsset:
        """Fetch the current state of an asset."""

    @abstractmethod
    async def fetch_transcript(self, playback_id: str, track_id: str) -> str:
        """Download the plain-text transcript of a generated caption track."""

    @abstractmethod
    def thumbnail_url(self, playback_id: str, time_seconds: float = 0) -> str:
        """URL of a frame grabbed from the processed video."""

    @abstractmethod
    def streaming_url(self, playback_id: str) -> str:
        """Adaptive streaming (HLS) URL."""

    @abstractmethod
    def download_url(self, playback_id: str) -> str:
        """Progressive MP4 download URL."""

    @abstractmethod
    def captions_url(self, playback_id: str, track_id: str) -> str:
        """WebVTT captions URL of a text track."""

    @abstractmethod
    def parse_event(self, payload: dict[str, Any]) -> ProviderEvent:
        """Normalize a callback payload."""

    @abstractmethod
    def verify_signature(self, raw_body: bytes, signature_header: str | None) -> None:
        """Check a callback's signature.

        Raises:
            InvalidWebhookSignatureException: If the signature does not match.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release client resources."""
