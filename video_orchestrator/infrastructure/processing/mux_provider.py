"""Mux implementation of the processing provider."""

import hashlib
import hmac
import time
from typing import Any

import httpx

from video_orchestrator.domain.exceptions import InvalidWebhookSignatureException
from video_orchestrator.infrastructure.processing.base import (
    AssetStatus,
    EventKind,
    ProcessingProviderBase,
    ProviderAsset,
    ProviderEvent,
    ProviderRequestError,
    ProviderTrack,
    ProviderTransientError,
)

_EVENT_KINDS = {
    "video.asset.created": EventKind.ASSET_CREATED,
    "video.upload.asset_created": EventKind.UPLOAD_ASSET_CREATED,
    "video.asset.ready": EventKind.ASSET_READY,
    "video.asset.errored": EventKind.ASSET_ERRORED,
    "video.asset.updated": EventKind.ASSET_UPDATED,
    "video.asset.deleted": EventKind.ASSET_DELETED,
    "video.asset.track.ready": EventKind.TRACK_READY,
}


def _error_messages(errors: Any) -> list[str]:
    """Flatten Mux ``errors`` (an object or a list of objects) to messages."""
    if not errors:
        return []
    entries = errors if isinstance(errors, list) else [errors]
    messages: list[str] = []
    for entry in entries:
        if isinstance(entry, dict):
            messages.extend(str(m) for m in entry.get("messages") or [])
            if not entry.get("messages") and entry.get("type"):
                messages.append(str(entry["type"]))
        else:
            messages.append(str(entry))
    return messages


def _parse_track(data: dict[str, Any]) -> ProviderTrack:
    return ProviderTrack(
        id=str(data.get("id", "")),
        type=str(data.get("type", "")),
        status=data.get("status"),
        language_code=data.get("language_code"),
        max_width=data.get("max_width"),
        max_height=data.get("max_height"),
        max_frame_rate=data.get("max_frame_rate"),
    )


def parse_asset(data: dict[str, Any]) -> ProviderAsset:
    """Build a :class:`ProviderAsset` from a Mux asset object."""
    try:
        status = AssetStatus(data.get("status", AssetStatus.PREPARING.value))
    except ValueError:
        status = AssetStatus.PREPARING
    playback_ids = data.get("playback_ids") or []
    return ProviderAsset(
        id=str(data["id"]),
        status=status,
        playback_id=playback_ids[0]["id"] if playback_ids else None,
        duration_seconds=data.get("duration"),
        aspect_ratio=data.get("aspect_ratio"),
        passthrough=data.get("passthrough"),
        errors=_error_messages(data.get("errors")),
        tracks=[_parse_track(t) for t in data.get("tracks") or []],
    )


class MuxProcessingProvider(ProcessingProviderBase):
    """Mux Video API client.

    API calls authenticate with an access token pair; media URLs live on
    the public image and stream hosts.
    """

    def __init__(
        self,
        token_id: str,
        token_secret: str,
        webhook_secret: str = "",
        api_base_url: str = "https://api.mux.com",
        image_base_url: str = "https://image.mux.com",
        stream_base_url: str = "https://stream.mux.com",
        playback_policy: str = "public",
        mp4_support: str = "standard",
        normalize_audio: bool = True,
        generate_captions: bool = True,
        caption_language: str = "en",
        webhook_tolerance_seconds: int = 300,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Mux client.

        Args:
            token_id: Mux access token id.
            token_secret: Mux access token secret.
            webhook_secret: Signing secret of the webhook endpoint. Empty
                disables signature verification.
            api_base_url: Mux API origin.
            image_base_url: Origin serving thumbnails.
            stream_base_url: Origin serving HLS, MP4 and text tracks.
            playback_policy: ``public`` or ``signed``.
            mp4_support: ``standard`` to get a downloadable MP4 rendition.
            normalize_audio: Ask Mux to normalize loudness.
            generate_captions: Ask Mux to generate subtitles.
            caption_language: Language code for generated subtitles.
            webhook_tolerance_seconds: Accepted clock skew for signatures.
            timeout: Request timeout in seconds.
            transport: Optional transport, used by tests.
        """
        self._image_base_url = image_base_url.rstrip("/")
        self._stream_base_url = stream_base_url.rstrip("/")
        self._webhook_secret = webhook_secret
        self._playback_policy = playback_policy
        self._mp4_support = mp4_support
        self._normalize_audio = normalize_audio
        self._generate_captions = generate_captions
        self._caption_language = caption_language
        self._tolerance = webhook_tolerance_seconds

        self._client = httpx.AsyncClient(
            base_url=api_base_url.rstrip("/"),
            auth=(token_id, token_secret),
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderTransientError(operation, f"timeout: {e}") from e
        except httpx.TransportError as e:
            raise ProviderTransientError(operation, str(e)) from e

        if response.status_code == 429 or response.status_code >= 500:
            raise ProviderTransientError(
                operation, f"HTTP {response.status_code}: {response.text[:200]}"
            )
        if response.status_code >= 400:
            raise ProviderRequestError(
                operation, response.status_code, response.text[:500]
            )
        return response

    async def create_asset(self, input_url: str, passthrough: str) -> ProviderAsset:
        input_entry: dict[str, Any] = {"url": input_url}
        if self._generate_captions:
            input_entry["generated_subtitles"] = [
                {
                    "language_code": self._caption_language,
                    "name": f"{self._caption_language.upper()} (generated)",
                }
            ]
        body = {
            "input": [input_entry],
            "playback_policy": [self._playback_policy],
            "passthrough": passthrough,
            "normalize_audio": self._normalize_audio,
            "mp4_support": self._mp4_support,
        }
        response = await self._request(
            "create_asset", "POST", "/video/v1/assets", json=body
        )
        return parse_asset(response.json()["data"])

    async def get_asset(self, asset_id: str) -> ProviderAsset:
        response = await self._request(
            "get_asset", "GET", f"/video/v1/assets/{asset_id}"
        )
        return parse_asset(response.json()["data"])

    async def fetch_transcript(self, playback_id: str, track_id: str) -> str:
        response = await self._request(
            "fetch_transcript",
            "GET",
            f"{self._stream_base_url}/{playback_id}/text/{track_id}.txt",
            auth=None,
        )
        return response.text.strip()

    def thumbnail_url(self, playback_id: str, time_seconds: float = 0) -> str:
        return (
            f"{self._image_base_url}/{playback_id}/thumbnail.jpg"
            f"?time={time_seconds:g}"
        )

    def streaming_url(self, playback_id: str) -> str:
        return f"{self._stream_base_url}/{playback_id}.m3u8"

    def download_url(self, playback_id: str) -> str:
        return f"{self._stream_base_url}/{playback_id}/high.mp4"

    def captions_url(self, playback_id: str, track_id: str) -> str:
        return f"{self._stream_base_url}/{playback_id}/text/{track_id}.vtt"

    def parse_event(self, payload: dict[str, Any]) -> ProviderEvent:
        """Normalize a Mux webhook body.

        The asset id lives in a different place per event family: the event
        object for asset events, ``data.asset_id`` for upload and track events.
        """
        event_type = str(payload.get("type", ""))
        kind = _EVENT_KINDS.get(event_type, EventKind.UNKNOWN)
        obj = payload.get("object") or {}
        data = payload.get("data") or {}

        asset: ProviderAsset | None = None
        track: ProviderTrack | None = None
        passthrough: str | None = None

        if event_type.startswith("video.asset.") and kind != EventKind.TRACK_READY:
            asset_id = obj.get("id") or data.get("id")
            if data.get("id"):
                asset = parse_asset(data)
                passthrough = asset.passthrough
        elif kind == EventKind.UPLOAD_ASSET_CREATED:
            asset_id = data.get("asset_id")
            passthrough = (data.get("new_asset_settings") or {}).get("passthrough")
        elif kind == EventKind.TRACK_READY:
            asset_id = data.get("asset_id")
            track = _parse_track(data)
        else:
            asset_id = data.get("asset_id") or obj.get("id")

        return ProviderEvent(
            kind=kind,
            event_type=event_type,
            external_asset_id=str(asset_id) if asset_id else None,
            event_id=payload.get("id"),
            passthrough=passthrough,
            asset=asset,
            track=track,
            errors=_error_messages(data.get("errors")),
            raw=payload,
        )

    def verify_signature(self, raw_body: bytes, signature_header: str | None) -> None:
        """Check the ``mux-signature`` header (``t=<ts>,v1=<hex>``)."""
        if not self._webhook_secret:
            return
        if not signature_header:
            raise InvalidWebhookSignatureException("missing signature header")

        parts: dict[str, list[str]] = {}
        for item in signature_header.split(","):
            key, _, value = item.strip().partition("=")
            parts.setdefault(key, []).append(value)

        timestamps = parts.get("t") or []
        signatures = parts.get("v1") or []
        if not timestamps or not signatures:
            raise InvalidWebhookSignatureException("malformed signature header")

        try:
            timestamp = int(timestamps[0])
        except ValueError as e:
            raise InvalidWebhookSignatureException("malformed timestamp") from e
        if abs(time.time() - timestamp) > self._tolerance:
            raise InvalidWebhookSignatureException("timestamp outside tolerance")

        signed = f"{timestamp}.".encode() + raw_body
        expected = hmac.new(
            self._webhook_secret.encode(), signed, hashlib.sha256
        ).hexdigest()
        if not any(hmac.compare_digest(expected, sig) for sig in signatures):
            raise InvalidWebhookSignatureException("signature mismatch")

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
