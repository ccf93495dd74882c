"""Provider callback processing.

Delivery is at-least-once and unordered. Two mechanisms keep records
correct regardless: the ledger discards deliveries already applied, and
the record state machine ignores anything that would move a terminal
record.
"""

import asyncio
import hashlib
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from video_orchestrator.application.services.jobs import JobTracker
from video_orchestrator.application.services.reconciliation import AssetReconciler
from video_orchestrator.application.services.record_store import VideoRecordStore
from video_orchestrator.commons.infrastructure.documentdb import (
    DocumentConflictError,
    DocumentDBBase,
    DocumentDBUnavailableError,
)
from video_orchestrator.commons.settings.models import Settings
from video_orchestrator.commons.telemetry import LogContext, get_logger, log_exceptions
from video_orchestrator.domain.exceptions import (
    ExternalAssetConflictException,
    RecordStoreUnavailableException,
)
from video_orchestrator.domain.models.job import JobType
from video_orchestrator.domain.models.video import VideoRecord, VideoStatus
from video_orchestrator.domain.models.webhook_event import (
    WebhookEvent,
    WebhookOutcome,
)
from video_orchestrator.infrastructure.processing import (
    EventKind,
    ProcessingProviderBase,
    ProviderError,
    ProviderEvent,
)

_SECONDS_PER_DAY = 86_400


class InvalidWebhookPayloadError(ValueError):
    """Raised when a callback body is not a JSON object."""


@dataclass
class WebhookProcessingResult:
    """What happened to one delivery."""

    outcome: WebhookOutcome | None
    duplicate: bool = False
    video_id: str | None = None


def payload_hash(raw_body: bytes) -> str:
    """Identity of a delivery's payload."""
    return hashlib.sha256(raw_body).hexdigest()


class WebhookEventProcessor:
    """Consumes provider callbacks and merges them through the record store."""

    def __init__(
        self,
        provider: ProcessingProviderBase,
        record_store: VideoRecordStore,
        job_tracker: JobTracker,
        reconciler: AssetReconciler,
        document_db: DocumentDBBase,
        settings: Settings,
    ) -> None:
        self._provider = provider
        self._store = record_store
        self._jobs = job_tracker
        self._reconciler = reconciler
        self._db = document_db
        self._ledger = settings.document_db.collections.webhook_events
        self._settings = settings.webhooks
        self._logger = get_logger(__name__)

    async def ensure_indexes(self) -> None:
        """Unique delivery key plus a TTL index enforcing ledger retention."""
        try:
            await self._db.create_index(
                self._ledger,
                [("external_asset_id", 1), ("payload_hash", 1)],
                unique=True,
                name="uniq_delivery",
            )
            await self._db.create_index(
                self._ledger,
                [("received_at", 1)],
                name="retention",
                expire_after_seconds=self._settings.ledger_retention_days
                * _SECONDS_PER_DAY,
            )
        except DocumentDBUnavailableError as e:
            raise RecordStoreUnavailableException(
                "ensure_ledger_indexes", e.reason
            ) from e

    def authenticate(self, raw_body: bytes, signature_header: str | None) -> None:
        """Verify the provider signature.

        Raises:
            InvalidWebhookSignatureException: If verification fails.
        """
        self._provider.verify_signature(raw_body, signature_header)

    def parse(self, raw_body: bytes) -> ProviderEvent:
        """Decode a callback body.

        Raises:
            InvalidWebhookPayloadError: If the body is not a JSON object.
        """
        try:
            payload: Any = json.loads(raw_body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidWebhookPayloadError(f"body is not JSON: {e}") from e
        if not isinstance(payload, dict):
            raise InvalidWebhookPayloadError("body is not a JSON object")
        return self._provider.parse_event(payload)

    @log_exceptions(message="Webhook processing failed")
    async def process(
        self, event: ProviderEvent, raw_body: bytes
    ) -> WebhookProcessingResult:
        """Apply one delivery exactly once.

        Raises whatever the merge raised after recording the delivery as
        ``failed`` in the ledger, so a redelivery can try again.
        """
        if not event.external_asset_id:
            self._logger.info(
                "Ignoring callback without asset id",
                extra={"event_type": event.event_type},
            )
            return WebhookProcessingResult(outcome=WebhookOutcome.IGNORED)

        with LogContext(
            external_asset_id=event.external_asset_id, event_type=event.event_type
        ):
            entry = await self._claim(event, payload_hash(raw_body))
            if entry is None:
                self._logger.info("Duplicate webhook delivery skipped")
                return WebhookProcessingResult(outcome=None, duplicate=True)

            try:
                outcome, record = await self._dispatch(event)
            except Exception as e:
                await self._settle(entry, WebhookOutcome.FAILED, error=str(e))
                raise

            await self._settle(entry, outcome)
            return WebhookProcessingResult(
                outcome=outcome, video_id=record.id if record else None
            )

    async def _claim(self, event: ProviderEvent, digest: str) -> WebhookEvent | None:
        """Insert the ledger row for a delivery; None if it must be skipped.

        A row that ended ``orphaned`` or ``failed`` is reclaimed with a
        compare-and-set on its attempt counter, so only one redelivery wins.
        """
        entry = WebhookEvent(
            event_type=event.event_type,
            external_asset_id=str(event.external_asset_id),
            payload_hash=digest,
            provider_event_id=event.event_id,
        )
        try:
            await self._db.insert(self._ledger, entry.model_dump())
            return entry
        except DocumentConflictError:
            pass
        except DocumentDBUnavailableError as e:
            raise RecordStoreUnavailableException("claim_webhook", e.reason) from e

        try:
            document = await self._db.find_one(
                self._ledger,
                {"external_asset_id": entry.external_asset_id, "payload_hash": digest},
            )
            if document is None:
                return None
            prior = WebhookEvent.model_validate(document)
            if prior.outcome is None or not prior.outcome.is_retryable:
                return None
            reclaimed = prior.model_copy(
                update={"outcome": None, "error": None, "attempts": prior.attempts + 1}
            )
            won = await self._db.update_one(
                self._ledger,
                {"id": prior.id, "attempts": prior.attempts},
                {"outcome": None, "error": None, "attempts": reclaimed.attempts},
            )
        except DocumentDBUnavailableError as e:
            raise RecordStoreUnavailableException("claim_webhook", e.reason) from e

        if won:
            self._logger.info(
                "Reprocessing redelivered webhook",
                extra={
                    "previous_outcome": prior.outcome.value,
                    "attempt": reclaimed.attempts,
                },
            )
        return reclaimed if won else None

    async def _settle(
        self,
        entry: WebhookEvent,
        outcome: WebhookOutcome,
        error: str | None = None,
    ) -> None:
        updates: dict[str, Any] = {"outcome": outcome.value, "error": error}
        if outcome == WebhookOutcome.APPLIED:
            updates["applied_at"] = datetime.now(UTC)
        try:
            await self._db.update(self._ledger, entry.id, updates)
        except DocumentDBUnavailableError as e:
            raise RecordStoreUnavailableException("settle_webhook", e.reason) from e

    async def _dispatch(
        self, event: ProviderEvent
    ) -> tuple[WebhookOutcome, VideoRecord | None]:
        if event.kind == EventKind.UNKNOWN:
            self._logger.debug("Ignoring unhandled webhook type")
            return WebhookOutcome.IGNORED, None

        record = await self._locate(event)
        if record is None:
            self._logger.error(
                "Orphaned webhook: no record for asset after retries",
                extra={
                    "passthrough": event.passthrough,
                    "lookup_attempts": self._settings.lookup_attempts,
                },
            )
            return WebhookOutcome.ORPHANED, None

        with LogContext(video_id=record.id):
            match event.kind:
                case EventKind.ASSET_READY:
                    return await self._on_ready(event, record)
                case EventKind.ASSET_ERRORED:
                    record = await self._reconciler.apply_errored(
                        record.id, event.errors
                    )
                    return WebhookOutcome.APPLIED, record
                case EventKind.TRACK_READY:
                    return await self._on_track_ready(event, record)
                case EventKind.ASSET_CREATED | EventKind.UPLOAD_ASSET_CREATED:
                    return WebhookOutcome.APPLIED, await self._on_created(record)
                case _:
                    return await self._on_status_only(event, record)

    async def _locate(self, event: ProviderEvent) -> VideoRecord | None:
        """Find the record for an event, retrying with backoff.

        The record may not be visible yet when a callback races the intake
        that created it. Lookups never create records; a ``passthrough``
        record id lets an event link an asset the intake has not linked yet.
        """
        asset_id = str(event.external_asset_id)
        attempts = self._settings.lookup_attempts
        for attempt in range(attempts):
            record = await self._store.find_by_external_asset_id(asset_id)
            if record is not None:
                return record

            if event.passthrough:
                candidate = await self._store.get(event.passthrough)
                if candidate is not None:
                    try:
                        return await self._store.link_external_asset(
                            candidate.id,
                            asset_id,
                            event.asset.playback_id if event.asset else None,
                        )
                    except ExternalAssetConflictException:
                        self._logger.warning(
                            "Passthrough record is linked to another asset",
                            extra={"video_id": candidate.id},
                        )
                        return None

            if attempt < attempts - 1:
                await asyncio.sleep(self._settings.lookup_backoff_seconds * 2**attempt)
        return None

    async def _on_ready(
        self, event: ProviderEvent, record: VideoRecord
    ) -> tuple[WebhookOutcome, VideoRecord]:
        asset = event.asset
        if asset is None or asset.playback_id is None:
            try:
                asset = await self._provider.get_asset(str(event.external_asset_id))
            except ProviderError as e:
                self._logger.warning(
                    "Could not fetch asset details for ready event",
                    extra={"error": str(e)},
                )
                raise
        return WebhookOutcome.APPLIED, await self._reconciler.apply_ready(
            record.id, asset
        )

    async def _on_created(self, record: VideoRecord) -> VideoRecord:
        if record.status != VideoStatus.PENDING:
            return record
        return await self._store.update(
            record.id,
            lambda r: r.transition_to(VideoStatus.PROCESSING)
            if r.status == VideoStatus.PENDING
            else r,
        )

    async def _on_status_only(
        self, event: ProviderEvent, record: VideoRecord
    ) -> tuple[WebhookOutcome, VideoRecord]:
        """``asset.updated`` and ``asset.deleted``: track provider status only."""
        status = "deleted" if event.kind == EventKind.ASSET_DELETED else None
        if status is None and event.asset is not None:
            status = event.asset.status.value
        if status is None or status == record.external_status:
            return WebhookOutcome.IGNORED, record
        if event.kind == EventKind.ASSET_DELETED:
            self._logger.warning("Provider asset deleted")
        updated = await self._store.update(
            record.id, lambda r: r.with_external_status(status)
        )
        return WebhookOutcome.APPLIED, updated

    async def _on_track_ready(
        self, event: ProviderEvent, record: VideoRecord
    ) -> tuple[WebhookOutcome, VideoRecord]:
        """Generated captions are ready: store the reference and transcript.

        A transcript download failure fails the caption job but still
        records the captions reference.
        """
        track = event.track
        if track is None or track.type != "text" or not record.external_playback_id:
            return WebhookOutcome.IGNORED, record

        playback_id = record.external_playback_id
        captions_ref = self._provider.captions_url(playback_id, track.id)
        transcript: str | None = None
        transcript_error: str | None = None
        try:
            transcript = await self._provider.fetch_transcript(playback_id, track.id)
        except ProviderError as e:
            transcript_error = str(e)
            self._logger.warning(
                "Transcript download failed",
                extra={"track_id": track.id, "error": str(e)},
            )

        updated = await self._store.update(
            record.id, lambda r: r.with_captions(captions_ref, transcript)
        )
        if transcript_error is None:
            await self._jobs.succeed_open(record.id, JobType.CAPTION_GENERATION)
        else:
            await self._jobs.fail_open(
                record.id, transcript_error, [JobType.CAPTION_GENERATION]
            )
        return WebhookOutcome.APPLIED, updated
