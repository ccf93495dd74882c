"""Shared fixtures: an in-memory document database and service wiring."""

import asyncio
import copy
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from video_orchestrator.commons.infrastructure.blob import HealthStatus
from video_orchestrator.commons.infrastructure.documentdb import (
    DocumentConflictError,
    DocumentDBBase,
    DocumentDBUnavailableError,
)
from video_orchestrator.commons.settings.models import Settings
from video_orchestrator.infrastructure.processing import (
    AssetStatus,
    ProcessingProviderBase,
    ProviderAsset,
    ProviderTrack,
)


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and any(k.startswith("$") for k in condition):
        for op, operand in condition.items():
            if op == "$in" and value not in operand:
                return False
            if op == "$gt" and (value is None or not value > operand):
                return False
            if op == "$exists" and (value is not None) != operand:
                return False
            if op == "$type" and operand == "string" and not isinstance(value, str):
                return False
        return True
    return bool(value == condition)


def _matches(document: dict[str, Any], filters: dict[str, Any]) -> bool:
    return all(_matches_condition(document.get(k), c) for k, c in filters.items())


class InMemoryDocumentDB(DocumentDBBase):
    """Dict-backed DocumentDBBase that enforces unique (partial) indexes.

    Set ``unavailable`` to make every call raise DocumentDBUnavailableError.
    """

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.indexes: dict[str, list[dict[str, Any]]] = {}
        self.unavailable = False
        self.insert_calls = 0

    async def _check_available(self, operation: str) -> None:
        # Yield first so concurrent callers interleave like real round trips
        await asyncio.sleep(0)
        if self.unavailable:
            raise DocumentDBUnavailableError(operation, "connection refused")

    def _docs(self, collection: str) -> dict[str, dict[str, Any]]:
        return self.collections.setdefault(collection, {})

    def _check_unique(self, collection: str, candidate: dict[str, Any]) -> None:
        for index in self.indexes.get(collection, []):
            if not index["unique"]:
                continue
            if index["partial_filter"] and not _matches(
                candidate, index["partial_filter"]
            ):
                continue
            key = tuple(candidate.get(f) for f in index["fields"])
            for other in self._docs(collection).values():
                if other["id"] == candidate["id"]:
                    continue
                if index["partial_filter"] and not _matches(
                    other, index["partial_filter"]
                ):
                    continue
                if tuple(other.get(f) for f in index["fields"]) == key:
                    raise DocumentConflictError(collection, f"{index['name']} {key}")

    async def insert(self, collection: str, document: dict[str, Any]) -> str:
        await self._check_available("insert")
        self.insert_calls += 1
        doc = copy.deepcopy(document)
        if doc["id"] in self._docs(collection):
            raise DocumentConflictError(collection, f"_id {doc['id']}")
        self._check_unique(collection, doc)
        self._docs(collection)[doc["id"]] = doc
        return str(doc["id"])

    async def find_by_id(
        self, collection: str, document_id: str
    ) -> dict[str, Any] | None:
        await self._check_available("find_by_id")
        doc = self._docs(collection).get(document_id)
        return copy.deepcopy(doc) if doc else None

    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[dict[str, Any]]:
        await self._check_available("find")
        docs = [d for d in self._docs(collection).values() if _matches(d, filters)]
        for field, direction in reversed(sort or []):
            docs.sort(key=lambda d: d.get(field) or "", reverse=direction < 0)
        return [copy.deepcopy(d) for d in docs[skip : skip + limit]]

    async def find_one(
        self, collection: str, filters: dict[str, Any]
    ) -> dict[str, Any] | None:
        found = await self.find(collection, filters, limit=1)
        return found[0] if found else None

    async def update(
        self, collection: str, document_id: str, updates: dict[str, Any]
    ) -> bool:
        return await self.update_one(collection, {"id": document_id}, updates)

    async def update_one(
        self, collection: str, filters: dict[str, Any], updates: dict[str, Any]
    ) -> bool:
        await self._check_available("update_one")
        for doc in self._docs(collection).values():
            if _matches(doc, filters):
                merged = {**doc, **copy.deepcopy(updates), "id": doc["id"]}
                self._check_unique(collection, merged)
                doc.update(merged)
                return True
        return False

    async def count(
        self, collection: str, filters: dict[str, Any] | None = None
    ) -> int:
        await self._check_available("count")
        return len(
            [d for d in self._docs(collection).values() if _matches(d, filters or {})]
        )

    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
        partial_filter: dict[str, Any] | None = None,
        expire_after_seconds: int | None = None,
    ) -> str:
        await self._check_available("create_index")
        index_name = name or "_".join(f for f, _ in fields)
        self.indexes.setdefault(collection, []).append(
            {
                "name": index_name,
                "fields": [f for f, _ in fields],
                "unique": unique,
                "partial_filter": partial_filter,
                "expire_after_seconds": expire_after_seconds,
            }
        )
        return index_name

    async def health_check(self) -> HealthStatus:
        return HealthStatus(healthy=not self.unavailable, latency_ms=0.1)

    async def close(self) -> None:
        return None


@pytest.fixture
def settings() -> Settings:
    """Defaults with every delay shrunk so tests run fast."""
    s = Settings()
    s.processing.poll_interval_seconds = 0.01
    s.processing.sync_deadline_seconds = 0.2
    s.provider.retry_backoff_seconds = 0
    s.record_store.conflict_retry_delay_seconds = 0
    s.webhooks.lookup_backoff_seconds = 0
    s.thumbnails.tier_timeout_seconds = 0.5
    return s


@pytest.fixture
def document_db() -> InMemoryDocumentDB:
    return InMemoryDocumentDB()


def _build_asset(
    asset_id: str = "asset-1",
    status: AssetStatus = AssetStatus.READY,
    playback_id: str | None = "play-1",
    duration_seconds: float | None = 120.0,
    errors: list[str] | None = None,
    passthrough: str | None = None,
) -> ProviderAsset:
    return ProviderAsset(
        id=asset_id,
        status=status,
        playback_id=playback_id,
        duration_seconds=duration_seconds,
        aspect_ratio="16:9",
        passthrough=passthrough,
        errors=errors or [],
        tracks=[
            ProviderTrack(
                id="video-track", type="video", max_width=1920, max_height=1080
            )
        ],
    )


@pytest.fixture
def make_asset():
    """Factory for provider asset snapshots."""
    return _build_asset


@pytest.fixture
def provider() -> MagicMock:
    """Provider double with real-looking URL builders."""
    mock = MagicMock(spec=ProcessingProviderBase)
    mock.create_asset = AsyncMock(
        return_value=_build_asset(
            status=AssetStatus.PREPARING, duration_seconds=None
        )
    )
    mock.get_asset = AsyncMock(return_value=_build_asset())
    mock.fetch_transcript = AsyncMock(return_value="hello world")
    mock.thumbnail_url.side_effect = (
        lambda pid, t=0: f"https://image.test/{pid}/thumbnail.jpg?time={t}"
    )
    mock.streaming_url.side_effect = lambda pid: f"https://stream.test/{pid}.m3u8"
    mock.download_url.side_effect = lambda pid: f"https://stream.test/{pid}/high.mp4"
    mock.captions_url.side_effect = (
        lambda pid, tid: f"https://stream.test/{pid}/text/{tid}.vtt"
    )
    return mock


@pytest.fixture
def blob_storage() -> MagicMock:
    blob = MagicMock()
    blob.upload = AsyncMock()
    blob.generate_presigned_url = AsyncMock(
        side_effect=lambda bucket, path, expiry_seconds=3600: (
            f"https://blob.test/{bucket}/{path}?signature=abc"
        )
    )
    blob.public_url.side_effect = (
        lambda bucket, path: f"https://cdn.test/{bucket}/{path}"
    )
    return blob


@pytest.fixture
def record_store(document_db, settings):
    from video_orchestrator.application.services.record_store import (
        VideoRecordStore,
    )

    return VideoRecordStore(document_db, settings)


@pytest.fixture
def job_tracker(document_db, settings):
    from video_orchestrator.application.services.jobs import JobTracker

    return JobTracker(document_db, settings)


@pytest.fixture
def thumbnail_chain(provider, blob_storage, settings):
    from video_orchestrator.application.services.thumbnails import (
        ClientCaptureTier,
        PlaceholderTier,
        ProviderFrameTier,
        SynthesizedPreviewTier,
        ThumbnailFallbackChain,
    )

    thumbs = settings.thumbnails
    return ThumbnailFallbackChain(
        tiers=[
            ProviderFrameTier(provider, thumbs.provider_frame_time_seconds),
            SynthesizedPreviewTier(blob_storage, "thumbs", 320, 180),
            ClientCaptureTier(blob_storage, "thumbs", thumbs.max_client_capture_bytes),
            PlaceholderTier(thumbs.placeholder_url),
        ],
        placeholder_url=thumbs.placeholder_url,
        tier_timeout_seconds=thumbs.tier_timeout_seconds,
    )


@pytest.fixture
def reconciler(provider, record_store, job_tracker, settings):
    from video_orchestrator.application.services.reconciliation import (
        AssetReconciler,
    )

    return AssetReconciler(
        provider=provider,
        record_store=record_store,
        job_tracker=job_tracker,
        frame_time_seconds=settings.thumbnails.provider_frame_time_seconds,
        audio_enhancement_requested=settings.provider.normalize_audio,
    )


@pytest.fixture
def media_source(blob_storage):
    from video_orchestrator.application.services.media_source import (
        MediaSourceResolver,
    )

    return MediaSourceResolver(blob_storage, "uploads", 3600)


@pytest.fixture
def submission(provider, record_store, job_tracker, media_source, settings):
    from video_orchestrator.application.services.asset_submission import (
        AssetSubmissionService,
    )

    return AssetSubmissionService(
        provider=provider,
        record_store=record_store,
        job_tracker=job_tracker,
        media_source=media_source,
        settings=settings.provider,
    )


@pytest.fixture
def coordinator(provider, record_store, job_tracker, submission, reconciler, settings):
    from video_orchestrator.application.services.sync_coordinator import (
        SynchronousProcessingCoordinator,
    )

    return SynchronousProcessingCoordinator(
        provider=provider,
        record_store=record_store,
        job_tracker=job_tracker,
        submission=submission,
        reconciler=reconciler,
        settings=settings.processing,
    )


@pytest.fixture
async def task_runner():
    from video_orchestrator.application.services.background import (
        BackgroundTaskRunner,
    )

    runner = BackgroundTaskRunner()
    yield runner
    await runner.shutdown(grace_seconds=1)


@pytest.fixture
async def indexed(record_store, job_tracker):
    """Create the record and job indexes on the in-memory database."""
    await record_store.ensure_indexes()
    await job_tracker.ensure_indexes()
