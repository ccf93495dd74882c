"""Record store: sole writer of video records and the idempotency guard.

Every write goes through :meth:`VideoRecordStore.update`, an optimistic
read-modify-write keyed on ``(id, version)``. Concurrent writers to one
record (intake, the synchronous coordinator, webhook processing) therefore
never overwrite each other's changes: the loser re-reads and re-applies its
mutation on top of the winner's state.
"""

import asyncio
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from video_orchestrator.commons.infrastructure.documentdb import (
    DocumentConflictError,
    DocumentDBBase,
    DocumentDBUnavailableError,
)
from video_orchestrator.commons.settings.models import Settings
from video_orchestrator.commons.telemetry import get_logger
from video_orchestrator.domain.exceptions import (
    ConcurrentUpdateException,
    DuplicateRecordException,
    FindOrCreateAttemptsExceededException,
    RecordStoreUnavailableException,
    VideoNotFoundException,
)
from video_orchestrator.domain.models.thumbnail import ThumbnailTier
from video_orchestrator.domain.models.video import VideoRecord

RecordMutation = Callable[[VideoRecord], VideoRecord]

# Fields fixed at creation; a mutation touching them is a programming error
_IMMUTABLE_FIELDS = (
    "id",
    "storage_key",
    "original_filename",
    "size_bytes",
    "mime_type",
    "created_at",
)


@dataclass
class FindOrCreateResult:
    """Outcome of :meth:`VideoRecordStore.find_or_create_by_external_asset_id`."""

    record: VideoRecord
    created: bool


@contextmanager
def _unavailable_as_domain_error(operation: str) -> Iterator[None]:
    try:
        yield
    except DocumentDBUnavailableError as e:
        raise RecordStoreUnavailableException(operation, e.reason) from e


class VideoRecordStore:
    """Persistence and concurrency control for :class:`VideoRecord`."""

    def __init__(self, document_db: DocumentDBBase, settings: Settings) -> None:
        self._db = document_db
        self._collection = settings.document_db.collections.videos
        self._settings = settings.record_store
        self._logger = get_logger(__name__)

    async def ensure_indexes(self) -> None:
        """Create the unique asset index and the lookup indexes."""
        with _unavailable_as_domain_error("ensure_indexes"):
            await self._db.create_index(
                self._collection,
                [("external_asset_id", 1)],
                unique=True,
                name="uniq_external_asset_id",
                partial_filter={"external_asset_id": {"$type": "string"}},
            )
            await self._db.create_index(
                self._collection, [("storage_key", 1)], name="storage_key"
            )
            await self._db.create_index(
                self._collection, [("thumbnail_tier", 1)], name="thumbnail_tier"
            )

    @staticmethod
    def _to_document(record: VideoRecord) -> dict[str, Any]:
        return record.model_dump()

    @staticmethod
    def _from_document(document: dict[str, Any]) -> VideoRecord:
        return VideoRecord.model_validate(document)

    async def create(self, record: VideoRecord) -> VideoRecord:
        """Persist a new record.

        Raises:
            DuplicateRecordException: If its id or external asset id is taken.
            RecordStoreUnavailableException: If the database is unreachable.
        """
        with _unavailable_as_domain_error("create"):
            try:
                await self._db.insert(self._collection, self._to_document(record))
            except DocumentConflictError as e:
                raise DuplicateRecordException(
                    record.external_asset_id or record.id, e.detail
                ) from e

        self._logger.info(
            "Video record created",
            extra={
                "video_id": record.id,
                "external_asset_id": record.external_asset_id,
                "status": record.status.value,
            },
        )
        return record

    async def get(self, video_id: str) -> VideoRecord | None:
        with _unavailable_as_domain_error("get"):
            document = await self._db.find_by_id(self._collection, video_id)
        return self._from_document(document) if document else None

    async def require(self, video_id: str) -> VideoRecord:
        """Like :meth:`get` but raises when the record does not exist.

        Raises:
            VideoNotFoundException: If no record has this id.
        """
        record = await self.get(video_id)
        if record is None:
            raise VideoNotFoundException(video_id)
        return record

    async def find_by_external_asset_id(self, asset_id: str) -> VideoRecord | None:
        """Look up the record owning a provider asset.

        Only a successful query with no match returns None; connectivity
        failures raise :class:`RecordStoreUnavailableException`.
        """
        with _unavailable_as_domain_error("find_by_external_asset_id"):
            document = await self._db.find_one(
                self._collection, {"external_asset_id": asset_id}
            )
        return self._from_document(document) if document else None

    async def find_or_create_by_external_asset_id(
        self,
        asset_id: str,
        record: VideoRecord,
    ) -> FindOrCreateResult:
        """Return the record for ``asset_id``, creating ``record`` if none exists.

        Each attempt looks up, then tries to insert; a uniqueness conflict
        means a concurrent caller won, so its record is re-queried and
        returned. The loop is capped by ``max_find_or_create_attempts``.

        Raises:
            FindOrCreateAttemptsExceededException: If every attempt conflicted
                without the winner ever becoming visible.
            RecordStoreUnavailableException: If the database is unreachable.
        """
        candidate = record.model_copy(update={"external_asset_id": asset_id})
        max_attempts = self._settings.max_find_or_create_attempts

        for attempt in range(1, max_attempts + 1):
            existing = await self.find_by_external_asset_id(asset_id)
            if existing is not None:
                return FindOrCreateResult(record=existing, created=False)

            try:
                created = await self.create(candidate)
            except DuplicateRecordException:
                self._logger.warning(
                    "Uniqueness conflict creating record, re-querying winner",
                    extra={"external_asset_id": asset_id, "attempt": attempt},
                )
                winner = await self.find_by_external_asset_id(asset_id)
                if winner is not None:
                    return FindOrCreateResult(record=winner, created=False)
                if attempt < max_attempts:
                    await asyncio.sleep(self._settings.conflict_retry_delay_seconds)
                continue

            return FindOrCreateResult(record=created, created=True)

        self._logger.error(
            "Circuit breaker activated: find-or-create kept conflicting",
            extra={"external_asset_id": asset_id, "attempts": max_attempts},
        )
        raise FindOrCreateAttemptsExceededException(asset_id, max_attempts)

    async def update(self, video_id: str, mutate: RecordMutation) -> VideoRecord:
        """Apply ``mutate`` atomically to the current version of a record.

        ``mutate`` receives the freshly read record and returns the desired
        state; returning the same instance means "nothing to change". It may
        be invoked several times if other writers interleave, so it must be
        a pure function of its input.

        Raises:
            VideoNotFoundException: If the record does not exist.
            ConcurrentUpdateException: If ``max_update_attempts`` writes lost
                the race.
            DuplicateRecordException: If the change collides with another
                record's external asset id.
            RecordStoreUnavailableException: If the database is unreachable.
        """
        max_attempts = self._settings.max_update_attempts
        for attempt in range(1, max_attempts + 1):
            current = await self.require(video_id)
            proposed = mutate(current)
            if proposed is current:
                return current
            self._check_immutable(current, proposed)

            stored = proposed.model_copy(update={"version": current.version + 1})
            with _unavailable_as_domain_error("update"):
                try:
                    matched = await self._db.update_one(
                        self._collection,
                        {"id": video_id, "version": current.version},
                        self._to_document(stored),
                    )
                except DocumentConflictError as e:
                    raise DuplicateRecordException(
                        stored.external_asset_id or video_id, e.detail
                    ) from e
            if matched:
                return stored

            self._logger.debug(
                "Optimistic update lost a race, retrying",
                extra={"video_id": video_id, "attempt": attempt},
            )

        raise ConcurrentUpdateException(video_id, max_attempts)

    @staticmethod
    def _check_immutable(current: VideoRecord, proposed: VideoRecord) -> None:
        for field in _IMMUTABLE_FIELDS:
            if getattr(current, field) != getattr(proposed, field):
                raise ValueError(f"VideoRecord.{field} cannot change after creation")

    async def link_external_asset(
        self,
        video_id: str,
        asset_id: str,
        playback_id: str | None = None,
        external_status: str | None = None,
    ) -> VideoRecord:
        """Attach a provider asset to a record.

        If another record already owns the asset, that record is returned
        and this one is left untouched.
        """
        try:
            return await self.update(
                video_id,
                lambda r: r.link_external_asset(asset_id, playback_id, external_status),
            )
        except DuplicateRecordException:
            owner = await self.find_by_external_asset_id(asset_id)
            if owner is None:
                raise
            self._logger.warning(
                "Asset already linked to another record",
                extra={
                    "video_id": video_id,
                    "external_asset_id": asset_id,
                    "owner_video_id": owner.id,
                },
            )
            return owner

    async def find_needing_thumbnails(
        self,
        limit: int,
        after_id: str | None = None,
    ) -> list[VideoRecord]:
        """Records whose thumbnail is missing or a placeholder, ordered by id."""
        filters: dict[str, Any] = {
            "thumbnail_tier": {"$in": [None, ThumbnailTier.PLACEHOLDER.value]}
        }
        if after_id is not None:
            filters["id"] = {"$gt": after_id}
        with _unavailable_as_domain_error("find_needing_thumbnails"):
            documents = await self._db.find(
                self._collection, filters, limit=limit, sort=[("id", 1)]
            )
        return [self._from_document(d) for d in documents]
