"""Domain exceptions for the video orchestrator."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from video_orchestrator.domain.models.video import VideoStatus


class DomainException(Exception):
    """Base exception for domain errors."""


class VideoNotFoundException(DomainException):
    """Raised when a requested video record does not exist."""

    def __init__(self, video_id: str) -> None:
        self.video_id = video_id
        super().__init__(f"Video not found: {video_id}")


class InvalidStatusTransitionException(DomainException):
    """Raised when a status change is not an edge of the record state machine."""

    def __init__(
        self, video_id: str, current: VideoStatus, requested: VideoStatus
    ) -> None:
        self.video_id = video_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Video {video_id} cannot move from {current.value} to {requested.value}"
        )


class RetryNotAllowedException(DomainException):
    """Raised when an operator retry targets a record that has not failed."""

    def __init__(self, video_id: str, status: VideoStatus) -> None:
        self.video_id = video_id
        self.status = status
        super().__init__(
            f"Video {video_id} can only be retried from failed, current: {status.value}"
        )


class ExternalAssetConflictException(DomainException):
    """Raised when a record is already linked to a different provider asset."""

    def __init__(self, video_id: str, existing: str, proposed: str) -> None:
        self.video_id = video_id
        self.existing = existing
        self.proposed = proposed
        super().__init__(
            f"Video {video_id} is linked to asset {existing}, refusing {proposed}"
        )


class DuplicateRecordException(DomainException):
    """Raised when a write collides with a unique key, e.g. an asset id."""

    def __init__(self, key: str, detail: str) -> None:
        self.key = key
        self.detail = detail
        super().__init__(f"Duplicate record for {key}: {detail}")


class FindOrCreateAttemptsExceededException(DomainException):
    """Circuit breaker for the find-or-create loop.

    Raised when lookup and creation keep contradicting each other (the
    record is never found yet creation always conflicts), which points to
    a broken read path rather than a genuine race.
    """

    def __init__(self, external_asset_id: str, attempts: int) -> None:
        self.external_asset_id = external_asset_id
        self.attempts = attempts
        super().__init__(
            f"Circuit breaker activated: find-or-create for asset "
            f"{external_asset_id} exhausted {attempts} attempts"
        )


class ConcurrentUpdateException(DomainException):
    """Raised when optimistic updates of one record keep losing the race."""

    def __init__(self, video_id: str, attempts: int) -> None:
        self.video_id = video_id
        self.attempts = attempts
        super().__init__(
            f"Video {video_id} changed concurrently {attempts} times in a row"
        )


class RecordStoreUnavailableException(DomainException):
    """Raised when the durable record store cannot be reached."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Record store unavailable during {operation}: {reason}")


class InvalidWebhookSignatureException(DomainException):
    """Raised when a provider callback fails signature verification."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid webhook signature: {reason}")


class UnsupportedMediaTypeException(DomainException):
    """Raised when an upload does not declare a video MIME type."""

    def __init__(self, mime_type: str) -> None:
        self.mime_type = mime_type
        super().__init__(f"Unsupported media type: {mime_type}")
