"""Webhook ledger entry."""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class WebhookOutcome(str, Enum):
    """What processing a delivery led to."""

    APPLIED = "applied"  # Merged into a record
    IGNORED = "ignored"  # Understood but nothing to change
    ORPHANED = "orphaned"  # No record found after bounded retries
    FAILED = "failed"  # Processing raised; a redelivery may retry

    @property
    def is_retryable(self) -> bool:
        return self in (WebhookOutcome.ORPHANED, WebhookOutcome.FAILED)


class WebhookEvent(BaseModel):
    """One inbound callback, keyed by asset id and payload hash.

    A row without an outcome is a delivery currently being processed.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: str = Field(description="Provider event type, e.g. video.asset.ready")
    external_asset_id: str = Field(description="Asset the event refers to")
    payload_hash: str = Field(description="SHA-256 of the raw payload")
    provider_event_id: str | None = Field(default=None)
    received_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    applied_at: datetime | None = Field(default=None)
    outcome: WebhookOutcome | None = Field(default=None)
    attempts: int = Field(default=1, ge=1)
    error: str | None = Field(default=None)
