"""Application services."""

from video_orchestrator.application.services.asset_submission import (
    AssetSubmissionService,
)
from video_orchestrator.application.services.background import BackgroundTaskRunner
from video_orchestrator.application.services.intake import UploadIntakeService
from video_orchestrator.application.services.jobs import JobTracker
from video_orchestrator.application.services.media_source import MediaSourceResolver
from video_orchestrator.application.services.metadata_estimator import (
    estimate_metadata,
)
from video_orchestrator.application.services.mode_selector import (
    ProcessingModeSelector,
)
from video_orchestrator.application.services.reconciliation import AssetReconciler
from video_orchestrator.application.services.record_store import (
    FindOrCreateResult,
    VideoRecordStore,
)
from video_orchestrator.application.services.reprocessing import (
    ThumbnailReprocessingService,
)
from video_orchestrator.application.services.sync_coordinator import (
    SynchronousProcessingCoordinator,
    SyncOutcome,
    SyncProcessingResult,
)
from video_orchestrator.application.services.thumbnails import (
    ClientCaptureTier,
    PlaceholderTier,
    ProviderFrameTier,
    SynthesizedPreviewTier,
    ThumbnailFallbackChain,
    ThumbnailRequest,
    ThumbnailTierBase,
)
from video_orchestrator.application.services.webhook_processor import (
    InvalidWebhookPayloadError,
    WebhookEventProcessor,
    WebhookProcessingResult,
)

__all__ = [
    "AssetReconciler",
    "AssetSubmissionService",
    "BackgroundTaskRunner",
    "ClientCaptureTier",
    "FindOrCreateResult",
    "InvalidWebhookPayloadError",
    "JobTracker",
    "MediaSourceResolver",
    "PlaceholderTier",
    "ProcessingModeSelector",
    "ProviderFrameTier",
    "SyncOutcome",
    "SyncProcessingResult",
    "SynchronousProcessingCoordinator",
    "SynthesizedPreviewTier",
    "ThumbnailFallbackChain",
    "ThumbnailReprocessingService",
    "ThumbnailRequest",
    "ThumbnailTierBase",
    "UploadIntakeService",
    "VideoRecordStore",
    "WebhookEventProcessor",
    "WebhookProcessingResult",
    "estimate_metadata",
]
