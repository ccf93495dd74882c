"""Infrastructure factory for creating service instances from configuration."""

from typing import Any, cast

from video_orchestrator.application.services.asset_submission import (
    AssetSubmissionService,
)
from video_orchestrator.application.services.background import BackgroundTaskRunner
from video_orchestrator.application.services.intake import UploadIntakeService
from video_orchestrator.application.services.jobs import JobTracker
from video_orchestrator.application.services.media_source import MediaSourceResolver
from video_orchestrator.application.services.mode_selector import (
    ProcessingModeSelector,
)
from video_orchestrator.application.services.reconciliation import AssetReconciler
from video_orchestrator.application.services.record_store import VideoRecordStore
from video_orchestrator.application.services.reprocessing import (
    ThumbnailReprocessingService,
)
from video_orchestrator.application.services.sync_coordinator import (
    SynchronousProcessingCoordinator,
)
from video_orchestrator.application.services.thumbnails import (
    ClientCaptureTier,
    PlaceholderTier,
    ProviderFrameTier,
    SynthesizedPreviewTier,
    ThumbnailFallbackChain,
)
from video_orchestrator.application.services.webhook_processor import (
    WebhookEventProcessor,
)
from video_orchestrator.commons.infrastructure.blob import (
    BlobStorageBase,
    MinioBlobStorage,
)
from video_orchestrator.commons.infrastructure.documentdb import (
    DocumentDBBase,
    MongoDBDocumentDB,
)
from video_orchestrator.commons.settings.models import Settings
from video_orchestrator.commons.telemetry import get_logger
from video_orchestrator.infrastructure.processing import (
    MuxProcessingProvider,
    ProcessingProviderBase,
)

logger = get_logger(__name__)


class InfrastructureFactory:
    """Factory for creating infrastructure clients and the services built on them.

    Every instance is created lazily and cached, so the whole application
    shares one database client, one provider client and one task runner.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._instances: dict[str, Any] = {}

    @property
    def settings(self) -> Settings:
        return self._settings

    def get_blob_storage(self) -> BlobStorageBase:
        """Get blob storage instance.

        Returns:
            Configured blob storage provider.
        """
        if "blob_storage" not in self._instances:
            blob_settings = self._settings.blob_storage
            self._instances["blob_storage"] = MinioBlobStorage(
                endpoint=blob_settings.endpoint,
                access_key=blob_settings.access_key,
                secret_key=blob_settings.secret_key,
                secure=blob_settings.use_ssl,
                region=blob_settings.region,
                public_base_url=blob_settings.public_base_url,
            )
        return cast("BlobStorageBase", self._instances["blob_storage"])

    def get_document_db(self) -> DocumentDBBase:
        """Get document database instance.

        Returns:
            Configured document database provider.
        """
        if "document_db" not in self._instances:
            doc_settings = self._settings.document_db
            if doc_settings.username and doc_settings.password:
                connection_string = (
                    f"mongodb://{doc_settings.username}:{doc_settings.password}"
                    f"@{doc_settings.host}:{doc_settings.port}"
                    f"/?authSource={doc_settings.auth_source}"
                )
            else:
                connection_string = f"mongodb://{doc_settings.host}:{doc_settings.port}"
            self._instances["document_db"] = MongoDBDocumentDB(
                connection_string=connection_string,
                database_name=doc_settings.database,
                server_selection_timeout_ms=doc_settings.server_selection_timeout_ms,
            )
        return cast("DocumentDBBase", self._instances["document_db"])

    def get_processing_provider(self) -> ProcessingProviderBase:
        """Get the external processing provider client.

        Raises:
            ValueError: If the configured provider is not supported.
        """
        if "processing_provider" not in self._instances:
            provider_settings = self._settings.provider
            if provider_settings.provider != "mux":
                raise ValueError(
                    f"Unsupported processing provider: {provider_settings.provider}"
                )
            self._instances["processing_provider"] = MuxProcessingProvider(
                token_id=provider_settings.token_id,
                token_secret=provider_settings.token_secret,
                webhook_secret=provider_settings.webhook_secret,
                api_base_url=provider_settings.api_base_url,
                image_base_url=provider_settings.image_base_url,
                stream_base_url=provider_settings.stream_base_url,
                playback_policy=provider_settings.playback_policy,
                mp4_support=provider_settings.mp4_support,
                normalize_audio=provider_settings.normalize_audio,
                generate_captions=provider_settings.generate_captions,
                caption_language=provider_settings.caption_language,
                webhook_tolerance_seconds=provider_settings.webhook_tolerance_seconds,
                timeout=provider_settings.timeout_seconds,
            )
        return cast("ProcessingProviderBase", self._instances["processing_provider"])

    def get_task_runner(self) -> BackgroundTaskRunner:
        if "task_runner" not in self._instances:
            self._instances["task_runner"] = BackgroundTaskRunner()
        return cast("BackgroundTaskRunner", self._instances["task_runner"])

    def get_media_source(self) -> MediaSourceResolver:
        if "media_source" not in self._instances:
            blob_settings = self._settings.blob_storage
            self._instances["media_source"] = MediaSourceResolver(
                self.get_blob_storage(),
                blob_settings.buckets.uploads,
                blob_settings.presigned_url_expiry_seconds,
            )
        return cast("MediaSourceResolver", self._instances["media_source"])

    def get_record_store(self) -> VideoRecordStore:
        if "record_store" not in self._instances:
            self._instances["record_store"] = VideoRecordStore(
                self.get_document_db(), self._settings
            )
        return cast("VideoRecordStore", self._instances["record_store"])

    def get_job_tracker(self) -> JobTracker:
        if "job_tracker" not in self._instances:
            self._instances["job_tracker"] = JobTracker(
                self.get_document_db(), self._settings
            )
        return cast("JobTracker", self._instances["job_tracker"])

    def get_thumbnail_chain(self) -> ThumbnailFallbackChain:
        """Chain ordered provider frame, synthesized, client capture, placeholder."""
        if "thumbnail_chain" not in self._instances:
            thumb_settings = self._settings.thumbnails
            bucket = self._settings.blob_storage.buckets.thumbnails
            blob = self.get_blob_storage()
            self._instances["thumbnail_chain"] = ThumbnailFallbackChain(
                tiers=[
                    ProviderFrameTier(
                        self.get_processing_provider(),
                        thumb_settings.provider_frame_time_seconds,
                    ),
                    SynthesizedPreviewTier(
                        blob,
                        bucket,
                        thumb_settings.preview_width,
                        thumb_settings.preview_height,
                    ),
                    ClientCaptureTier(
                        blob, bucket, thumb_settings.max_client_capture_bytes
                    ),
                    PlaceholderTier(thumb_settings.placeholder_url),
                ],
                placeholder_url=thumb_settings.placeholder_url,
                tier_timeout_seconds=thumb_settings.tier_timeout_seconds,
            )
        return cast("ThumbnailFallbackChain", self._instances["thumbnail_chain"])

    def get_reconciler(self) -> AssetReconciler:
        if "reconciler" not in self._instances:
            self._instances["reconciler"] = AssetReconciler(
                provider=self.get_processing_provider(),
                record_store=self.get_record_store(),
                job_tracker=self.get_job_tracker(),
                frame_time_seconds=(
                    self._settings.thumbnails.provider_frame_time_seconds
                ),
                audio_enhancement_requested=self._settings.provider.normalize_audio,
            )
        return cast("AssetReconciler", self._instances["reconciler"])

    def get_asset_submission(self) -> AssetSubmissionService:
        if "asset_submission" not in self._instances:
            self._instances["asset_submission"] = AssetSubmissionService(
                provider=self.get_processing_provider(),
                record_store=self.get_record_store(),
                job_tracker=self.get_job_tracker(),
                media_source=self.get_media_source(),
                settings=self._settings.provider,
            )
        return cast("AssetSubmissionService", self._instances["asset_submission"])

    def get_intake_service(self) -> UploadIntakeService:
        if "intake" not in self._instances:
            processing = self._settings.processing
            self._instances["intake"] = UploadIntakeService(
                record_store=self.get_record_store(),
                job_tracker=self.get_job_tracker(),
                mode_selector=ProcessingModeSelector(processing),
                coordinator=SynchronousProcessingCoordinator(
                    provider=self.get_processing_provider(),
                    record_store=self.get_record_store(),
                    job_tracker=self.get_job_tracker(),
                    submission=self.get_asset_submission(),
                    reconciler=self.get_reconciler(),
                    settings=processing,
                ),
                submission=self.get_asset_submission(),
                reconciler=self.get_reconciler(),
                thumbnail_chain=self.get_thumbnail_chain(),
                media_source=self.get_media_source(),
                task_runner=self.get_task_runner(),
                settings=processing,
            )
        return cast("UploadIntakeService", self._instances["intake"])

    def get_webhook_processor(self) -> WebhookEventProcessor:
        if "webhook_processor" not in self._instances:
            self._instances["webhook_processor"] = WebhookEventProcessor(
                provider=self.get_processing_provider(),
                record_store=self.get_record_store(),
                job_tracker=self.get_job_tracker(),
                reconciler=self.get_reconciler(),
                document_db=self.get_document_db(),
                settings=self._settings,
            )
        return cast("WebhookEventProcessor", self._instances["webhook_processor"])

    def get_reprocessing_service(self) -> ThumbnailReprocessingService:
        if "reprocessing" not in self._instances:
            self._instances["reprocessing"] = ThumbnailReprocessingService(
                record_store=self.get_record_store(),
                job_tracker=self.get_job_tracker(),
                thumbnail_chain=self.get_thumbnail_chain(),
                settings=self._settings.reprocessing,
            )
        return cast("ThumbnailReprocessingService", self._instances["reprocessing"])

    async def initialize(self) -> None:
        """Create buckets and indexes the services rely on."""
        blob = self.get_blob_storage()
        for bucket in (
            self._settings.blob_storage.buckets.uploads,
            self._settings.blob_storage.buckets.thumbnails,
        ):
            if await blob.create_bucket(bucket):
                logger.info("Created bucket", extra={"bucket": bucket})

        await self.get_record_store().ensure_indexes()
        await self.get_job_tracker().ensure_indexes()
        await self.get_webhook_processor().ensure_indexes()

    async def close_all(self) -> None:
        """Drain background tasks, then close every client connection."""
        runner = self._instances.get("task_runner")
        if runner is not None:
            await runner.shutdown(self._settings.app.shutdown_grace_seconds)

        for name in ("processing_provider", "document_db"):
            instance = self._instances.get(name)
            if instance is None:
                continue
            try:
                await instance.close()
            except Exception as e:
                logger.warning(
                    "Error closing client", extra={"client": name, "error": str(e)}
                )

        self._instances.clear()


class _FactoryHolder:
    """Holder for the factory singleton to avoid global statements."""

    instance: InfrastructureFactory | None = None


def get_factory(settings: Settings | None = None) -> InfrastructureFactory:
    """Get or create the infrastructure factory singleton.

    Args:
        settings: Settings to use. Required on first call.

    Raises:
        ValueError: If settings not provided on first call.
    """
    if _FactoryHolder.instance is None:
        if settings is None:
            raise ValueError("Settings required to initialize factory")
        _FactoryHolder.instance = InfrastructureFactory(settings)

    return _FactoryHolder.instance


def reset_factory() -> None:
    """Reset the factory singleton (for testing)."""
    _FactoryHolder.instance = None
