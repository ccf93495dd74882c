"""Pydantic settings models for application configuration."""

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_MB = 1024 * 1024


class AppSettings(BaseModel):
    """Application-level settings."""

    name: str = "video-orchestrator"
    version: str = "0.1.0"
    environment: Literal["dev", "staging", "prod"] = "dev"
    debug: bool = False
    shutdown_grace_seconds: float = Field(default=10.0, ge=0)


class ServerSettings(BaseModel):
    """HTTP server settings."""

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    workers: int = Field(default=1, ge=1, le=32)
    reload: bool = False
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    api_prefix: str = "/v1"
    docs_enabled: bool = True


class BucketSettings(BaseModel):
    """Bucket name configuration."""

    uploads: str = "video-uploads"
    thumbnails: str = "video-thumbnails"


class BlobStorageSettings(BaseModel):
    """Blob storage settings (MinIO/S3)."""

    provider: Literal["minio", "s3"] = "minio"
    public_base_url: str | None = None
    endpoint: str = "localhost:9000"
    access_key: str = ""
    secret_key: str = ""
    use_ssl: bool = False
    region: str = "us-east-1"
    buckets: BucketSettings = Field(default_factory=BucketSettings)
    presigned_url_expiry_seconds: int = Field(default=6 * 3600, ge=60)


class DocumentCollectionSettings(BaseModel):
    """Document DB collection names."""

    videos: str = "videos"
    processing_jobs: str = "processing_jobs"
    webhook_events: str = "webhook_events"


class DocumentDBSettings(BaseModel):
    """Document database settings (MongoDB)."""

    provider: Literal["mongodb"] = "mongodb"
    host: str = "localhost"
    port: int = 27017
    username: str = ""
    password: str = ""
    database: str = "video_orchestrator"
    auth_source: str = "admin"
    server_selection_timeout_ms: int = Field(default=5000, ge=100)
    collections: DocumentCollectionSettings = Field(
        default_factory=DocumentCollectionSettings
    )


class ProviderSettings(BaseModel):
    """External processing provider settings (Mux)."""

    provider: Literal["mux"] = "mux"
    api_base_url: str = "https://api.mux.com"
    image_base_url: str = "https://image.mux.com"
    stream_base_url: str = "https://stream.mux.com"
    token_id: str = ""
    token_secret: str = ""
    webhook_secret: str = ""
    webhook_tolerance_seconds: int = Field(default=300, ge=1)
    playback_policy: Literal["public", "signed"] = "public"
    mp4_support: Literal["none", "standard"] = "standard"
    normalize_audio: bool = True
    generate_captions: bool = True
    caption_language: str = "en"
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_create_attempts: int = Field(default=3, ge=1, le=10)
    retry_backoff_seconds: float = Field(default=1.0, ge=0)


class ProcessingSettings(BaseModel):
    """Processing mode selection and synchronous polling settings."""

    sync_size_threshold_mb: int = Field(default=100, ge=1)
    small_file_mb: int = Field(default=50, ge=1)
    fast_mime_types: list[str] = Field(
        default_factory=lambda: ["video/mp4", "video/webm", "video/x-m4v"]
    )
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    sync_deadline_seconds: float = Field(default=90.0, gt=0)
    max_transient_errors: int = Field(default=3, ge=1)

    @property
    def sync_size_threshold_bytes(self) -> int:
        """Size at or above which uploads are always processed asynchronously."""
        return self.sync_size_threshold_mb * _MB

    @property
    def small_file_bytes(self) -> int:
        """Size below which uploads are always processed synchronously."""
        return self.small_file_mb * _MB


class RecordStoreSettings(BaseModel):
    """Video record store settings."""

    max_find_or_create_attempts: int = Field(default=2, ge=1, le=10)
    conflict_retry_delay_seconds: float = Field(default=0.05, ge=0)
    max_update_attempts: int = Field(default=5, ge=1, le=50)


class WebhookSettings(BaseModel):
    """Webhook ledger and event processing settings."""

    ledger_retention_days: int = Field(default=30, ge=1)
    lookup_attempts: int = Field(default=4, ge=1, le=10)
    lookup_backoff_seconds: float = Field(default=0.25, ge=0)


class ThumbnailSettings(BaseModel):
    """Thumbnail fallback chain settings."""

    tier_timeout_seconds: float = Field(default=10.0, gt=0)
    provider_frame_time_seconds: float = Field(default=10.0, ge=0)
    preview_width: int = Field(default=1280, ge=64, le=3840)
    preview_height: int = Field(default=720, ge=36, le=2160)
    max_client_capture_bytes: int = Field(default=5 * _MB, ge=1024)
    placeholder_url: str = "/static/video-placeholder.svg"


class ReprocessingSettings(BaseModel):
    """Batch thumbnail reprocessing settings."""

    batch_size: int = Field(default=10, ge=1)
    max_batch_size: int = Field(default=25, ge=1)


class TelemetrySettings(BaseModel):
    """Logging settings."""

    log_format: Literal["json", "text"] = "json"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class Settings(BaseSettings):
    """Root settings container with environment loading."""

    app: AppSettings = Field(default_factory=AppSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    blob_storage: BlobStorageSettings = Field(default_factory=BlobStorageSettings)
    document_db: DocumentDBSettings = Field(default_factory=DocumentDBSettings)
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)
    record_store: RecordStoreSettings = Field(default_factory=RecordStoreSettings)
    webhooks: WebhookSettings = Field(default_factory=WebhookSettings)
    thumbnails: ThumbnailSettings = Field(default_factory=ThumbnailSettings)
    reprocessing: ReprocessingSettings = Field(default_factory=ReprocessingSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VIDEO_ORCH__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
