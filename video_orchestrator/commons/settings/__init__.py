"""Settings management module."""

from video_orchestrator.commons.settings.loader import (
    SettingsLoader,
    get_settings,
    reset_settings,
)
from video_orchestrator.commons.settings.models import (
    AppSettings,
    BlobStorageSettings,
    BucketSettings,
    DocumentCollectionSettings,
    DocumentDBSettings,
    ProcessingSettings,
    ProviderSettings,
    RecordStoreSettings,
    ReprocessingSettings,
    ServerSettings,
    Settings,
    TelemetrySettings,
    ThumbnailSettings,
    WebhookSettings,
)

__all__ = [
    # Loader
    "SettingsLoader",
    "get_settings",
    "reset_settings",
    # Main settings
    "Settings",
    "AppSettings",
    "ServerSettings",
    # Storage
    "BlobStorageSettings",
    "BucketSettings",
    "DocumentDBSettings",
    "DocumentCollectionSettings",
    # Orchestration
    "ProviderSettings",
    "ProcessingSettings",
    "RecordStoreSettings",
    "WebhookSettings",
    "ThumbnailSettings",
    "ReprocessingSettings",
    # Telemetry
    "TelemetrySettings",
]
