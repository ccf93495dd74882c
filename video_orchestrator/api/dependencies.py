"""FastAPI dependency injection for services and settings."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from video_orchestrator.application.services.background import BackgroundTaskRunner
from video_orchestrator.application.services.intake import UploadIntakeService
from video_orchestrator.application.services.reprocessing import (
    ThumbnailReprocessingService,
)
from video_orchestrator.application.services.webhook_processor import (
    WebhookEventProcessor,
)
from video_orchestrator.commons.settings.loader import get_settings as _load_settings
from video_orchestrator.commons.settings.models import Settings
from video_orchestrator.infrastructure.factory import (
    InfrastructureFactory,
    get_factory,
    reset_factory,
)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Application settings loaded from config files and environment.
    """
    return _load_settings()


def get_infrastructure_factory(
    settings: Annotated[Settings, Depends(get_settings)],
) -> InfrastructureFactory:
    return get_factory(settings)


def get_intake_service(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> UploadIntakeService:
    return factory.get_intake_service()


def get_webhook_processor(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> WebhookEventProcessor:
    return factory.get_webhook_processor()


def get_reprocessing_service(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> ThumbnailReprocessingService:
    return factory.get_reprocessing_service()


def get_task_runner(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> BackgroundTaskRunner:
    return factory.get_task_runner()


# Type aliases for cleaner route signatures
SettingsDep = Annotated[Settings, Depends(get_settings)]
FactoryDep = Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)]
IntakeServiceDep = Annotated[UploadIntakeService, Depends(get_intake_service)]
WebhookProcessorDep = Annotated[WebhookEventProcessor, Depends(get_webhook_processor)]
ReprocessingServiceDep = Annotated[
    ThumbnailReprocessingService, Depends(get_reprocessing_service)
]
TaskRunnerDep = Annotated[BackgroundTaskRunner, Depends(get_task_runner)]


async def init_services(settings: Settings) -> None:
    """Create clients, buckets and indexes on startup.

    Fails fast: the service does not start without its document database,
    since every upload must be persisted before processing.
    """
    factory = get_factory(settings)
    await factory.initialize()


async def shutdown_services() -> None:
    """Drain background work and close every client."""
    try:
        factory = get_factory()
    except ValueError:
        return  # Factory not initialized
    try:
        await factory.close_all()
    finally:
        reset_factory()
        get_settings.cache_clear()
