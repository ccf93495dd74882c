"""Health check endpoints."""

import asyncio
from enum import Enum

from fastapi import APIRouter
from pydantic import BaseModel, Field

from video_orchestrator.api.dependencies import FactoryDep, SettingsDep
from video_orchestrator.commons.infrastructure.blob import HealthStatus as ProbeResult

router = APIRouter()


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    """Health status of a single component."""

    name: str = Field(description="Component name")
    status: HealthStatus = Field(description="Component health status")
    latency_ms: float | None = Field(default=None)
    message: str | None = Field(default=None, description="Additional details")


class HealthResponse(BaseModel):
    """Health check response."""

    status: HealthStatus = Field(description="Overall health status")
    version: str = Field(description="Application version")
    environment: str = Field(description="Deployment environment")
    background_tasks: int = Field(description="Background tasks in flight")
    components: list[ComponentHealth] = Field(default_factory=list)


class LivenessResponse(BaseModel):
    """Simple liveness response."""

    status: str = Field(default="ok")


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool = Field(description="Whether the service is ready to accept requests")
    checks: dict[str, bool] = Field(default_factory=dict)


async def _probe(factory: FactoryDep) -> dict[str, ProbeResult]:
    document_db, blob_storage = await asyncio.gather(
        factory.get_document_db().health_check(),
        factory.get_blob_storage().health_check(),
    )
    return {"document_db": document_db, "blob_storage": blob_storage}


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Overall health of the service and the stores it depends on.",
)
async def health_check(settings: SettingsDep, factory: FactoryDep) -> HealthResponse:
    probes = await _probe(factory)
    components = [
        ComponentHealth(
            name=name,
            status=HealthStatus.HEALTHY if result.healthy else HealthStatus.UNHEALTHY,
            latency_ms=round(result.latency_ms, 2),
            message=result.message,
        )
        for name, result in probes.items()
    ]

    # Uploads cannot be registered without the document database
    if not probes["document_db"].healthy:
        overall = HealthStatus.UNHEALTHY
    elif not probes["blob_storage"].healthy:
        overall = HealthStatus.DEGRADED
    else:
        overall = HealthStatus.HEALTHY

    return HealthResponse(
        status=overall,
        version=settings.app.version,
        environment=settings.app.environment,
        background_tasks=factory.get_task_runner().pending,
        components=components,
    )


@router.get(
    "/health/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
)
async def liveness() -> LivenessResponse:
    """Simple liveness check - just verifies the app is running."""
    return LivenessResponse(status="ok")


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
)
async def readiness(factory: FactoryDep) -> ReadinessResponse:
    """Ready when both the document database and blob storage answer."""
    probes = await _probe(factory)
    checks = {name: result.healthy for name, result in probes.items()}
    return ReadinessResponse(ready=all(checks.values()), checks=checks)
