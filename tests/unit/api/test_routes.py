"""Unit tests for API routes."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from video_orchestrator.api.main import create_app
from video_orchestrator.application.dtos.intake import UploadVideoResponse
from video_orchestrator.application.dtos.maintenance import (
    ReprocessThumbnailsResponse,
)
from video_orchestrator.application.services.webhook_processor import (
    InvalidWebhookPayloadError,
)
from video_orchestrator.commons.infrastructure.blob import HealthStatus
from video_orchestrator.domain.exceptions import (
    ConcurrentUpdateException,
    FindOrCreateAttemptsExceededException,
    InvalidWebhookSignatureException,
    RecordStoreUnavailableException,
    RetryNotAllowedException,
    UnsupportedMediaTypeException,
    VideoNotFoundException,
)
from video_orchestrator.domain.models.job import JobType, ProcessingJob
from video_orchestrator.domain.models.thumbnail import ThumbnailTier
from video_orchestrator.domain.models.video import VideoRecord, VideoStatus
from video_orchestrator.domain.value_objects import ProcessingMode
from video_orchestrator.infrastructure.processing import EventKind, ProviderEvent

UPLOAD = {
    "storage_key": "uploads/clip.mp4",
    "filename": "clip.mp4",
    "size_bytes": 40 * 1024 * 1024,
    "mime_type": "video/mp4",
    "title": "Clip",
}


@pytest.fixture
def mock_settings():
    """Create mock settings for the app."""
    settings = MagicMock()
    settings.app.name = "test-app"
    settings.app.version = "0.1.0"
    settings.app.environment = "dev"
    settings.server.cors_origins = ["*"]
    settings.server.api_prefix = "/v1"
    settings.server.docs_enabled = True
    return settings


def _probe(healthy: bool = True) -> HealthStatus:
    return HealthStatus(healthy=healthy, latency_ms=1.234, message="ok")


@pytest.fixture
def mock_factory():
    """Create mock infrastructure factory."""
    factory = MagicMock()
    factory.get_document_db.return_value.health_check = AsyncMock(
        return_value=_probe()
    )
    factory.get_blob_storage.return_value.health_check = AsyncMock(
        return_value=_probe()
    )
    factory.get_task_runner.return_value.pending = 2
    return factory


@pytest.fixture
def mock_intake_service():
    return AsyncMock()


@pytest.fixture
def mock_webhook_processor():
    processor = MagicMock()
    processor.process = AsyncMock()
    return processor


@pytest.fixture
def mock_task_runner():
    runner = MagicMock()
    runner.submit.side_effect = lambda coro, name: coro.close()
    return runner


@pytest.fixture
def mock_reprocessing_service():
    return AsyncMock()


@pytest.fixture
def client(
    mock_settings,
    mock_factory,
    mock_intake_service,
    mock_webhook_processor,
    mock_task_runner,
    mock_reprocessing_service,
):
    """Create test client with mocked dependencies."""
    from video_orchestrator.api.dependencies import (
        get_infrastructure_factory,
        get_intake_service,
        get_reprocessing_service,
        get_settings,
        get_task_runner,
        get_webhook_processor,
    )

    with (
        patch("video_orchestrator.api.main.get_settings", return_value=mock_settings),
        patch("video_orchestrator.api.main.init_services", new_callable=AsyncMock),
        patch("video_orchestrator.api.main.shutdown_services", new_callable=AsyncMock),
    ):
        app = create_app()
        overrides = {
            get_settings: mock_settings,
            get_infrastructure_factory: mock_factory,
            get_intake_service: mock_intake_service,
            get_webhook_processor: mock_webhook_processor,
            get_task_runner: mock_task_runner,
            get_reprocessing_service: mock_reprocessing_service,
        }
        for dependency, value in overrides.items():
            app.dependency_overrides[dependency] = (lambda v: lambda: v)(value)
        yield TestClient(app, raise_server_exceptions=False)


def _record(**overrides) -> VideoRecord:
    fields = {
        "id": "video-1",
        "storage_key": "uploads/clip.mp4",
        "original_filename": "clip.mp4",
        "size_bytes": 40 * 1024 * 1024,
        "mime_type": "video/mp4",
        "title": "Clip",
    }
    fields.update(overrides)
    return VideoRecord(**fields)


def _upload_response(
    status_value: VideoStatus = VideoStatus.READY, created: bool = True
) -> UploadVideoResponse:
    return UploadVideoResponse(
        id="video-1",
        status=status_value,
        processing_mode=ProcessingMode.SYNCHRONOUS,
        thumbnail_ref="https://image.test/play-1/thumbnail.jpg",
        thumbnail_tier=ThumbnailTier.PROVIDER,
        streaming_url="https://stream.test/play-1.m3u8",
        download_url="https://cdn.test/uploads/clip.mp4",
        estimated_duration=120.0,
        metadata_source="authoritative",
        degraded=False,
        created=created,
    )


class TestHealthRoutes:
    """Tests for health check endpoints."""

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["background_tasks"] == 2
        assert {c["name"] for c in data["components"]} == {
            "document_db",
            "blob_storage",
        }

    def test_health_unhealthy_without_document_db(self, client, mock_factory):
        mock_factory.get_document_db.return_value.health_check.return_value = (
            _probe(healthy=False)
        )

        assert client.get("/health").json()["status"] == "unhealthy"

    def test_health_degraded_without_blob_storage(self, client, mock_factory):
        mock_factory.get_blob_storage.return_value.health_check.return_value = (
            _probe(healthy=False)
        )

        assert client.get("/health").json()["status"] == "degraded"

    def test_liveness_check(self, client):
        response = client.get("/health/live")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "ok"}

    def test_readiness_check(self, client):
        response = client.get("/health/ready")
        assert response.json() == {
            "ready": True,
            "checks": {"document_db": True, "blob_storage": True},
        }


class TestUploadRoutes:
    """Tests for the upload intake endpoint."""

    def test_ready_upload_is_created(self, client, mock_intake_service):
        mock_intake_service.submit.return_value = _upload_response()

        response = client.post("/v1/videos", json=UPLOAD)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["thumbnail_tier"] == "provider"
        submitted = mock_intake_service.submit.await_args.args[0]
        assert submitted.storage_key == "uploads/clip.mp4"

    def test_processing_upload_is_accepted(self, client, mock_intake_service):
        mock_intake_service.submit.return_value = _upload_response(
            VideoStatus.PROCESSING
        )

        response = client.post("/v1/videos", json=UPLOAD)

        assert response.status_code == status.HTTP_202_ACCEPTED

    def test_duplicate_upload_returns_existing(self, client, mock_intake_service):
        mock_intake_service.submit.return_value = _upload_response(created=False)

        response = client.post("/v1/videos", json=UPLOAD)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["created"] is False

    def test_invalid_body(self, client):
        response = client.post("/v1/videos", json={**UPLOAD, "size_bytes": 0})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_unsupported_media_type(self, client, mock_intake_service):
        mock_intake_service.submit.side_effect = UnsupportedMediaTypeException(
            "image/png"
        )

        response = client.post("/v1/videos", json=UPLOAD)

        assert response.status_code == status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
        assert response.json()["error"]["code"] == "UNSUPPORTED_MEDIA_TYPE"

    def test_store_unavailable(self, client, mock_intake_service):
        mock_intake_service.submit.side_effect = RecordStoreUnavailableException(
            "create", "no servers"
        )

        response = client.post("/v1/videos", json=UPLOAD)

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        error = response.json()["error"]
        assert error["code"] == "STORAGE_UNAVAILABLE"
        assert error["details"] == {"operation": "create"}

    def test_circuit_breaker(self, client, mock_intake_service):
        mock_intake_service.submit.side_effect = (
            FindOrCreateAttemptsExceededException("asset-1", 2)
        )

        response = client.post(
            "/v1/videos", json={**UPLOAD, "external_asset_id": "asset-1"}
        )

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["error"]["code"] == "CIRCUIT_BREAKER_OPEN"

    def test_unexpected_error_is_enveloped(self, client, mock_intake_service):
        mock_intake_service.submit.side_effect = RuntimeError("boom")

        response = client.post("/v1/videos", json=UPLOAD)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
        assert "boom" not in response.text


class TestVideoRoutes:
    """Tests for status, jobs and retry endpoints."""

    def test_get_video(self, client, mock_intake_service):
        mock_intake_service.get_status.return_value = _record(
            status=VideoStatus.PROCESSING, duration_seconds=65.0
        )

        response = client.get("/v1/videos/video-1")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "processing"
        assert data["duration_formatted"] == "1:05"

    def test_get_missing_video(self, client, mock_intake_service):
        mock_intake_service.get_status.side_effect = VideoNotFoundException("nope")

        response = client.get("/v1/videos/nope")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["details"] == {"video_id": "nope"}

    def test_list_jobs(self, client, mock_intake_service):
        mock_intake_service.list_jobs.return_value = [
            ProcessingJob(video_id="video-1", job_type=JobType.ASSET_CREATION)
        ]

        response = client.get("/v1/videos/video-1/jobs")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["video_id"] == "video-1"
        assert [j["job_type"] for j in data["jobs"]] == ["asset_creation"]

    def test_retry(self, client, mock_intake_service):
        mock_intake_service.retry.return_value = _record(
            status=VideoStatus.PROCESSING
        )

        response = client.post("/v1/videos/video-1/retry")

        assert response.status_code == status.HTTP_202_ACCEPTED
        mock_intake_service.retry.assert_awaited_once_with("video-1")

    def test_retry_not_failed(self, client, mock_intake_service):
        mock_intake_service.retry.side_effect = RetryNotAllowedException(
            "video-1", VideoStatus.READY
        )

        response = client.post("/v1/videos/video-1/retry")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"]["code"] == "INVALID_STATUS"

    def test_retry_conflict(self, client, mock_intake_service):
        mock_intake_service.retry.side_effect = ConcurrentUpdateException(
            "video-1", 5
        )

        response = client.post("/v1/videos/video-1/retry")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"]["code"] == "RECORD_CONFLICT"


class TestWebhookRoutes:
    """Tests for the provider callback endpoint."""

    def test_acknowledges_and_schedules(
        self, client, mock_webhook_processor, mock_task_runner
    ):
        event = ProviderEvent(
            kind=EventKind.ASSET_READY,
            event_type="video.asset.ready",
            external_asset_id="asset-1",
        )
        mock_webhook_processor.parse.return_value = event

        response = client.post(
            "/v1/webhooks/provider",
            content=b'{"type": "video.asset.ready"}',
            headers={"mux-signature": "t=1,v1=abc"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"received": True, "event_type": "video.asset.ready"}
        mock_webhook_processor.authenticate.assert_called_once_with(
            b'{"type": "video.asset.ready"}', "t=1,v1=abc"
        )
        mock_webhook_processor.process.assert_called_once_with(
            event, b'{"type": "video.asset.ready"}'
        )
        assert mock_task_runner.submit.call_args.kwargs["name"] == (
            "webhook:video.asset.ready:asset-1"
        )

    def test_bad_signature(self, client, mock_webhook_processor, mock_task_runner):
        mock_webhook_processor.authenticate.side_effect = (
            InvalidWebhookSignatureException("signature mismatch")
        )

        response = client.post("/v1/webhooks/provider", content=b"{}")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"]["code"] == "INVALID_SIGNATURE"
        mock_task_runner.submit.assert_not_called()

    def test_invalid_payload(self, client, mock_webhook_processor):
        mock_webhook_processor.parse.side_effect = InvalidWebhookPayloadError(
            "body is not JSON"
        )

        response = client.post("/v1/webhooks/provider", content=b"not json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["code"] == "INVALID_PAYLOAD"


class TestMaintenanceRoutes:
    def test_reprocess_thumbnails(self, client, mock_reprocessing_service):
        mock_reprocessing_service.run_batch.return_value = (
            ReprocessThumbnailsResponse(
                processed=2, upgraded=1, unchanged=1, next_cursor="video-2"
            )
        )

        response = client.post(
            "/v1/maintenance/thumbnails/reprocess",
            json={"limit": 2, "cursor": "video-0"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["next_cursor"] == "video-2"
        mock_reprocessing_service.run_batch.assert_awaited_once_with(
            limit=2, cursor="video-0"
        )


class TestRequestId:
    def test_request_id_is_echoed(self, client):
        response = client.get("/health/live", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"

    def test_request_id_is_generated(self, client):
        assert client.get("/health/live").headers["X-Request-ID"]

    def test_error_envelope_carries_request_id(self, client, mock_intake_service):
        mock_intake_service.get_status.side_effect = VideoNotFoundException("nope")

        response = client.get("/v1/videos/nope", headers={"X-Request-ID": "req-7"})

        assert response.json()["error"]["request_id"] == "req-7"
