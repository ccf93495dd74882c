"""Unit tests for MinIO blob storage provider."""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from minio.error import S3Error

from video_orchestrator.commons.infrastructure.blob import (
    BlobNotFoundError,
    MinioBlobStorage,
)


class _NoSuchKey(S3Error):
    """S3Error stand-in that skips the HTTP response plumbing."""

    code = "NoSuchKey"

    def __init__(self) -> None:
        Exception.__init__(self, "NoSuchKey")


@pytest.fixture
def mock_minio():
    with patch(
        "video_orchestrator.commons.infrastructure.blob.minio_provider.Minio"
    ) as minio_class:
        yield minio_class.return_value


@pytest.fixture
def storage(mock_minio) -> MinioBlobStorage:
    return MinioBlobStorage(
        endpoint="localhost:9000",
        access_key="minio",
        secret_key="minio123",
    )


class TestMinioBlobStorage:
    async def test_upload_returns_metadata(self, storage, mock_minio):
        mock_minio.put_object.return_value = MagicMock(etag="etag-1")

        metadata = await storage.upload(
            "video-thumbnails", "v-1/preview.png", b"png", content_type="image/png"
        )

        kwargs = mock_minio.put_object.call_args.kwargs
        assert kwargs["bucket_name"] == "video-thumbnails"
        assert kwargs["object_name"] == "v-1/preview.png"
        assert kwargs["length"] == 3
        assert metadata.size_bytes == 3
        assert metadata.etag == "etag-1"

    async def test_presigned_url(self, storage, mock_minio):
        mock_minio.presigned_get_object.return_value = "https://minio/signed"

        url = await storage.generate_presigned_url(
            "video-uploads", "clip.mp4", expiry_seconds=600
        )

        assert url == "https://minio/signed"
        assert mock_minio.presigned_get_object.call_args.kwargs["expires"] == (
            timedelta(seconds=600)
        )

    async def test_presigned_url_for_missing_object(self, storage, mock_minio):
        mock_minio.stat_object.side_effect = _NoSuchKey()

        with pytest.raises(BlobNotFoundError):
            await storage.generate_presigned_url("video-uploads", "missing.mp4")

        mock_minio.presigned_get_object.assert_not_called()

    async def test_exists(self, storage, mock_minio):
        assert await storage.exists("video-uploads", "clip.mp4") is True

        mock_minio.stat_object.side_effect = _NoSuchKey()
        assert await storage.exists("video-uploads", "clip.mp4") is False

    def test_public_url_defaults_to_endpoint(self, storage):
        assert (
            storage.public_url("video-uploads", "/uploads/clip.mp4")
            == "http://localhost:9000/video-uploads/uploads/clip.mp4"
        )

    def test_public_url_uses_configured_origin(self, mock_minio):
        storage = MinioBlobStorage(
            endpoint="minio:9000",
            access_key="a",
            secret_key="b",
            public_base_url="https://cdn.example.com/",
        )

        assert (
            storage.public_url("video-thumbnails", "v-1/preview.png")
            == "https://cdn.example.com/video-thumbnails/v-1/preview.png"
        )

    async def test_create_bucket_is_idempotent(self, storage, mock_minio):
        mock_minio.bucket_exists.side_effect = [False, True]

        assert await storage.create_bucket("video-uploads") is True
        assert await storage.create_bucket("video-uploads") is False
        mock_minio.make_bucket.assert_called_once_with("video-uploads")

    async def test_health_check(self, storage, mock_minio):
        mock_minio.list_buckets.side_effect = ConnectionError("refused")

        result = await storage.health_check()

        assert result.healthy is False
        assert "refused" in result.message
