"""MinIO implementation of blob storage."""

import asyncio
import io
import time
from datetime import UTC, datetime, timedelta

from minio import Minio
from minio.error import S3Error

from video_orchestrator.commons.infrastructure.blob.base import (
    BlobMetadata,
    BlobNotFoundError,
    BlobStorageBase,
    HealthStatus,
)


class MinioBlobStorage(BlobStorageBase):
    """MinIO implementation of blob storage.

    Works with both MinIO (local development) and AWS S3 (production). The
    MinIO client is blocking, so every call runs in the default executor.
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        secure: bool = False,
        region: str | None = None,
        public_base_url: str | None = None,
    ) -> None:
        """Initialize MinIO client.

        Args:
            endpoint: MinIO/S3 endpoint (e.g., "localhost:9000").
            access_key: Access key ID.
            secret_key: Secret access key.
            secure: Use HTTPS connection.
            region: AWS region (optional, for S3).
            public_base_url: CDN or proxy origin serving public buckets.
                Defaults to the endpoint itself.
        """
        self._client = Minio(
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
            region=region,
        )
        self._endpoint = endpoint
        scheme = "https" if secure else "http"
        self._public_base_url = (public_base_url or f"{scheme}://{endpoint}").rstrip(
            "/"
        )

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: dict[str, str] | None = None,
    ) -> BlobMetadata:
        """Upload a blob to storage."""

        def _upload() -> BlobMetadata:
            result = self._client.put_object(
                bucket_name=bucket,
                object_name=path,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type,
                metadata=metadata,  # type: ignore[arg-type]
            )
            return BlobMetadata(
                path=path,
                size_bytes=len(data),
                content_type=content_type,
                created_at=datetime.now(UTC),
                etag=result.etag or "",
            )

        return await asyncio.get_running_loop().run_in_executor(None, _upload)

    async def exists(self, bucket: str, path: str) -> bool:
        """Check if a blob exists."""

        def _stat() -> bool:
            try:
                self._client.stat_object(bucket, path)
                return True
            except S3Error as e:
                if e.code == "NoSuchKey":
                    return False
                raise

        return await asyncio.get_running_loop().run_in_executor(None, _stat)

    async def generate_presigned_url(
        self,
        bucket: str,
        path: str,
        expiry_seconds: int = 3600,
    ) -> str:
        """Generate a presigned GET URL.

        Raises:
            BlobNotFoundError: If the object does not exist.
        """

        def _presign() -> str:
            try:
                self._client.stat_object(bucket, path)
            except S3Error as e:
                if e.code == "NoSuchKey":
                    raise BlobNotFoundError(bucket, path) from e
                raise
            url = self._client.presigned_get_object(
                bucket_name=bucket,
                object_name=path,
                expires=timedelta(seconds=expiry_seconds),
            )
            return str(url)

        return await asyncio.get_running_loop().run_in_executor(None, _presign)

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self._public_base_url}/{bucket}/{path.lstrip('/')}"

    async def create_bucket(self, bucket: str) -> bool:
        """Create a new bucket."""

        def _create() -> bool:
            if self._client.bucket_exists(bucket):
                return False
            self._client.make_bucket(bucket)
            return True

        return await asyncio.get_running_loop().run_in_executor(None, _create)

    async def bucket_exists(self, bucket: str) -> bool:
        """Check if a bucket exists."""
        return await asyncio.get_running_loop().run_in_executor(
            None, self._client.bucket_exists, bucket
        )

    async def health_check(self) -> HealthStatus:
        """Check service health."""
        start = time.perf_counter()
        try:
            await asyncio.get_running_loop().run_in_executor(
                None, self._client.list_buckets
            )
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=False,
                latency_ms=latency_ms,
                message=f"MinIO health check failed: {e}",
                details={"endpoint": self._endpoint, "error": str(e)},
            )
        latency_ms = (time.perf_counter() - start) * 1000
        return HealthStatus(
            healthy=True,
            latency_ms=latency_ms,
            message="MinIO is healthy",
            details={"endpoint": self._endpoint},
        )
