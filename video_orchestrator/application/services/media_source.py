"""URLs pointing at the uploaded source file in object storage."""

from video_orchestrator.commons.infrastructure.blob import BlobStorageBase


class MediaSourceResolver:
    """Turns a storage key into URLs for the provider and for fallback playback."""

    def __init__(
        self,
        blob_storage: BlobStorageBase,
        bucket: str,
        presigned_expiry_seconds: int,
    ) -> None:
        self._blob = blob_storage
        self._bucket = bucket
        self._expiry = presigned_expiry_seconds

    async def provider_input_url(self, storage_key: str) -> str:
        """Time-limited URL the provider downloads the source from.

        Raises:
            BlobNotFoundError: If the upload is not in storage.
        """
        return await self._blob.generate_presigned_url(
            self._bucket, storage_key, expiry_seconds=self._expiry
        )

    def direct_download_url(self, storage_key: str) -> str:
        """Stable URL of the original upload, served without the provider."""
        return self._blob.public_url(self._bucket, storage_key)
