"""Two-tier storage: local filesystem plus an optional remote object store."""
import asyncio
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from clipforge.config import StorageConfig, StorageProvider
from clipforge.errors import (
    DeleteFailure,
    DownloadFailure,
    ObjectNotFound,
    PresignFailure,
    StorageError,
    UploadFailure,
)
from clipforge.models import DeleteOutcome, DeleteStatus, StorageLocation, StorageTier

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _is_not_found(exc: ClientError) -> bool:
    return str(exc.response.get("Error", {}).get("Code")) in _NOT_FOUND_CODES


def _utc_from_timestamp(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


class StorageTieringService:
    """
    Local disk and remote object store behind one interface.

    When the remote tier is disabled every operation degrades to a
    filesystem operation on ``local_root / key``.
    """

    def __init__(self, config: StorageConfig, client: Any = None):
        self.config = config
        self._client = client
        if self.remote_enabled and self._client is None:
            self._client = self._create_client()

    def _create_client(self):
        kwargs = {"region_name": self.config.region}
        if self.config.access_key_id and self.config.secret_access_key:
            kwargs["aws_access_key_id"] = self.config.access_key_id
            kwargs["aws_secret_access_key"] = self.config.secret_access_key
        return boto3.client("s3", **kwargs)

    @property
    def remote_enabled(self) -> bool:
        return self.config.remote_enabled

    @property
    def provider(self) -> str:
        return self.config.provider.value if self.remote_enabled else StorageProvider.LOCAL.value

    def key_to_local(self, key: str) -> Path:
        return Path(self.config.local_root) / key

    def public_url(self, key: str) -> str:
        """CDN URL if configured, else the bucket's canonical URL."""
        if self.config.cdn_base_url:
            return f"{self.config.cdn_base_url.rstrip('/')}/{key}"
        return f"https://{self.config.bucket}.s3.{self.config.region}.amazonaws.com/{key}"

    def local_location(self, path: str | Path) -> StorageLocation:
        """Describe a local file as a Local storage location."""
        stat = Path(path).stat()
        return StorageLocation(
            tier=StorageTier.LOCAL,
            path=str(path),
            provider=StorageProvider.LOCAL.value,
            size=stat.st_size,
            last_modified=_utc_from_timestamp(stat.st_mtime),
        )

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def upload(
        self,
        local_path: str | Path,
        key: str,
        content_type: str = "video/mp4",
    ) -> StorageLocation:
        """
        Push a local file to the remote tier.

        With the remote tier disabled the local file is described in place.

        Raises:
            UploadFailure: On provider error or a missing local file
        """
        local_path = Path(local_path)
        if not self.remote_enabled:
            try:
                return self.local_location(local_path)
            except OSError as exc:
                raise UploadFailure(f"Local file not found: {local_path}") from exc

        try:
            size = local_path.stat().st_size
            response = await asyncio.to_thread(self._put_object, local_path, key, content_type)
        except (BotoCoreError, ClientError, OSError) as exc:
            logger.error("Upload of %s to %s failed: %s", local_path, key, exc)
            raise UploadFailure(f"Failed to upload to {self.provider}: {exc}") from exc

        logger.info("Uploaded %s to %s", local_path.name, key)
        return StorageLocation(
            tier=StorageTier.REMOTE,
            path=key,
            provider=self.provider,
            size=size,
            last_modified=datetime.now(timezone.utc),
            public_url=self.public_url(key),
            etag=str(response.get("ETag", "")).strip('"') or None,
        )

    def _put_object(self, local_path: Path, key: str, content_type: str) -> dict:
        extra = {}
        if self.config.object_acl:
            extra["ACL"] = self.config.object_acl
        with open(local_path, "rb") as body:
            return self._client.put_object(
                Bucket=self.config.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                Metadata={
                    "upload-timestamp": datetime.now(timezone.utc).isoformat(),
                    "original-name": local_path.name,
                },
                **extra,
            )

    async def upload_and_cleanup(
        self,
        local_path: str | Path,
        key: str,
        content_type: str = "video/mp4",
    ) -> StorageLocation:
        """
        Upload, then delete the local file if it now lives in the remote tier.

        The local file is never touched when the upload fails or the remote
        tier is disabled.
        """
        location = await self.upload(local_path, key, content_type)
        if self.remote_enabled:
            try:
                Path(local_path).unlink(missing_ok=True)
                logger.info("Local file cleaned up: %s", local_path)
            except OSError as exc:
                # Both copies remain; a later delete resynchronises them.
                logger.warning("Could not remove local copy %s: %s", local_path, exc)
        return location

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def exists(self, key: str) -> bool:
        """Check whether key exists in the active tier."""
        if not self.remote_enabled:
            return self.key_to_local(key).exists()

        try:
            await asyncio.to_thread(self._client.head_object, Bucket=self.config.bucket, Key=key)
            return True
        except ClientError as exc:
            if _is_not_found(exc):
                return False
            raise StorageError(f"Existence check failed for {key}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Existence check failed for {key}: {exc}") from exc

    async def stat(self, key: str) -> StorageLocation:
        """
        Metadata for key in the active tier.

        Raises:
            ObjectNotFound: If key is absent
            StorageError: On provider error
        """
        if not self.remote_enabled:
            try:
                return self.local_location(self.key_to_local(key))
            except FileNotFoundError as exc:
                raise ObjectNotFound(f"File not found: {key}") from exc

        try:
            head = await asyncio.to_thread(self._client.head_object, Bucket=self.config.bucket, Key=key)
        except ClientError as exc:
            if _is_not_found(exc):
                raise ObjectNotFound(f"Object not found: {key}") from exc
            raise StorageError(f"Failed to get metadata for {key}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to get metadata for {key}: {exc}") from exc

        return StorageLocation(
            tier=StorageTier.REMOTE,
            path=key,
            provider=self.provider,
            size=int(head.get("ContentLength", 0)),
            last_modified=head.get("LastModified"),
            public_url=self.public_url(key),
            etag=str(head.get("ETag", "")).strip('"') or None,
        )

    async def presign(self, key: str, ttl_seconds: int = 3600) -> str:
        """
        Time-limited download URL; the local path when the remote tier is off.

        Raises:
            PresignFailure: On provider error
        """
        if not self.remote_enabled:
            return str(self.key_to_local(key))

        try:
            return await asyncio.to_thread(
                self._client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.config.bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to presign %s: %s", key, exc)
            raise PresignFailure(f"Failed to generate download URL: {exc}") from exc

    async def download(self, key: str, destination: str | Path) -> Path:
        """
        Copy the object stored under key to destination.

        Raises:
            ObjectNotFound: If key is absent
            DownloadFailure: On provider or filesystem error
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        if not self.remote_enabled:
            source = self.key_to_local(key)
            if not source.exists():
                raise ObjectNotFound(f"File not found: {key}")
            try:
                await asyncio.to_thread(shutil.copyfile, source, destination)
            except OSError as exc:
                raise DownloadFailure(f"Failed to copy {key}: {exc}") from exc
            return destination

        try:
            await asyncio.to_thread(
                self._client.download_file, self.config.bucket, key, str(destination)
            )
        except ClientError as exc:
            if _is_not_found(exc):
                raise ObjectNotFound(f"Object not found: {key}") from exc
            raise DownloadFailure(f"Failed to download {key}: {exc}") from exc
        except (BotoCoreError, OSError) as exc:
            raise DownloadFailure(f"Failed to download {key}: {exc}") from exc
        return destination

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete_local(self, key: str) -> DeleteOutcome:
        """
        Unlink the local copy of key. Absence is reported, not raised.

        Raises:
            DeleteFailure: If the file exists but cannot be removed
        """
        path = self.key_to_local(key)
        if not path.exists():
            return DeleteOutcome(StorageTier.LOCAL, DeleteStatus.NOT_FOUND, "Local file not found")
        try:
            path.unlink()
        except FileNotFoundError:
            return DeleteOutcome(StorageTier.LOCAL, DeleteStatus.NOT_FOUND, "Local file not found")
        except OSError as exc:
            raise DeleteFailure(f"Failed to delete local file {path}: {exc}") from exc
        logger.info("Local file deleted: %s", path)
        return DeleteOutcome(StorageTier.LOCAL, DeleteStatus.DELETED)

    async def delete_remote(self, key: str) -> DeleteOutcome:
        """
        Delete key from the remote tier after an existence check.

        Raises:
            DeleteFailure: On provider error
        """
        if not self.remote_enabled:
            return DeleteOutcome(StorageTier.REMOTE, DeleteStatus.NOT_APPLICABLE, "Remote tier disabled")

        try:
            if not await self.exists(key):
                return DeleteOutcome(
                    StorageTier.REMOTE, DeleteStatus.NOT_FOUND, "File not found in cloud storage"
                )
            await asyncio.to_thread(self._client.delete_object, Bucket=self.config.bucket, Key=key)
        except (StorageError, BotoCoreError, ClientError) as exc:
            logger.error("Remote delete of %s failed: %s", key, exc)
            raise DeleteFailure(f"Failed to delete from {self.provider}: {exc}") from exc
        logger.info("Remote object deleted: %s", key)
        return DeleteOutcome(StorageTier.REMOTE, DeleteStatus.DELETED)

    async def delete(self, key: str) -> DeleteOutcome:
        """Delete key from the active tier."""
        if self.remote_enabled:
            return await self.delete_remote(key)
        return await self.delete_local(key)


def build_storage_service(config: StorageConfig, client: Optional[Any] = None) -> StorageTieringService:
    """Construct the storage service for a process."""
    logger.info(
        "Storage tier: remote=%s provider=%s",
        config.remote_enabled,
        config.provider.value,
    )
    return StorageTieringService(config, client=client)
