"""Clip service layer - operations on stored clips across both tiers."""
import logging
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

from clipforge.errors import ClipNotFound, DeleteFailure, ObjectNotFound, StorageError, UploadFailure
from clipforge.models import (
    ClipResult,
    DeleteOutcome,
    DeleteStatus,
    DeletionReport,
    ShareLink,
    StorageLocation,
    StorageTier,
)
from clipforge.services.addressing import ClipAddressing
from clipforge.services.storage_service import StorageTieringService

logger = logging.getLogger(__name__)


class ClipService:
    """Service for clip lookup, sharing, deletion and cleanup."""

    def __init__(self, storage: StorageTieringService, addressing: ClipAddressing):
        self.storage = storage
        self.addressing = addressing

    async def locate(self, identity: str) -> ClipResult:
        """
        Rebuild a clip's locations from the naming convention.

        Raises:
            ClipNotFound: If neither tier holds the clip
        """
        locations = []
        local_path = self.addressing.local_path(identity)
        if local_path.exists():
            locations.append(self.storage.local_location(local_path))

        if self.storage.remote_enabled:
            try:
                locations.append(await self.storage.stat(self.addressing.remote_key(identity)))
            except ObjectNotFound:
                pass
            except StorageError as e:
                logger.warning(f"Remote lookup for clip {identity} failed: {e}")

        if not locations:
            raise ClipNotFound(f"Clip {identity} not found")
        return ClipResult(identity=identity, segment=None, settings=None, locations=locations)

    async def delete_clip(self, identity: str) -> DeletionReport:
        """
        Delete a clip from both tiers independently.

        A failure on one tier never blocks the other; the report is
        successful when every attempted tier had nothing to delete or
        deleted it.
        """
        key = self.addressing.remote_key(identity)

        if self.storage.remote_enabled:
            try:
                remote = await self.storage.delete_remote(key)
            except DeleteFailure as e:
                logger.error(f"Cloud deletion failed for clip {identity}: {e}")
                remote = DeleteOutcome(StorageTier.REMOTE, DeleteStatus.FAILED, str(e))
        else:
            remote = DeleteOutcome(StorageTier.REMOTE, DeleteStatus.NOT_APPLICABLE, "Remote tier disabled")

        try:
            local = await self.storage.delete_local(key)
        except DeleteFailure as e:
            logger.error(f"Local deletion failed for clip {identity}: {e}")
            local = DeleteOutcome(StorageTier.LOCAL, DeleteStatus.FAILED, str(e))

        report = DeletionReport(identity=identity, local=local, remote=remote)
        if report.success:
            logger.info(f"Clip {identity} deleted (local={local.status.value}, remote={remote.status.value})")
        else:
            logger.warning(f"Partial deletion of clip {identity}")
        return report

    async def share(self, identity: str, ttl_seconds: int = 3600) -> ShareLink:
        """
        Presigned link when the clip is in the remote tier, else a local link.

        Raises:
            ClipNotFound: If neither tier holds the clip
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        key = self.addressing.remote_key(identity)
        if self.storage.remote_enabled:
            try:
                if await self.storage.exists(key):
                    url = await self.storage.presign(key, ttl_seconds)
                    return ShareLink(
                        identity=identity,
                        url=url,
                        provider=self.storage.provider,
                        expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds),
                    )
            except StorageError as e:
                logger.warning(f"Cloud share URL generation failed for clip {identity}: {e}")

        local_path = self.addressing.local_path(identity)
        if local_path.exists():
            return ShareLink(identity=identity, url=str(local_path), provider="local")
        raise ClipNotFound(f"Clip {identity} not found")

    def cleanup_old_clips(self, older_than_hours: float = 24) -> int:
        """
        Remove local files older than ``older_than_hours``.

        Only files last modified before the sweep started are considered, so
        clips being written by running jobs are left alone.

        Returns:
            Number of files deleted
        """
        if older_than_hours < 0:
            raise ValueError("older_than_hours cannot be negative")

        clips_dir = self.addressing.clips_dir
        if not clips_dir.exists():
            return 0

        sweep_start = time.time()
        cutoff = sweep_start - older_than_hours * 3600
        deleted = 0
        for entry in clips_dir.iterdir():
            try:
                stat = entry.stat()
            except FileNotFoundError:
                continue
            if not entry.is_file() or stat.st_mtime >= cutoff:
                continue
            entry.unlink(missing_ok=True)
            deleted += 1

        logger.info(f"Cleaned up {deleted} old clips")
        return deleted

    async def publish_source_video(self, video_path: str | Path) -> StorageLocation:
        """
        Upload a source video under the videos/ prefix.

        The local source is kept; on upload failure its local location is
        returned instead.
        """
        video_path = Path(video_path)
        key = self.addressing.video_key(video_path.name)
        try:
            return await self.storage.upload(video_path, key, "video/mp4")
        except UploadFailure as e:
            logger.warning(f"Source video upload failed, serving locally: {e}")
            return self.storage.local_location(video_path)
