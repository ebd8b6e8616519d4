"""Hand a freshly rendered clip to the storage tiers."""
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from clipforge.errors import TranscodeFailure, UploadFailure
from clipforge.models import StorageLocation
from clipforge.services.addressing import ClipAddressing
from clipforge.services.storage_service import StorageTieringService

logger = logging.getLogger(__name__)


async def persist_clip(
    storage: StorageTieringService,
    addressing: ClipAddressing,
    identity: str,
    local_path: Path,
) -> Tuple[List[StorageLocation], Optional[str]]:
    """
    Upload a clip and drop the local copy; keep it local if the upload fails.

    Returns:
        (locations, error) - error is set when the clip stayed local-only
        because the remote tier rejected it

    Raises:
        TranscodeFailure: If the rendered file is missing
    """
    key = addressing.remote_key(identity)
    try:
        location = await storage.upload_and_cleanup(local_path, key, "video/mp4")
    except UploadFailure as e:
        if not Path(local_path).exists():
            raise TranscodeFailure(f"Rendered clip {identity} is missing", str(e)) from e
        logger.warning(f"Cloud upload failed for clip {identity}, keeping local file: {e}")
        return [storage.local_location(local_path)], str(e)
    return [location], None
