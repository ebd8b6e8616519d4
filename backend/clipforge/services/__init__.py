"""Storage and clip services."""
from clipforge.services.addressing import ClipAddressing
from clipforge.services.clip_service import ClipService
from clipforge.services.storage_service import StorageTieringService, build_storage_service

__all__ = [
    "ClipAddressing",
    "ClipService",
    "StorageTieringService",
    "build_storage_service",
]
