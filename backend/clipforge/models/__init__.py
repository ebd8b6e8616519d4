"""Domain models."""
from clipforge.models.video import VideoAsset, Segment
from clipforge.models.settings import (
    CaptionStyle,
    ClipSettings,
    GenerationSettings,
    parse_duration,
    aspect_ratio_value,
)
from clipforge.models.clip import (
    StorageTier,
    StorageLocation,
    ClipResult,
    DeleteStatus,
    DeleteOutcome,
    DeletionReport,
    ShareLink,
)

__all__ = [
    "VideoAsset",
    "Segment",
    "CaptionStyle",
    "ClipSettings",
    "GenerationSettings",
    "parse_duration",
    "aspect_ratio_value",
    "StorageTier",
    "StorageLocation",
    "ClipResult",
    "DeleteStatus",
    "DeleteOutcome",
    "DeletionReport",
    "ShareLink",
]
