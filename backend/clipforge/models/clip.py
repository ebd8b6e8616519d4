"""Clip results and storage descriptors."""
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from clipforge.models.settings import ClipSettings
from clipforge.models.video import Segment


class StorageTier(str, enum.Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class StorageLocation:
    """Where one copy of a clip lives."""
    tier: StorageTier
    path: str  # filesystem path for LOCAL, object key for REMOTE
    provider: str
    size: int = 0
    last_modified: Optional[datetime] = None
    public_url: Optional[str] = None
    etag: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "tier": self.tier.value,
            "path": self.path,
            "provider": self.provider,
            "size": self.size,
            "last_modified": self.last_modified.isoformat() if self.last_modified else None,
            "public_url": self.public_url,
            "etag": self.etag,
        }


@dataclass
class ClipResult:
    """Outcome of one clip slot (or one edit)."""
    identity: str
    segment: Optional[Segment]
    settings: Optional[ClipSettings]
    locations: List[StorageLocation] = field(default_factory=list)
    error: Optional[str] = None
    captions_applied: bool = False
    source_identity: Optional[str] = None  # set on edits

    @property
    def filename(self) -> str:
        return f"clip_{self.identity}.mp4"

    @property
    def degraded(self) -> bool:
        return self.error is not None

    @property
    def local_location(self) -> Optional[StorageLocation]:
        return next((loc for loc in self.locations if loc.tier == StorageTier.LOCAL), None)

    @property
    def remote_location(self) -> Optional[StorageLocation]:
        return next((loc for loc in self.locations if loc.tier == StorageTier.REMOTE), None)

    def to_dict(self) -> dict:
        return {
            "id": self.identity,
            "filename": self.filename,
            "segment": self.segment.to_dict() if self.segment else None,
            "settings": self.settings.model_dump(mode="json") if self.settings else None,
            "locations": [loc.to_dict() for loc in self.locations],
            "captions_applied": self.captions_applied,
            "source_id": self.source_identity,
            "error": self.error,
        }


class DeleteStatus(str, enum.Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    NOT_APPLICABLE = "not_applicable"
    FAILED = "failed"


@dataclass(frozen=True)
class DeleteOutcome:
    """Result of deleting a clip from one tier."""
    tier: StorageTier
    status: DeleteStatus
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != DeleteStatus.FAILED

    def to_dict(self) -> dict:
        return {"tier": self.tier.value, "status": self.status.value, "error": self.error}


@dataclass(frozen=True)
class DeletionReport:
    """Per-tier outcome of a dual-tier clip delete."""
    identity: str
    local: DeleteOutcome
    remote: DeleteOutcome

    @property
    def success(self) -> bool:
        return self.local.ok and self.remote.ok

    def to_dict(self) -> dict:
        return {
            "id": self.identity,
            "success": self.success,
            "local": self.local.to_dict(),
            "remote": self.remote.to_dict(),
        }


@dataclass(frozen=True)
class ShareLink:
    """Link for sharing a clip; expires_at is None for local links."""
    identity: str
    url: str
    provider: str
    expires_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.identity,
            "url": self.url,
            "provider": self.provider,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
