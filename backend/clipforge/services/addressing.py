"""Clip addressing - identity-by-filename convention.

Clips carry no database row. Identity and location are recovered from the
filename ``clip_<identity>.mp4`` under the local clips directory and the
``clips/`` key prefix in the remote tier.
"""
import re
import uuid
from pathlib import Path
from typing import Optional

CLIP_PREFIX = "clips"
VIDEO_PREFIX = "videos"

_CLIP_NAME_RE = re.compile(r"^clip_([0-9a-fA-F-]{32,36})\.mp4$")


class ClipAddressing:
    """Maps clip identities to local paths and remote keys."""

    def __init__(self, local_root: Path):
        self.local_root = Path(local_root)

    @property
    def clips_dir(self) -> Path:
        return self.local_root / CLIP_PREFIX

    @property
    def videos_dir(self) -> Path:
        return self.local_root / VIDEO_PREFIX

    def ensure_dirs(self) -> None:
        self.clips_dir.mkdir(parents=True, exist_ok=True)
        self.videos_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def new_identity() -> str:
        """Mint a fresh identity token."""
        return str(uuid.uuid4())

    @staticmethod
    def filename(identity: str) -> str:
        return f"clip_{identity}.mp4"

    @staticmethod
    def parse_identity(name: str) -> Optional[str]:
        """Inverse of filename(); None for anything that is not a clip file."""
        match = _CLIP_NAME_RE.match(Path(name).name)
        return match.group(1) if match else None

    def local_path(self, identity: str) -> Path:
        return self.clips_dir / self.filename(identity)

    def remote_key(self, identity: str) -> str:
        return f"{CLIP_PREFIX}/{self.filename(identity)}"

    def video_key(self, filename: str) -> str:
        return f"{VIDEO_PREFIX}/{Path(filename).name}"

    def scratch_path(self, identity: str, tag: str) -> Path:
        """Intermediate file owned by one job; never parses as a clip."""
        return self.clips_dir / f"clip_{identity}.{tag}.mp4"

    def key_to_local(self, key: str) -> Path:
        """Local-tier path backing a logical key."""
        return self.local_root / key
