"""Source video and segment models."""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class VideoAsset:
    """Probed source video. Never mutated after probing."""
    source_path: Path
    duration_seconds: float
    width: int
    height: int
    frame_rate: float
    audio_present: bool = True
    video_codec: Optional[str] = None


@dataclass(frozen=True)
class Segment:
    """A (start, duration) window of the source chosen for one clip."""
    start_time_seconds: float
    duration_seconds: float
    confidence: float = 0.5
    reason: str = "Standard segment"

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")

    @property
    def end_time_seconds(self) -> float:
        return self.start_time_seconds + self.duration_seconds

    def __repr__(self):
        return (
            f"Segment({self.start_time_seconds:.2f}+{self.duration_seconds:.2f}s, "
            f"conf={self.confidence:.2f}, {self.reason!r})"
        )

    def to_dict(self) -> dict:
        return {
            "start_time": self.start_time_seconds,
            "duration": self.duration_seconds,
            "confidence": self.confidence,
            "reason": self.reason,
        }
