"""Segment recommendation interface and a heuristic reference scorer.

The scorer is an external collaborator: any object with an async
``recommend`` method returning Segment candidates can be plugged into the
batch orchestrator.
"""
import logging
import math
from typing import List, Optional, Protocol

import numpy as np

from clipforge.models import GenerationSettings, Segment, VideoAsset

logger = logging.getLogger(__name__)

REASONS = (
    "High motion detected",
    "Face detected",
    "Audio peak identified",
    "Scene change detected",
    "Object of interest found",
    "Optimal visual composition",
    "Engaging content detected",
)


class SegmentScorer(Protocol):
    async def recommend(
        self,
        video: VideoAsset,
        clip_duration: float,
        num_clips: int,
    ) -> List[Segment]:
        ...


class HeuristicScorer:
    """Stochastic stand-in for a content scorer."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = np.random.default_rng(seed)

    async def recommend(
        self,
        video: VideoAsset,
        clip_duration: float,
        num_clips: int,
    ) -> List[Segment]:
        duration = video.duration_seconds
        max_start = max(0.0, duration - clip_duration)
        gap = max(clip_duration, duration / (num_clips * 2))

        segments = []
        for i in range(num_clips):
            start = min(i * gap + self._rng.random() * gap * 0.5, max_start)
            segments.append(Segment(
                start_time_seconds=float(math.floor(start)),
                duration_seconds=clip_duration,
                confidence=float(0.7 + self._rng.random() * 0.3),
                reason=REASONS[int(self._rng.integers(len(REASONS)))],
            ))

        segments.sort(key=lambda s: s.start_time_seconds)
        return segments


def suggest_settings(video: VideoAsset) -> GenerationSettings:
    """Pick aspect ratio and clip count from the source's shape and length."""
    aspect_ratio = "16:9"
    if video.width and video.height:
        ratio = video.width / video.height
        if ratio > 1.5:
            aspect_ratio = "16:9"
        elif ratio < 0.8:
            aspect_ratio = "9:16"
        else:
            aspect_ratio = "1:1"

    duration = video.duration_seconds
    if duration < 60:
        num_clips = 1
    elif duration < 300:
        num_clips = 3
    else:
        num_clips = min(8, int(duration // 60))

    return GenerationSettings(
        duration_seconds=min(15.0, duration) if duration > 0 else 15.0,
        aspect_ratio=aspect_ratio,
        num_clips=num_clips,
        captions_enabled=True,
    )
