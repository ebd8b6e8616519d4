"""Segment planning - where in the source each clip starts."""
import logging
from typing import List, Optional, Sequence

import numpy as np

from clipforge.errors import InsufficientDuration
from clipforge.models import Segment

logger = logging.getLogger(__name__)

SINGLE_CLIP_BIAS = 0.30  # single clips start a third of the way in
JITTER_FRACTION = 0.10  # +/- share of the base segment length


def max_start_time(video_duration: float, clip_duration: float) -> float:
    return max(0.0, video_duration - clip_duration)


def calculate_start_time(
    index: int,
    total_clips: int,
    video_duration: float,
    clip_duration: float,
    jitter: float = 0.0,
) -> float:
    """
    Start time for clip ``index`` of ``total_clips``.

    Args:
        index: Slot index (0-based)
        total_clips: Number of clips in the batch
        video_duration: Source duration in seconds
        clip_duration: Clip length in seconds
        jitter: Offset added to the evenly spaced base start

    Returns:
        Start time clamped to [0, video_duration - clip_duration]
    """
    max_start = max_start_time(video_duration, clip_duration)

    if total_clips == 1:
        return min(video_duration * SINGLE_CLIP_BIAS, max_start)

    segment_length = video_duration / total_clips
    start = index * segment_length + jitter
    return min(max(0.0, start), max_start)


class SegmentPlanner:
    """
    Plans one segment per clip slot.

    Jittered placements may overlap; callers must not assume disjoint
    segments.
    """

    def __init__(self, jitter: bool = True, seed: Optional[int] = None):
        self.jitter = jitter
        self._rng = np.random.default_rng(seed)

    def plan(
        self,
        video_duration: float,
        clip_duration: float,
        num_clips: int,
        candidates: Optional[Sequence[Segment]] = None,
    ) -> List[Segment]:
        """
        Plan ``num_clips`` segments.

        Recommended candidates are used verbatim when there are at least
        ``num_clips`` of them; otherwise placement is arithmetic.

        Raises:
            InsufficientDuration: If the clip is longer than the video
            ValueError: If num_clips or clip_duration is not positive
        """
        if num_clips < 1:
            raise ValueError("num_clips must be at least 1")
        if clip_duration <= 0:
            raise ValueError("clip duration must be positive")
        if clip_duration > video_duration:
            raise InsufficientDuration(clip_duration, video_duration)

        if candidates and len(candidates) >= num_clips:
            logger.info(f"Using {num_clips} recommended segments of {len(candidates)}")
            return list(candidates[:num_clips])

        if candidates:
            logger.info(
                f"Ignoring {len(candidates)} recommended segments (need {num_clips}); "
                "using calculated placement"
            )

        segment_length = video_duration / num_clips
        segments = []
        for i in range(num_clips):
            jitter = 0.0
            if self.jitter and num_clips > 1:
                spread = JITTER_FRACTION * segment_length
                jitter = float(self._rng.uniform(-spread, spread))
            start = calculate_start_time(i, num_clips, video_duration, clip_duration, jitter)
            segments.append(Segment(
                start_time_seconds=start,
                duration_seconds=clip_duration,
                confidence=0.5,
                reason="Single clip, opening third skipped" if num_clips == 1 else "Evenly spaced segment",
            ))
        return segments
