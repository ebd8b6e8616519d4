"""Tests for the heuristic scorer and settings suggestions."""
import pytest

from clipforge.models import VideoAsset
from clipforge.pipeline.scorer import REASONS, HeuristicScorer, suggest_settings


def _video(duration=120.0, width=1920, height=1080):
    return VideoAsset(source_path="in.mp4", duration_seconds=duration, width=width,
                      height=height, frame_rate=30.0)


@pytest.mark.asyncio
async def test_recommendations_stay_inside_video():
    segments = await HeuristicScorer(seed=3).recommend(_video(), 15.0, 4)

    assert len(segments) == 4
    starts = [s.start_time_seconds for s in segments]
    assert starts == sorted(starts)
    for seg in segments:
        assert 0.0 <= seg.start_time_seconds <= 105.0
        assert seg.start_time_seconds == int(seg.start_time_seconds)
        assert 0.7 <= seg.confidence <= 1.0
        assert seg.reason in REASONS
        assert seg.duration_seconds == 15.0


@pytest.mark.parametrize("width,height,expected", [
    (1920, 1080, "16:9"),
    (1080, 1920, "9:16"),
    (1080, 1080, "1:1"),
    (1440, 1080, "1:1"),
])
def test_suggested_aspect(width, height, expected):
    assert suggest_settings(_video(width=width, height=height)).aspect_ratio == expected


@pytest.mark.parametrize("duration,clips", [
    (30.0, 1),
    (120.0, 3),
    (420.0, 7),
    (3600.0, 8),
])
def test_suggested_clip_count(duration, clips):
    assert suggest_settings(_video(duration=duration)).num_clips == clips


def test_suggested_duration_fits_short_video():
    assert suggest_settings(_video(duration=9.0)).duration_seconds == 9.0
