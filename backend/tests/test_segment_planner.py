"""Tests for segment planning."""
import pytest

from clipforge.errors import InsufficientDuration
from clipforge.models import Segment
from clipforge.pipeline.segments import SegmentPlanner, calculate_start_time


class TestCalculateStartTime:
    """Tests for arithmetic start placement."""

    @pytest.mark.parametrize("video_duration,clip_duration", [
        (120.0, 15.0),
        (20.0, 15.0),
        (15.0, 15.0),
        (600.0, 60.0),
    ])
    def test_single_clip_starts_at_first_third(self, video_duration, clip_duration):
        start = calculate_start_time(0, 1, video_duration, clip_duration)
        assert start == min(0.30 * video_duration, video_duration - clip_duration)
        assert start >= 0

    def test_single_clip_clamped_by_clip_length(self):
        # 0.3 * 20 = 6 but the clip must end by 20s
        assert calculate_start_time(0, 1, 20.0, 18.0) == 2.0

    def test_multiple_clips_evenly_spaced(self):
        starts = [calculate_start_time(i, 4, 100.0, 10.0) for i in range(4)]
        assert starts == [0.0, 25.0, 50.0, 75.0]

    def test_jitter_is_clamped(self):
        assert calculate_start_time(0, 3, 120.0, 15.0, jitter=-4.0) == 0.0
        assert calculate_start_time(2, 3, 120.0, 15.0, jitter=40.0) == 105.0


class TestSegmentPlanner:
    """Tests for SegmentPlanner.plan."""

    def test_three_clips_without_jitter(self):
        planner = SegmentPlanner(jitter=False)
        segments = planner.plan(120.0, 15.0, 3)
        assert [s.start_time_seconds for s in segments] == [0.0, 40.0, 80.0]
        assert all(s.duration_seconds == 15.0 for s in segments)
        assert all(s.start_time_seconds <= 105.0 for s in segments)
        assert all(s.end_time_seconds <= 120.0 for s in segments)

    def test_deterministic_starts_clamped_to_max_start(self):
        planner = SegmentPlanner(jitter=False)
        segments = planner.plan(30.0, 20.0, 3)
        # base starts 0, 10, 20 -> last clamped to 30 - 20
        assert [s.start_time_seconds for s in segments] == [0.0, 10.0, 10.0]

    def test_single_clip(self):
        segments = SegmentPlanner(jitter=True, seed=1).plan(120.0, 15.0, 1)
        assert len(segments) == 1
        assert segments[0].start_time_seconds == pytest.approx(36.0)

    def test_jitter_stays_within_ten_percent(self):
        planner = SegmentPlanner(jitter=True, seed=42)
        for _ in range(20):
            segments = planner.plan(100.0, 5.0, 4)
            for i, seg in enumerate(segments):
                base = i * 25.0
                assert 0.0 <= seg.start_time_seconds <= 95.0
                assert abs(seg.start_time_seconds - max(0.0, base)) <= 2.5 + 1e-9

    def test_seeded_planner_is_reproducible(self):
        first = SegmentPlanner(seed=7).plan(300.0, 20.0, 5)
        second = SegmentPlanner(seed=7).plan(300.0, 20.0, 5)
        assert first == second

    def test_clip_longer_than_video_fails(self):
        with pytest.raises(InsufficientDuration):
            SegmentPlanner().plan(10.0, 15.0, 2)

    def test_invalid_clip_count(self):
        with pytest.raises(ValueError):
            SegmentPlanner().plan(100.0, 10.0, 0)

    def test_candidates_used_verbatim(self):
        candidates = [
            Segment(12.0, 15.0, 0.9, "Face detected"),
            Segment(70.0, 15.0, 0.8, "Audio peak identified"),
        ]
        segments = SegmentPlanner(jitter=False).plan(120.0, 15.0, 2, candidates)
        assert segments == candidates

    def test_too_few_candidates_ignored(self):
        candidates = [Segment(12.0, 15.0, 0.9, "Face detected")]
        segments = SegmentPlanner(jitter=False).plan(120.0, 15.0, 3, candidates)
        assert [s.start_time_seconds for s in segments] == [0.0, 40.0, 80.0]
        assert all(s.reason == "Evenly spaced segment" for s in segments)
