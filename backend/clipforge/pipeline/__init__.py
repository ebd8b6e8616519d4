"""Clip generation pipeline: planning, transcoding, editing, batching."""
from clipforge.pipeline.batch import BatchOrchestrator
from clipforge.pipeline.editor import EditEngine
from clipforge.pipeline.scorer import HeuristicScorer, SegmentScorer, suggest_settings
from clipforge.pipeline.segments import SegmentPlanner, calculate_start_time
from clipforge.pipeline.transcode import RenderedClip, TranscodeEngine, resolve_dimensions

__all__ = [
    "BatchOrchestrator",
    "EditEngine",
    "HeuristicScorer",
    "SegmentScorer",
    "suggest_settings",
    "SegmentPlanner",
    "calculate_start_time",
    "RenderedClip",
    "TranscodeEngine",
    "resolve_dimensions",
]
