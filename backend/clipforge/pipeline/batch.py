"""Batch clip generation.

Runs one render -> upload pipeline per requested clip slot over a bounded
pool of concurrent jobs.

Failure boundary:
- a transcode failure in any slot fails the whole batch and no results are
  returned; sibling jobs are cancelled, their ffmpeg processes killed and
  clips they already stored removed from both tiers
- an upload failure only degrades its own slot, which keeps its local file
  and carries ``error``
"""
import asyncio
import dataclasses
import logging
from typing import List, Optional, Sequence

from clipforge.errors import DeleteFailure, InsufficientDuration
from clipforge.models import ClipResult, ClipSettings, Segment, VideoAsset
from clipforge.pipeline.persist import persist_clip
from clipforge.pipeline.scorer import SegmentScorer
from clipforge.pipeline.segments import SegmentPlanner
from clipforge.pipeline.transcode import TranscodeEngine
from clipforge.services.addressing import ClipAddressing
from clipforge.services.storage_service import StorageTieringService
from clipforge.utils.cancellation import CancelToken

logger = logging.getLogger(__name__)


class BatchOrchestrator:
    """Plans segments once and fans out clip jobs."""

    def __init__(
        self,
        engine: TranscodeEngine,
        storage: StorageTieringService,
        addressing: ClipAddressing,
        planner: Optional[SegmentPlanner] = None,
        scorer: Optional[SegmentScorer] = None,
        max_concurrency: int = 4,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.engine = engine
        self.storage = storage
        self.addressing = addressing
        self.planner = planner or SegmentPlanner()
        self.scorer = scorer
        self.max_concurrency = max_concurrency

    async def generate_batch(
        self,
        video: VideoAsset,
        clip_settings: Sequence[ClipSettings],
        cancel_token: Optional[CancelToken] = None,
    ) -> List[ClipResult]:
        """
        Generate one clip per settings entry.

        Args:
            video: Probed source video
            clip_settings: One entry per requested slot
            cancel_token: Stops unstarted jobs and kills running ffmpeg

        Returns:
            Exactly one ClipResult per slot, sorted by segment start time

        Raises:
            InsufficientDuration: If any slot is longer than the video
            TranscodeFailure: If any slot fails to render
            BatchCancelled: If the token fires before the batch completes
        """
        if not clip_settings:
            raise ValueError("At least one clip must be requested")

        longest = max(s.duration_seconds for s in clip_settings)
        if longest > video.duration_seconds:
            raise InsufficientDuration(longest, video.duration_seconds)

        num_clips = len(clip_settings)
        candidates = await self._recommend(video, longest, num_clips)
        segments = self.planner.plan(video.duration_seconds, longest, num_clips, candidates)

        token = cancel_token or CancelToken()
        semaphore = asyncio.Semaphore(self.max_concurrency)
        logger.info(
            f"Generating {num_clips} clips from {video.source_path} "
            f"({video.duration_seconds:.1f}s, concurrency={self.max_concurrency})"
        )

        tasks = [
            asyncio.create_task(
                self._run_slot(
                    index,
                    video,
                    dataclasses.replace(segment, duration_seconds=settings.duration_seconds),
                    settings,
                    semaphore,
                    token,
                )
            )
            for index, (segment, settings) in enumerate(zip(segments, clip_settings))
        ]

        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await self._discard(
                [t.result() for t in tasks if not t.cancelled() and t.exception() is None]
            )
            raise

        results = sorted(results, key=lambda r: r.segment.start_time_seconds)
        degraded = sum(1 for r in results if r.degraded)
        logger.info(
            f"Batch complete: {len(results) - degraded} stored, {degraded} kept local-only"
        )
        return results

    async def _recommend(
        self,
        video: VideoAsset,
        clip_duration: float,
        num_clips: int,
    ) -> Optional[List[Segment]]:
        if self.scorer is None:
            return None
        try:
            return await self.scorer.recommend(video, clip_duration, num_clips)
        except Exception as e:
            logger.warning(f"Segment recommendation failed, using calculated placement: {e}")
            return None

    async def _discard(self, results: List[ClipResult]) -> None:
        """Remove clips stored by slots of a batch that failed as a whole."""
        for result in results:
            key = self.addressing.remote_key(result.identity)
            for delete in (self.storage.delete_remote, self.storage.delete_local):
                try:
                    await delete(key)
                except DeleteFailure as e:
                    logger.warning(f"Could not discard clip {result.identity} of failed batch: {e}")
        if results:
            logger.info(f"Discarded {len(results)} clips of failed batch")

    async def _run_slot(
        self,
        index: int,
        video: VideoAsset,
        segment: Segment,
        settings: ClipSettings,
        semaphore: asyncio.Semaphore,
        token: CancelToken,
    ) -> ClipResult:
        async with semaphore:
            token.raise_if_cancelled()

            identity = self.addressing.new_identity()
            output_path = self.addressing.local_path(identity)
            logger.debug(f"Slot {index}: clip {identity} at {segment!r}")

            rendered = await self.engine.render(
                video.source_path, segment, settings, output_path, cancel_token=token
            )
            locations, error = await persist_clip(
                self.storage, self.addressing, identity, rendered.path
            )

        return ClipResult(
            identity=identity,
            segment=segment,
            settings=settings,
            locations=locations,
            error=error,
            captions_applied=rendered.captions_applied,
        )
