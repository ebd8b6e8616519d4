"""Non-destructive clip editing.

Every edit mints a new clip identity and writes new storage locations; the
source clip is only ever read.
"""
import dataclasses
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from clipforge.errors import (
    CaptionRenderFailure,
    ClipNotFound,
    InvalidDuration,
    MissingParameter,
    ObjectNotFound,
    TranscodeFailure,
)
from clipforge.models import CaptionStyle, ClipResult, ClipSettings, Segment, parse_duration
from clipforge.pipeline.persist import persist_clip
from clipforge.pipeline.transcode import TranscodeEngine
from clipforge.services.addressing import ClipAddressing
from clipforge.services.storage_service import StorageTieringService
from clipforge.utils.ffmpeg import FFmpegError, probe_video

logger = logging.getLogger(__name__)


class EditEngine:
    """Trim, caption toggle and aspect change on existing clips."""

    def __init__(
        self,
        engine: TranscodeEngine,
        storage: StorageTieringService,
        addressing: ClipAddressing,
    ):
        self.engine = engine
        self.storage = storage
        self.addressing = addressing

    async def trim_duration(self, clip: ClipResult, new_duration: Union[float, str, None]) -> ClipResult:
        """
        New clip holding the first ``new_duration`` seconds of ``clip``.

        Raises:
            InvalidDuration: If new_duration is missing, unparsable or <= 0
        """
        if new_duration is None:
            raise InvalidDuration("Valid duration required")
        try:
            seconds = parse_duration(new_duration)
        except ValueError as e:
            raise InvalidDuration(str(e)) from e
        if seconds <= 0:
            raise InvalidDuration("Valid duration required")

        identity = self.addressing.new_identity()
        output_path = self.addressing.local_path(identity)
        async with self._checkout(clip, identity) as source_path:
            base = await self._base_settings(clip, source_path)
            await self.engine.reencode(source_path, output_path, duration=seconds)

        settings = base.model_copy(update={"duration_seconds": min(seconds, base.duration_seconds)})
        return await self._finish(clip, identity, output_path, settings, clip.captions_applied, "trim")

    async def set_captions(
        self,
        clip: ClipResult,
        on: bool,
        style: Optional[CaptionStyle] = None,
    ) -> ClipResult:
        """
        New clip with captions burned in (on) or re-encoded without the
        caption stage (off).
        """
        identity = self.addressing.new_identity()
        output_path = self.addressing.local_path(identity)
        captions_applied = False

        async with self._checkout(clip, identity) as source_path:
            base = await self._base_settings(clip, source_path)
            style = style or base.caption_style
            if on:
                try:
                    await self.engine.burn_captions(source_path, output_path, style)
                    captions_applied = True
                except CaptionRenderFailure as e:
                    logger.warning(f"Caption pass failed for clip {clip.identity}, re-encoding without: {e}")
                    await self.engine.reencode(source_path, output_path)
            else:
                await self.engine.reencode(source_path, output_path)

        settings = base.model_copy(update={"captions_enabled": on, "caption_style": style})
        return await self._finish(clip, identity, output_path, settings, captions_applied, "captions")

    async def set_aspect_ratio(self, clip: ClipResult, aspect_ratio: Union[str, float, None]) -> ClipResult:
        """
        New clip reframed to ``aspect_ratio`` with black padding.

        Raises:
            MissingParameter: If no aspect ratio is given
            ValueError: If the aspect ratio cannot be parsed
        """
        if aspect_ratio is None or (isinstance(aspect_ratio, str) and not aspect_ratio.strip()):
            raise MissingParameter("Aspect ratio required")
        # validate before any transcoding starts
        ClipSettings(aspect_ratio=aspect_ratio)

        identity = self.addressing.new_identity()
        output_path = self.addressing.local_path(identity)
        async with self._checkout(clip, identity) as source_path:
            base = await self._base_settings(clip, source_path)
            await self.engine.reframe(source_path, output_path, aspect_ratio)

        settings = base.model_copy(update={"aspect_ratio": aspect_ratio})
        return await self._finish(clip, identity, output_path, settings, clip.captions_applied, "aspect")

    @asynccontextmanager
    async def _checkout(self, clip: ClipResult, edit_identity: str) -> AsyncIterator[Path]:
        """Yield a readable local path for clip, fetching from remote if needed."""
        local = clip.local_location
        if local is not None and Path(local.path).exists():
            yield Path(local.path)
            return

        if not self.storage.remote_enabled and clip.remote_location is None:
            raise ClipNotFound(f"Clip {clip.identity} not found")
        key = clip.remote_location.path if clip.remote_location else self.addressing.remote_key(clip.identity)

        scratch = self.addressing.scratch_path(edit_identity, "source")
        try:
            await self.storage.download(key, scratch)
        except ObjectNotFound as e:
            raise ClipNotFound(f"Clip {clip.identity} not found") from e
        logger.info(f"Fetched clip {clip.identity} from {self.storage.provider} for editing")
        try:
            yield scratch
        finally:
            scratch.unlink(missing_ok=True)

    async def _base_settings(self, clip: ClipResult, source_path: Path) -> ClipSettings:
        if clip.settings is not None:
            return clip.settings
        try:
            info = await probe_video(source_path, self.engine.profile.ffprobe_path)
        except FFmpegError as e:
            raise TranscodeFailure("Could not probe clip", e.stderr or str(e)) from e
        return ClipSettings(
            duration_seconds=max(info.duration_seconds, 0.001),
            aspect_ratio=f"{info.width}:{info.height}" if info.width and info.height else "16:9",
            captions_enabled=clip.captions_applied,
        )

    async def _finish(
        self,
        clip: ClipResult,
        identity: str,
        output_path: Path,
        settings: ClipSettings,
        captions_applied: bool,
        operation: str,
    ) -> ClipResult:
        locations, error = await persist_clip(self.storage, self.addressing, identity, output_path)
        reason = f"Edited ({operation}) from clip {clip.identity}"
        if clip.segment is not None:
            segment = dataclasses.replace(
                clip.segment, duration_seconds=settings.duration_seconds, reason=reason
            )
        else:
            segment = Segment(0.0, settings.duration_seconds, 1.0, reason)

        logger.info(f"Clip {clip.identity} edited ({operation}) into {identity}")
        return ClipResult(
            identity=identity,
            segment=segment,
            settings=settings,
            locations=locations,
            error=error,
            captions_applied=captions_applied,
            source_identity=clip.identity,
        )
