"""Transcoding - one output clip from one source segment."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from clipforge.config import TranscodeProfile
from clipforge.errors import CaptionRenderFailure, TranscodeFailure
from clipforge.models import CaptionStyle, ClipSettings, Segment, aspect_ratio_value
from clipforge.utils.cancellation import CancelToken
from clipforge.utils.ffmpeg import (
    FFmpegError,
    build_caption_filter,
    build_reframe_filter,
    encode_args,
    run_ffmpeg,
)

logger = logging.getLogger(__name__)

PRESET_DIMENSIONS = {
    "16:9": (1920, 1080),
    "9:16": (1080, 1920),
    "1:1": (1080, 1080),
}
BASE_WIDTH = 1920
PRESET_TOLERANCE = 0.1
PLACEHOLDER_CAPTION = "Auto-generated captions"


def _round_even(value: float) -> int:
    """Round to the nearest even integer (x264 needs even dimensions)."""
    return max(2, int(round(value / 2.0)) * 2)


def resolve_dimensions(aspect_ratio: Union[str, float]) -> Tuple[int, int]:
    """
    Concrete output size for an aspect ratio.

    Presets map directly; ratios within PRESET_TOLERANCE of a preset snap to
    it; anything else keeps a 1920px width and derives the height.
    """
    if isinstance(aspect_ratio, str) and aspect_ratio in PRESET_DIMENSIONS:
        return PRESET_DIMENSIONS[aspect_ratio]

    ratio = aspect_ratio_value(aspect_ratio)
    for preset, dimensions in PRESET_DIMENSIONS.items():
        if abs(ratio - aspect_ratio_value(preset)) < PRESET_TOLERANCE:
            return dimensions

    return BASE_WIDTH, _round_even(BASE_WIDTH / ratio)


@dataclass
class RenderedClip:
    """A clip file written by the engine."""
    path: Path
    captions_applied: bool


class TranscodeEngine:
    """Drives ffmpeg with the fixed delivery profile."""

    def __init__(self, profile: TranscodeProfile):
        self.profile = profile

    def _base_cmd(self, *args: str) -> list:
        return [self.profile.ffmpeg_path, "-y", "-hide_banner", "-loglevel", "error", *args]

    async def render(
        self,
        source_path: str | Path,
        segment: Segment,
        settings: ClipSettings,
        output_path: str | Path,
        cancel_token: Optional[CancelToken] = None,
    ) -> RenderedClip:
        """
        Cut, reframe and encode one segment, then optionally burn captions.

        Caption failure is absorbed: the uncaptioned clip is delivered and
        ``captions_applied`` is False.

        Raises:
            TranscodeFailure: If the primary crop/scale pass fails
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        width, height = resolve_dimensions(settings.aspect_ratio)

        primary_path = (
            output_path.with_suffix(".uncaptioned.mp4") if settings.captions_enabled else output_path
        )
        cmd = self._base_cmd(
            "-ss", f"{segment.start_time_seconds:.3f}",
            "-i", str(source_path),
            "-t", f"{segment.duration_seconds:.3f}",
            "-vf", build_reframe_filter(width, height),
            *encode_args(self.profile),
            str(primary_path),
        )

        logger.info(
            f"Rendering {output_path.name}: {segment.start_time_seconds:.2f}s "
            f"+{segment.duration_seconds:.2f}s at {width}x{height}"
        )
        try:
            await run_ffmpeg(cmd, cancel_token)
        except FFmpegError as e:
            primary_path.unlink(missing_ok=True)
            raise TranscodeFailure("Clip generation failed", e.stderr or str(e)) from e
        except BaseException:
            primary_path.unlink(missing_ok=True)
            raise

        if not settings.captions_enabled:
            return RenderedClip(path=output_path, captions_applied=False)

        try:
            await self.burn_captions(primary_path, output_path, settings.caption_style, cancel_token)
            return RenderedClip(path=output_path, captions_applied=True)
        except CaptionRenderFailure as e:
            logger.warning(f"Failed to add captions to {output_path.name}, delivering without: {e}")
            os.replace(primary_path, output_path)
            return RenderedClip(path=output_path, captions_applied=False)
        except BaseException:
            output_path.unlink(missing_ok=True)
            raise
        finally:
            primary_path.unlink(missing_ok=True)

    async def burn_captions(
        self,
        input_path: str | Path,
        output_path: str | Path,
        style: CaptionStyle,
        cancel_token: Optional[CancelToken] = None,
    ) -> Path:
        """
        Overlay captions onto an already framed clip.

        Raises:
            CaptionRenderFailure: If the caption pass fails
        """
        output_path = Path(output_path)
        text_file = None
        if not (style.subtitles_file and Path(style.subtitles_file).exists()):
            text_file = output_path.with_suffix(".captions.txt")
            text_file.write_text(style.text or PLACEHOLDER_CAPTION, encoding="utf-8")

        try:
            caption_filter = build_caption_filter(style, text_file, self.profile.caption_font_file)
            cmd = self._base_cmd(
                "-i", str(input_path),
                "-vf", caption_filter,
                *encode_args(self.profile),
                str(output_path),
            )
            await run_ffmpeg(cmd, cancel_token)
        except FFmpegError as e:
            output_path.unlink(missing_ok=True)
            raise CaptionRenderFailure(e.stderr or str(e)) from e
        except BaseException:
            output_path.unlink(missing_ok=True)
            raise
        finally:
            if text_file is not None:
                text_file.unlink(missing_ok=True)
        return output_path

    async def reencode(
        self,
        input_path: str | Path,
        output_path: str | Path,
        duration: Optional[float] = None,
        video_filter: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Path:
        """
        Re-encode an existing clip with the delivery profile.

        Raises:
            TranscodeFailure: On ffmpeg failure
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        args = ["-i", str(input_path)]
        if duration is not None:
            args += ["-t", f"{duration:.3f}"]
        if video_filter:
            args += ["-vf", video_filter]
        cmd = self._base_cmd(*args, *encode_args(self.profile), str(output_path))

        try:
            await run_ffmpeg(cmd, cancel_token)
        except FFmpegError as e:
            output_path.unlink(missing_ok=True)
            raise TranscodeFailure("Re-encode failed", e.stderr or str(e)) from e
        except BaseException:
            output_path.unlink(missing_ok=True)
            raise
        return output_path

    async def reframe(
        self,
        input_path: str | Path,
        output_path: str | Path,
        aspect_ratio: Union[str, float],
        cancel_token: Optional[CancelToken] = None,
    ) -> Path:
        """Re-encode an existing clip at a new aspect ratio (black padding)."""
        width, height = resolve_dimensions(aspect_ratio)
        return await self.reencode(
            input_path,
            output_path,
            video_filter=build_reframe_filter(width, height),
            cancel_token=cancel_token,
        )
