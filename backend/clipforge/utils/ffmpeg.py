"""FFmpeg and ffprobe utilities."""
import asyncio
import json
import logging
import shutil
from pathlib import Path
from typing import List, Optional, Sequence

from clipforge.config import TranscodeProfile
from clipforge.errors import BatchCancelled
from clipforge.models import CaptionStyle, VideoAsset
from clipforge.utils.cancellation import CancelToken

logger = logging.getLogger(__name__)

# ASS colours are &HAABBGGRR
_ASS_COLOURS = {
    "white": "&H00FFFFFF&",
    "black": "&H00000000&",
    "yellow": "&H0000FFFF&",
    "red": "&H000000FF&",
}


class FFmpegError(Exception):
    """FFmpeg related error."""

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        super().__init__(message)


def check_ffmpeg_available(ffmpeg_path: str = "ffmpeg") -> bool:
    """Check if ffmpeg is available."""
    return shutil.which(ffmpeg_path) is not None


def check_ffprobe_available(ffprobe_path: str = "ffprobe") -> bool:
    """Check if ffprobe is available."""
    return shutil.which(ffprobe_path) is not None


def _parse_frame_rate(value: str) -> float:
    if "/" in value:
        num, den = value.split("/")
        return float(num) / float(den) if float(den) > 0 else 30.0
    return float(value)


async def probe_video(video_path: str | Path, ffprobe_path: str = "ffprobe") -> VideoAsset:
    """
    Get video metadata using ffprobe.

    Args:
        video_path: Path to video file
        ffprobe_path: ffprobe executable

    Returns:
        VideoAsset with the probed metadata

    Raises:
        FFmpegError: If ffprobe fails or the file has no video stream
    """
    video_path = Path(video_path)
    if not video_path.exists():
        raise FFmpegError(f"Video file not found: {video_path}")

    cmd = [
        ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(video_path)
    ]

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
        stdout, stderr = await proc.communicate()

        if proc.returncode != 0:
            raise FFmpegError("ffprobe failed", stderr.decode(errors="ignore"))

        data = json.loads(stdout.decode())

        video_stream = None
        audio_stream = None
        for stream in data.get("streams", []):
            if stream.get("codec_type") == "video" and video_stream is None:
                video_stream = stream
            elif stream.get("codec_type") == "audio" and audio_stream is None:
                audio_stream = stream

        if not video_stream:
            raise FFmpegError("No video stream found")

        duration = float(data.get("format", {}).get("duration", 0) or 0)
        if duration == 0:
            duration = float(video_stream.get("duration", 0) or 0)

        return VideoAsset(
            source_path=video_path,
            duration_seconds=duration,
            width=int(video_stream.get("width", 0)),
            height=int(video_stream.get("height", 0)),
            frame_rate=_parse_frame_rate(video_stream.get("r_frame_rate", "30/1")),
            audio_present=audio_stream is not None,
            video_codec=video_stream.get("codec_name"),
        )
    except json.JSONDecodeError as e:
        raise FFmpegError(f"Failed to parse ffprobe output: {e}")
    except (OSError, ValueError) as e:
        raise FFmpegError(f"ffprobe error: {e}")


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        proc.kill()
        await proc.wait()


async def run_ffmpeg(cmd: Sequence[str], cancel_token: Optional[CancelToken] = None) -> None:
    """
    Run one ffmpeg process to completion.

    The process is killed if the token fires or the awaiting task is
    cancelled.

    Raises:
        FFmpegError: On a non-zero exit, with ffmpeg's stderr attached
        BatchCancelled: If the cancellation token fired
    """
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()

    logger.debug("FFmpeg command: %s", " ".join(cmd))
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE
        )
    except OSError as e:
        raise FFmpegError(f"Unable to start ffmpeg: {e}")

    communicate = asyncio.ensure_future(proc.communicate())
    cancel_wait = asyncio.ensure_future(cancel_token.wait()) if cancel_token else None
    try:
        waiters = {communicate} if cancel_wait is None else {communicate, cancel_wait}
        done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        if communicate not in done:
            await _kill(proc)
            raise BatchCancelled(cancel_token.reason)
        _, stderr = communicate.result()
    except asyncio.CancelledError:
        await _kill(proc)
        raise
    finally:
        if cancel_wait is not None:
            cancel_wait.cancel()
        if not communicate.done():
            communicate.cancel()

    if proc.returncode != 0:
        text = stderr.decode("utf-8", errors="ignore").strip()
        raise FFmpegError(f"ffmpeg exited with code {proc.returncode}", text)


def encode_args(profile: TranscodeProfile) -> List[str]:
    """Uniform delivery profile: constant quality, fast preset, faststart."""
    return [
        "-c:v", profile.video_codec,
        "-preset", profile.preset,
        "-crf", str(profile.crf),
        "-c:a", profile.audio_codec,
        "-b:a", profile.audio_bitrate,
        "-movflags", "+faststart",
    ]


def build_reframe_filter(width: int, height: int) -> str:
    """Scale to fit inside width x height and letterbox with black bars."""
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:color=black,"
        f"setsar=1"
    )


def escape_filter_path(path: str | Path) -> str:
    """Quote a path for use as a filter option value."""
    return "'" + str(path).replace("\\", "/").replace(":", "\\:") + "'"


def _caption_y(position: str) -> str:
    if position == "top":
        return "h/20"
    if position == "center":
        return "(h-text_h)/2"
    return "h-text_h-h/20"


def build_caption_filter(
    style: CaptionStyle,
    text_file: Optional[Path] = None,
    font_file: Optional[str] = None,
) -> str:
    """
    Caption burn-in filter.

    Uses the subtitles filter when the style carries an existing subtitle
    track, otherwise draws the text stored in text_file.
    """
    if style.subtitles_file and Path(style.subtitles_file).exists():
        colour = _ASS_COLOURS.get(style.font_color.lower(), _ASS_COLOURS["white"])
        return (
            f"subtitles={escape_filter_path(style.subtitles_file)}"
            f":force_style='Fontname={style.font_family},"
            f"Fontsize={style.font_size},PrimaryColour={colour}'"
        )

    if text_file is None:
        raise ValueError("text_file is required when no subtitle track is given")

    parts = [f"drawtext=textfile={escape_filter_path(text_file)}", "expansion=none"]
    if font_file:
        parts.append(f"fontfile={escape_filter_path(font_file)}")
    parts.extend([
        f"fontsize={style.font_size}",
        f"fontcolor={style.font_color}",
        "box=1",
        "boxcolor=black@0.4",
        "boxborderw=8",
        "x=(w-text_w)/2",
        f"y={_caption_y(style.position)}",
    ])
    return ":".join(parts)
