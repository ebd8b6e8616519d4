"""Validated clip generation settings."""
import math
import re
from pathlib import Path
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)([smh]?)$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600}


def parse_duration(value: Union[int, float, str]) -> float:
    """
    Parse a duration given as seconds or as a string like "15s", "2m", "1h".

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValueError(f"Invalid duration: {value!r}")
        return float(value)
    match = _DURATION_RE.match(str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    number, unit = match.groups()
    return float(number) * _DURATION_UNITS[unit]


def aspect_ratio_value(aspect_ratio: Union[str, float]) -> float:
    """Width/height ratio for a "W:H" string or a plain number."""
    if isinstance(aspect_ratio, (int, float)):
        return float(aspect_ratio)
    width, height = str(aspect_ratio).split(":")
    return float(width) / float(height)


class CaptionStyle(BaseModel):
    """Caption appearance and source."""
    font_size: int = Field(24, gt=0, le=200)
    font_color: str = "white"
    font_family: str = "Arial"
    position: Literal["top", "center", "bottom"] = "bottom"
    subtitles_file: Optional[Path] = Field(None, description="SRT/ASS track to burn in")
    text: Optional[str] = Field(None, description="Placeholder text when no track is given")


class ClipSettings(BaseModel):
    """Per-clip settings, validated before any job starts."""
    duration_seconds: float = Field(15.0, allow_inf_nan=False, description="Clip length; accepts 15, \"15s\", \"1m\"")
    aspect_ratio: Union[str, float] = Field("16:9", description="Preset, \"W:H\" or width/height number")
    captions_enabled: bool = True
    caption_style: CaptionStyle = Field(default_factory=CaptionStyle)

    @field_validator("duration_seconds", mode="before")
    @classmethod
    def _parse_duration(cls, value):
        return parse_duration(value)

    @field_validator("duration_seconds")
    @classmethod
    def _positive_duration(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("duration must be positive")
        return value

    @field_validator("aspect_ratio", mode="before")
    @classmethod
    def _check_aspect_ratio(cls, value):
        if isinstance(value, bool):
            raise ValueError(f"Invalid aspect ratio: {value!r}")
        if isinstance(value, (int, float)):
            if not math.isfinite(value) or value <= 0:
                raise ValueError("aspect ratio must be a positive finite number")
            return float(value)
        text = str(value).strip()
        try:
            ratio = aspect_ratio_value(text)
        except (ValueError, ZeroDivisionError):
            raise ValueError(f"Invalid aspect ratio: {value!r}")
        if not math.isfinite(ratio) or ratio <= 0:
            raise ValueError("aspect ratio must be a positive finite number")
        return text


class GenerationSettings(ClipSettings):
    """Batch request: one settings block repeated num_clips times."""
    num_clips: int = Field(1, ge=1, le=50)

    def expand(self) -> List[ClipSettings]:
        """One ClipSettings entry per requested slot."""
        base = ClipSettings(
            duration_seconds=self.duration_seconds,
            aspect_ratio=self.aspect_ratio,
            captions_enabled=self.captions_enabled,
            caption_style=self.caption_style,
        )
        return [base.model_copy() for _ in range(self.num_clips)]
