"""Application configuration."""
import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageProvider(str, enum.Enum):
    """Backend used for the remote tier."""
    LOCAL = "local"
    AWS_S3 = "aws-s3"


class StorageConfig(BaseModel):
    """Explicit storage tier configuration handed to the storage service."""

    model_config = ConfigDict(frozen=True)

    remote_tier_enabled: bool = False
    provider: StorageProvider = StorageProvider.LOCAL
    bucket: Optional[str] = None
    region: str = "us-east-1"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    cdn_base_url: Optional[str] = None
    object_acl: Optional[str] = "public-read"
    local_root: Path = Path("./data/uploads")

    @model_validator(mode="after")
    def _check_bucket(self) -> "StorageConfig":
        if self.remote_enabled and not self.bucket:
            raise ValueError("aws-s3 remote tier requires a bucket name")
        return self

    @property
    def remote_enabled(self) -> bool:
        return self.remote_tier_enabled and self.provider != StorageProvider.LOCAL


@dataclass(frozen=True)
class TranscodeProfile:
    """Fixed delivery profile applied to every rendered clip."""
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    video_codec: str = "libx264"
    preset: str = "fast"
    crf: int = 23
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"
    caption_font_file: Optional[str] = None


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False

    # Local tier root
    storage_root: Path = Path("./data/uploads")  # clips/ and videos/ live here

    # FFmpeg settings
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # Export settings
    export_video_codec: str = "libx264"
    export_video_preset: str = "fast"
    export_video_crf: int = 23
    export_audio_codec: str = "aac"
    export_audio_bitrate: str = "128k"
    caption_font_file: Optional[str] = None

    # Batch generation
    max_concurrent_jobs: int = 4

    # Storage tiering
    use_cloud_storage: bool = False
    cloud_storage_provider: Literal["local", "aws-s3"] = "local"
    aws_region: str = "us-east-1"
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_s3_bucket_name: Optional[str] = None
    aws_cloudfront_url: Optional[str] = None
    aws_s3_object_acl: Optional[str] = "public-read"
    share_link_ttl_seconds: int = 3600

    def storage_config(self) -> StorageConfig:
        """Build the storage tier configuration from environment settings."""
        return StorageConfig(
            remote_tier_enabled=self.use_cloud_storage,
            provider=StorageProvider(self.cloud_storage_provider),
            bucket=self.aws_s3_bucket_name,
            region=self.aws_region,
            access_key_id=self.aws_access_key_id,
            secret_access_key=self.aws_secret_access_key,
            cdn_base_url=self.aws_cloudfront_url,
            object_acl=self.aws_s3_object_acl,
            local_root=self.storage_root,
        )

    def transcode_profile(self) -> TranscodeProfile:
        """Build the delivery codec profile."""
        return TranscodeProfile(
            ffmpeg_path=self.ffmpeg_path,
            ffprobe_path=self.ffprobe_path,
            video_codec=self.export_video_codec,
            preset=self.export_video_preset,
            crf=self.export_video_crf,
            audio_codec=self.export_audio_codec,
            audio_bitrate=self.export_audio_bitrate,
            caption_font_file=self.caption_font_file,
        )


settings = Settings()
