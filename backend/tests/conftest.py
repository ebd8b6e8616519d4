"""Shared fakes and fixtures."""
from datetime import datetime, timezone
from pathlib import Path

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from clipforge.config import StorageConfig, StorageProvider, TranscodeProfile
from clipforge.models import VideoAsset
from clipforge.pipeline import transcode
from clipforge.pipeline.transcode import TranscodeEngine
from clipforge.services.addressing import ClipAddressing
from clipforge.services.storage_service import StorageTieringService
from clipforge.utils.ffmpeg import FFmpegError


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3Client:
    """In-memory stand-in for a boto3 S3 client."""

    def __init__(self, fail_puts: int = 0, unreachable: bool = False, fail_delete: bool = False):
        self.objects = {}
        self.fail_puts = fail_puts
        self.unreachable = unreachable
        self.fail_delete = fail_delete
        self.put_calls = []
        self.deleted = []

    def _check_reachable(self):
        if self.unreachable:
            raise EndpointConnectionError(endpoint_url="https://s3.eu-west-1.amazonaws.com")

    def put_object(self, Bucket, Key, Body, ContentType, Metadata, **extra):
        self._check_reachable()
        self.put_calls.append({"Bucket": Bucket, "Key": Key, "ContentType": ContentType, **extra})
        if self.fail_puts > 0:
            self.fail_puts -= 1
            raise _client_error("InternalError", "PutObject")
        data = Body.read()
        self.objects[Key] = data
        return {"ETag": f'"etag-{len(data)}"'}

    def head_object(self, Bucket, Key):
        self._check_reachable()
        if Key not in self.objects:
            raise _client_error("404", "HeadObject")
        return {
            "ContentLength": len(self.objects[Key]),
            "LastModified": datetime(2026, 1, 1, tzinfo=timezone.utc),
            "ETag": '"abc123"',
            "ContentType": "video/mp4",
        }

    def delete_object(self, Bucket, Key):
        self._check_reachable()
        if self.fail_delete:
            raise _client_error("AccessDenied", "DeleteObject")
        self.objects.pop(Key, None)
        self.deleted.append(Key)
        return {}

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        self._check_reachable()
        return f"https://signed.example.com/{Params['Key']}?X-Amz-Expires={ExpiresIn}"

    def download_file(self, Bucket, Key, Filename):
        self._check_reachable()
        if Key not in self.objects:
            raise _client_error("404", "HeadObject")
        Path(Filename).write_bytes(self.objects[Key])


class FakeFFmpeg:
    """Replaces run_ffmpeg: records commands and writes the output file."""

    def __init__(self, fail_primary_at=None, fail_captions: bool = False):
        self.calls = []
        self.fail_primary_at = fail_primary_at
        self.fail_captions = fail_captions

    @staticmethod
    def _arg(cmd, flag):
        return cmd[cmd.index(flag) + 1] if flag in cmd else None

    @staticmethod
    def is_caption_pass(cmd) -> bool:
        vf = FakeFFmpeg._arg(cmd, "-vf") or ""
        return vf.startswith("drawtext") or vf.startswith("subtitles")

    async def __call__(self, cmd, cancel_token=None):
        cmd = list(cmd)
        self.calls.append(cmd)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        start = self._arg(cmd, "-ss")
        if self.fail_primary_at is not None and start is not None:
            if abs(float(start) - self.fail_primary_at) < 1e-6:
                raise FFmpegError("ffmpeg exited with code 1", "Invalid data found when processing input")

        if self.is_caption_pass(cmd) and self.fail_captions:
            raise FFmpegError("ffmpeg exited with code 1", "Cannot load font")

        output = Path(cmd[-1])
        output.parent.mkdir(parents=True, exist_ok=True)
        source = self._arg(cmd, "-i")
        payload = b"rendered:" + (Path(source).name.encode() if source else b"")
        output.write_bytes(payload)


@pytest.fixture
def local_config(tmp_path) -> StorageConfig:
    return StorageConfig(local_root=tmp_path / "uploads")


@pytest.fixture
def remote_config(tmp_path) -> StorageConfig:
    return StorageConfig(
        remote_tier_enabled=True,
        provider=StorageProvider.AWS_S3,
        bucket="clips-bucket",
        region="eu-west-1",
        local_root=tmp_path / "uploads",
    )


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def local_storage(local_config) -> StorageTieringService:
    return StorageTieringService(local_config)


@pytest.fixture
def remote_storage(remote_config, s3_client) -> StorageTieringService:
    return StorageTieringService(remote_config, client=s3_client)


@pytest.fixture
def addressing(tmp_path) -> ClipAddressing:
    addressing = ClipAddressing(tmp_path / "uploads")
    addressing.ensure_dirs()
    return addressing


@pytest.fixture
def fake_ffmpeg(monkeypatch) -> FakeFFmpeg:
    fake = FakeFFmpeg()
    monkeypatch.setattr(transcode, "run_ffmpeg", fake)
    return fake


@pytest.fixture
def engine() -> TranscodeEngine:
    return TranscodeEngine(TranscodeProfile())


@pytest.fixture
def source_video(tmp_path) -> VideoAsset:
    path = tmp_path / "source.mp4"
    path.write_bytes(b"source-video")
    return VideoAsset(
        source_path=path,
        duration_seconds=120.0,
        width=1920,
        height=1080,
        frame_rate=30.0,
    )
