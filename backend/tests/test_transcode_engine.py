"""Tests for TranscodeEngine command construction and failure handling."""
import pytest

from conftest import FakeFFmpeg
from clipforge.errors import BatchCancelled, TranscodeFailure
from clipforge.models import CaptionStyle, ClipSettings, Segment
from clipforge.pipeline import transcode


def _arg(cmd, flag):
    return cmd[cmd.index(flag) + 1]


@pytest.mark.asyncio
async def test_render_without_captions_is_single_pass(engine, fake_ffmpeg, source_video, tmp_path):
    output = tmp_path / "out" / "clip.mp4"
    settings = ClipSettings(duration_seconds=10, aspect_ratio="9:16", captions_enabled=False)

    rendered = await engine.render(source_video.source_path, Segment(12.5, 10.0), settings, output)

    assert rendered.path == output
    assert rendered.captions_applied is False
    assert output.read_bytes() == b"rendered:source.mp4"
    assert len(fake_ffmpeg.calls) == 1
    cmd = fake_ffmpeg.calls[0]
    assert _arg(cmd, "-ss") == "12.500"
    assert _arg(cmd, "-t") == "10.000"
    assert _arg(cmd, "-vf").startswith("scale=1080:1920")
    assert cmd[-1] == str(output)


@pytest.mark.asyncio
async def test_render_with_captions_runs_two_passes(engine, fake_ffmpeg, source_video, tmp_path):
    output = tmp_path / "clip.mp4"
    settings = ClipSettings(caption_style=CaptionStyle(text="Hello there"))

    rendered = await engine.render(source_video.source_path, Segment(0.0, 15.0), settings, output)

    assert rendered.captions_applied is True
    assert len(fake_ffmpeg.calls) == 2
    assert FakeFFmpeg.is_caption_pass(fake_ffmpeg.calls[1])
    assert output.exists()
    assert sorted(p.name for p in tmp_path.iterdir()) == ["clip.mp4", "source.mp4"]


@pytest.mark.asyncio
async def test_caption_failure_delivers_uncaptioned_clip(engine, fake_ffmpeg, source_video, tmp_path):
    fake_ffmpeg.fail_captions = True
    output = tmp_path / "clip.mp4"

    rendered = await engine.render(source_video.source_path, Segment(0.0, 15.0), ClipSettings(), output)

    assert rendered.captions_applied is False
    assert output.read_bytes() == b"rendered:source.mp4"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["clip.mp4", "source.mp4"]


@pytest.mark.asyncio
async def test_primary_failure_raises_with_diagnostic(engine, fake_ffmpeg, source_video, tmp_path):
    fake_ffmpeg.fail_primary_at = 30.0
    output = tmp_path / "clip.mp4"

    with pytest.raises(TranscodeFailure) as exc_info:
        await engine.render(source_video.source_path, Segment(30.0, 15.0), ClipSettings(), output)

    assert "Invalid data" in exc_info.value.diagnostic
    assert not output.exists()
    assert len(fake_ffmpeg.calls) == 1


@pytest.mark.asyncio
async def test_reencode_with_duration(engine, fake_ffmpeg, tmp_path):
    source = tmp_path / "in.mp4"
    source.write_bytes(b"x")

    await engine.reencode(source, tmp_path / "out.mp4", duration=4.0)

    cmd = fake_ffmpeg.calls[0]
    assert _arg(cmd, "-t") == "4.000"
    assert "-ss" not in cmd
    assert "-vf" not in cmd


@pytest.mark.asyncio
async def test_reframe_uses_padding_filter(engine, fake_ffmpeg, tmp_path):
    source = tmp_path / "in.mp4"
    source.write_bytes(b"x")

    await engine.reframe(source, tmp_path / "out.mp4", "1:1")

    assert _arg(fake_ffmpeg.calls[0], "-vf").startswith("scale=1080:1080")


class _InterruptedFFmpeg:
    """Writes partial output, then fails as if ffmpeg had been killed."""

    def __init__(self, on_caption_pass=False):
        self.on_caption_pass = on_caption_pass
        self.calls = []

    async def __call__(self, cmd, cancel_token=None):
        self.calls.append(list(cmd))
        with open(cmd[-1], "wb") as f:
            f.write(b"partial")
        if FakeFFmpeg.is_caption_pass(cmd) == self.on_caption_pass:
            raise BatchCancelled("stopped")


@pytest.mark.asyncio
@pytest.mark.parametrize("captions_enabled", [True, False])
async def test_cancelled_primary_pass_leaves_no_files(captions_enabled, engine, source_video, tmp_path, monkeypatch):
    monkeypatch.setattr(transcode, "run_ffmpeg", _InterruptedFFmpeg())
    settings = ClipSettings(captions_enabled=captions_enabled)

    with pytest.raises(BatchCancelled):
        await engine.render(source_video.source_path, Segment(0.0, 15.0), settings, tmp_path / "clip.mp4")

    assert [p.name for p in tmp_path.iterdir()] == ["source.mp4"]


@pytest.mark.asyncio
async def test_cancelled_caption_pass_leaves_no_files(engine, source_video, tmp_path, monkeypatch):
    interrupted = _InterruptedFFmpeg(on_caption_pass=True)
    monkeypatch.setattr(transcode, "run_ffmpeg", interrupted)

    with pytest.raises(BatchCancelled):
        await engine.render(source_video.source_path, Segment(0.0, 15.0), ClipSettings(), tmp_path / "clip.mp4")

    assert len(interrupted.calls) == 2
    assert [p.name for p in tmp_path.iterdir()] == ["source.mp4"]


@pytest.mark.asyncio
async def test_cancelled_reencode_leaves_no_output(engine, tmp_path, monkeypatch):
    monkeypatch.setattr(transcode, "run_ffmpeg", _InterruptedFFmpeg())
    source = tmp_path / "in.mp4"
    source.write_bytes(b"x")

    with pytest.raises(BatchCancelled):
        await engine.reencode(source, tmp_path / "out.mp4", duration=3.0)

    assert not (tmp_path / "out.mp4").exists()
