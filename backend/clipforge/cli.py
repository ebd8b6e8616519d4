"""
Command line front end for clip generation and clip management.

Usage:
    clipforge generate <video_path> [--clips N] [--duration 15s] [--aspect 9:16]
    clipforge edit trim <clip_id> --duration 10
    clipforge edit captions <clip_id> --on|--off
    clipforge edit aspect <clip_id> --ratio 1:1
    clipforge info|delete|share <clip_id>
    clipforge cleanup [--hours 24]
"""
import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from clipforge.config import Settings, settings as default_settings
from clipforge.errors import ClipForgeError
from clipforge.models import CaptionStyle, GenerationSettings
from clipforge.pipeline import (
    BatchOrchestrator,
    EditEngine,
    HeuristicScorer,
    SegmentPlanner,
    TranscodeEngine,
    suggest_settings,
)
from clipforge.services import ClipAddressing, ClipService, StorageTieringService, build_storage_service
from clipforge.utils.cancellation import CancelToken
from clipforge.utils.ffmpeg import FFmpegError, check_ffmpeg_available, probe_video

logger = logging.getLogger(__name__)


@dataclass
class Components:
    """Services wired from one Settings instance."""
    settings: Settings
    storage: StorageTieringService
    addressing: ClipAddressing
    engine: TranscodeEngine
    clips: ClipService
    editor: EditEngine


def build_components(settings: Settings) -> Components:
    storage_config = settings.storage_config()
    storage = build_storage_service(storage_config)
    addressing = ClipAddressing(storage_config.local_root)
    addressing.ensure_dirs()
    engine = TranscodeEngine(settings.transcode_profile())
    return Components(
        settings=settings,
        storage=storage,
        addressing=addressing,
        engine=engine,
        clips=ClipService(storage, addressing),
        editor=EditEngine(engine, storage, addressing),
    )


async def generate(components: Components, args: argparse.Namespace) -> dict:
    """Probe the source and run one batch."""
    video_path = Path(args.video_path)
    if not video_path.exists():
        raise FileNotFoundError(f"Video not found: {video_path}")
    if not check_ffmpeg_available(components.settings.ffmpeg_path):
        raise FFmpegError(f"ffmpeg not found: {components.settings.ffmpeg_path}")

    video = await probe_video(video_path, components.settings.ffprobe_path)
    logger.info(f"Source: {video.duration_seconds:.1f}s, {video.width}x{video.height} @ {video.frame_rate:.2f}fps")

    if args.suggest:
        generation = suggest_settings(video)
        logger.info(f"Suggested settings: {generation.model_dump(mode='json')}")
    else:
        generation = GenerationSettings(
            duration_seconds=args.duration,
            aspect_ratio=args.aspect,
            num_clips=args.clips,
            captions_enabled=not args.no_captions,
            caption_style=CaptionStyle(subtitles_file=args.subtitles, text=args.caption_text),
        )

    orchestrator = BatchOrchestrator(
        engine=components.engine,
        storage=components.storage,
        addressing=components.addressing,
        planner=SegmentPlanner(jitter=not args.no_jitter, seed=args.seed),
        scorer=HeuristicScorer(seed=args.seed) if args.recommend else None,
        max_concurrency=components.settings.max_concurrent_jobs,
    )

    token = CancelToken()
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGTERM, token.cancel, "terminated")

    try:
        results = await orchestrator.generate_batch(video, generation.expand(), cancel_token=token)
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGTERM)
    stored = [r.to_dict() for r in results if not r.degraded]
    failed = [r.to_dict() for r in results if r.degraded]
    return {
        "success": True,
        "message": f"Generated {len(stored)} clips successfully"
                   + (f" ({len(failed)} kept local-only)" if failed else ""),
        "clips": stored,
        "failed": failed,
        "cloud_storage": {
            "enabled": components.storage.remote_enabled,
            "provider": components.storage.provider,
        },
    }


async def edit(components: Components, args: argparse.Namespace) -> dict:
    clip = await components.clips.locate(args.clip_id)
    if args.operation == "trim":
        edited = await components.editor.trim_duration(clip, args.duration)
    elif args.operation == "captions":
        edited = await components.editor.set_captions(
            clip, args.on, CaptionStyle(text=args.caption_text) if args.caption_text else None
        )
    else:
        edited = await components.editor.set_aspect_ratio(clip, args.ratio)
    return {"success": True, "edited_clip": edited.to_dict()}


async def info(components: Components, args: argparse.Namespace) -> dict:
    clip = await components.clips.locate(args.clip_id)
    return clip.to_dict()


async def delete(components: Components, args: argparse.Namespace) -> dict:
    report = await components.clips.delete_clip(args.clip_id)
    return report.to_dict()


async def share(components: Components, args: argparse.Namespace) -> dict:
    ttl = args.ttl or components.settings.share_link_ttl_seconds
    link = await components.clips.share(args.clip_id, ttl)
    return link.to_dict()


async def cleanup(components: Components, args: argparse.Namespace) -> dict:
    deleted = components.clips.cleanup_old_clips(args.hours)
    return {"success": True, "deleted_count": deleted}


COMMANDS = {
    "generate": generate,
    "edit": edit,
    "info": info,
    "delete": delete,
    "share": share,
    "cleanup": cleanup,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clipforge",
        description="Generate short clips from a video and manage stored clips",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a batch of clips")
    gen.add_argument("video_path", type=Path, help="Source video")
    gen.add_argument("--clips", "-n", type=int, default=1, help="Number of clips (default: 1)")
    gen.add_argument("--duration", "-d", default="15s", help="Clip length, e.g. 15, 15s, 1m")
    gen.add_argument("--aspect", "-a", default="16:9", help="16:9, 9:16, 1:1 or W:H")
    gen.add_argument("--no-captions", action="store_true", help="Skip caption burn-in")
    gen.add_argument("--subtitles", type=Path, default=None, help="Subtitle track to burn in")
    gen.add_argument("--caption-text", default=None, help="Placeholder caption text")
    gen.add_argument("--recommend", action="store_true", help="Use the heuristic segment scorer")
    gen.add_argument("--suggest", action="store_true", help="Derive settings from the source")
    gen.add_argument("--no-jitter", action="store_true", help="Deterministic even spacing")
    gen.add_argument("--seed", type=int, default=None, help="Random seed for placement")

    ed = sub.add_parser("edit", help="Edit a clip into a new clip")
    ops = ed.add_subparsers(dest="operation", required=True)
    trim = ops.add_parser("trim")
    trim.add_argument("clip_id")
    trim.add_argument("--duration", "-d", required=True)
    cap = ops.add_parser("captions")
    cap.add_argument("clip_id")
    toggle = cap.add_mutually_exclusive_group(required=True)
    toggle.add_argument("--on", dest="on", action="store_true")
    toggle.add_argument("--off", dest="on", action="store_false")
    cap.add_argument("--caption-text", default=None)
    asp = ops.add_parser("aspect")
    asp.add_argument("clip_id")
    asp.add_argument("--ratio", "-r", default=None)

    for name in ("info", "delete"):
        p = sub.add_parser(name)
        p.add_argument("clip_id")

    sh = sub.add_parser("share", help="Create a share link")
    sh.add_argument("clip_id")
    sh.add_argument("--ttl", type=int, default=None, help="Link lifetime in seconds")

    cl = sub.add_parser("cleanup", help="Delete local clips older than N hours")
    cl.add_argument("--hours", type=float, default=24)

    return parser


def main(argv: Optional[list] = None, settings: Optional[Settings] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings or default_settings

    logging.basicConfig(
        level=logging.DEBUG if (args.verbose or settings.debug) else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        components = build_components(settings)
        result = asyncio.run(COMMANDS[args.command](components, args))
    except (ClipForgeError, FFmpegError, FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        print(json.dumps({"success": False, "error": type(e).__name__, "message": str(e)}, indent=2))
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
