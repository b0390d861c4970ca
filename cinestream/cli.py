"""Console entry point for the tracking engine."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import cv2
from loguru import logger
from tqdm import tqdm

from .config import AppConfig, load_config
from .engine import TrackingEngine
from .io import VideoFileSource, video_stream_info
from .render import CropRenderer
from .state import TrackingMode
from .utils import TrackRow, crop_size_for_source, format_time, initial_position, load_report, write_track_csv


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(sys.stderr, level=level)


def _load_config(path: Path) -> AppConfig:
    if not path.exists():
        logger.info("Using default configuration; no {} found", path)
    return load_config(path)


def _resolve_video_path(config: AppConfig, override: Optional[str]) -> Path:
    video = Path(override) if override else Path(config.paths.video)
    if not video.exists():
        logger.error("Input video {} does not exist", video)
        raise SystemExit(2)
    return video


def _open_writer(path: Path, fps: float, size: tuple[int, int]) -> cv2.VideoWriter:
    path.parent.mkdir(parents=True, exist_ok=True)
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"mp4v"), fps, size)
    if not writer.isOpened():
        raise RuntimeError(f"Could not open {path} for writing")
    return writer


def cmd_track(config: AppConfig, args: argparse.Namespace) -> None:
    if args.mode:
        config.mode = TrackingMode.parse(args.mode)
    video_path = _resolve_video_path(config, args.video)
    config.paths.video = video_path
    out_csv = Path(args.csv or (config.output_dir / "track.csv"))

    engine = TrackingEngine(config)
    rows: List[TrackRow] = []
    renderer = CropRenderer((config.crop.output_width, config.crop.output_height)) if args.render else None
    writer = None
    with VideoFileSource(video_path) as source:
        engine.start(source.width, source.height)
        if renderer is not None:
            writer = _open_writer(Path(args.render), source.fps, renderer.output_size)
        total = args.max_frames or source.frame_count or None
        try:
            with tqdm(total=total, desc="track", unit="frame", leave=False) as bar:
                for frame, result in engine.run(source, source.fps, max_frames=args.max_frames):
                    rows.append(result.to_row())
                    if writer is not None and frame is not None:
                        writer.write(renderer.render(frame, engine.crop_rect))
                    bar.update(1)
        finally:
            if writer is not None:
                writer.release()
            state = engine.stop()

    write_track_csv(out_csv, rows)
    summary = engine.summary(state) if state is not None else {}
    duration_s = rows[-1].time_ms / 1000.0 if rows else 0.0
    logger.info("Tracked {} frames ({}) -> {}", len(rows), format_time(duration_s), out_csv)
    report = load_report(config.output_dir)
    report.update(
        "track",
        {
            **summary,
            "mode": config.mode.value,
            "duration": format_time(duration_s),
            "output": out_csv.as_posix(),
            "render": args.render or "",
        },
    )


def cmd_info(config: AppConfig, args: argparse.Namespace) -> None:
    video_path = _resolve_video_path(config, args.video)
    info = video_stream_info(video_path)
    crop = crop_size_for_source(info.width, info.height, config.crop.aspect)
    start = initial_position(info.width, crop)
    print(f"source:   {info.width}x{info.height} @ {info.fps:.2f} fps, {format_time(info.duration)}")
    print(f"crop:     {crop.width}x{crop.height} -> {config.crop.output_width}x{config.crop.output_height}")
    print(f"initial:  ({start.x:.1f}, {start.y:.1f})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cinestream", description="Cursor-following portrait crop tracker")
    parser.add_argument("--config", default="config.yaml", help="Path to YAML configuration file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    track_p = sub.add_parser("track", help="Track activity in a recorded capture")
    track_p.add_argument("--video")
    track_p.add_argument("--csv", help="Per-frame crop telemetry output")
    track_p.add_argument("--mode", choices=["auto", "smooth", "manual"])
    track_p.add_argument("--render", help="Optional portrait preview video")
    track_p.add_argument("--max-frames", dest="max_frames", type=int)
    track_p.set_defaults(func=cmd_track)

    info_p = sub.add_parser("info", help="Show source geometry and derived crop")
    info_p.add_argument("--video")
    info_p.set_defaults(func=cmd_info)

    return parser


def main(argv: List[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    config = _load_config(Path(args.config))
    config.paths.output_dir.mkdir(parents=True, exist_ok=True)
    args.func(config, args)


if __name__ == "__main__":
    main()
