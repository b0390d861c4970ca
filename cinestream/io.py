"""Frame sources and ffprobe helpers."""
from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import cv2
import numpy as np
from loguru import logger


class FrameSource(Protocol):
    """Anything that can hand over the frame currently on screen.

    ``current_frame`` must not block; ``None`` means "not ready" and the
    engine skips analysis for that tick.
    """

    def current_frame(self) -> Optional[np.ndarray]:
        ...


@dataclass
class VideoStreamInfo:
    path: Path
    duration: float
    fps: float
    width: int
    height: int
    time_base: Fraction


class FFmpegError(RuntimeError):
    pass


def run_command(cmd: Sequence[str], *, check: bool = True) -> subprocess.CompletedProcess:
    """Run a subprocess command logging the invocation."""

    logger.debug("Running command: {}", " ".join(cmd))
    result = subprocess.run(cmd, capture_output=True, text=True)
    if check and result.returncode != 0:
        raise FFmpegError(f"Command failed with code {result.returncode}: {' '.join(cmd)}\n{result.stderr}")
    if result.stderr:
        logger.debug(result.stderr.strip())
    return result


def ffprobe_json(path: Path) -> Dict[str, Any]:
    cmd = [
        "ffprobe",
        "-v",
        "error",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
        str(path),
    ]
    result = run_command(cmd)
    if result.stdout:
        return json.loads(result.stdout)
    raise FFmpegError(f"ffprobe produced no output for {path}")


def _parse_fraction(value: str) -> Fraction:
    num, _, den = value.partition("/")
    if den:
        return Fraction(int(num), int(den))
    return Fraction(float(value)).limit_denominator()


def parse_stream_info(path: Path, data: Dict[str, Any]) -> VideoStreamInfo:
    streams = [s for s in data.get("streams", []) if s.get("codec_type") == "video"]
    if not streams:
        raise FFmpegError(f"No video streams found in {path}")
    stream = streams[0]
    duration = float(stream.get("duration") or data.get("format", {}).get("duration") or 0.0)
    width = int(stream.get("width"))
    height = int(stream.get("height"))
    r_frame_rate = stream.get("r_frame_rate", "0/0")
    if "0/0" not in r_frame_rate:
        fps = float(_parse_fraction(r_frame_rate))
    else:
        fps = float(_parse_fraction(stream.get("avg_frame_rate", "0/1")))
    time_base = _parse_fraction(stream.get("time_base", "1/1"))
    return VideoStreamInfo(path=path, duration=duration, fps=fps, width=width, height=height, time_base=time_base)


def video_stream_info(path: Path) -> VideoStreamInfo:
    return parse_stream_info(path, ffprobe_json(path))


class ArrayFrameSource:
    """Serve pre-built frames; ``None`` entries simulate a source that is not ready."""

    def __init__(self, frames: Iterable[Optional[np.ndarray]]) -> None:
        self._frames: List[Optional[np.ndarray]] = list(frames)
        self._index = 0
        self.exhausted = False

    def __len__(self) -> int:
        return len(self._frames)

    def current_frame(self) -> Optional[np.ndarray]:
        if self._index >= len(self._frames):
            self.exhausted = True
            return None
        frame = self._frames[self._index]
        self._index += 1
        return frame


class VideoFileSource:
    """Read a recorded capture frame by frame through OpenCV."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.cap: Optional[cv2.VideoCapture] = None
        self.width = 0
        self.height = 0
        self.fps = 0.0
        self.frame_count = 0
        self.exhausted = False

    def open(self) -> "VideoFileSource":
        cap = cv2.VideoCapture(str(self.path))
        if not cap.isOpened():
            raise RuntimeError(f"Unable to open video for tracking: {self.path}")
        self.cap = cap
        self.width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.fps = float(cap.get(cv2.CAP_PROP_FPS) or 30.0)
        self.frame_count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        logger.info("Opened {} ({}x{} @ {:.2f} fps)", self.path, self.width, self.height, self.fps)
        return self

    def current_frame(self) -> Optional[np.ndarray]:
        if self.cap is None or self.exhausted:
            return None
        ok, frame = self.cap.read()
        if not ok or frame is None:
            self.exhausted = True
            return None
        return frame

    def release(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None

    def __enter__(self) -> "VideoFileSource":
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.release()
