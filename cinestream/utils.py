"""Geometry helpers, telemetry rows and session reports shared across modules."""
from __future__ import annotations

import csv
import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple

from loguru import logger


@dataclass
class Position:
    """A point in source-frame pixel space."""

    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def copy(self) -> "Position":
        return Position(self.x, self.y)


@dataclass(frozen=True)
class CropSize:
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"crop size must be positive, got {self.width}x{self.height}")


@dataclass(frozen=True)
class CropRect:
    """The sub-rectangle of the source frame handed to the compositor."""

    position: Position
    size: CropSize

    @property
    def bounds(self) -> Tuple[int, int, int, int]:
        x0 = int(round(self.position.x))
        y0 = int(round(self.position.y))
        return (x0, y0, x0 + self.size.width, y0 + self.size.height)


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp *value* into ``[lo, hi]``.

    When ``hi < lo`` (a crop wider than its source) the lower bound wins, so
    the window is anchored at the origin instead of going negative.
    """

    return max(lo, min(hi, value))


def lerp(start: float, end: float, t: float) -> float:
    return start * (1.0 - t) + end * t


def distance(a: Position, b: Position) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def format_time(seconds: float) -> str:
    """Render a recording duration as ``MM:SS``."""

    total = max(0, int(seconds))
    mins, secs = divmod(total, 60)
    return f"{mins:02d}:{secs:02d}"


def crop_size_for_source(
    source_width: int, source_height: int, aspect: Tuple[int, int] = (9, 16)
) -> CropSize:
    """Portrait crop that spans the full source height."""

    aw, ah = aspect
    height = int(source_height)
    width = int(math.floor(height * (aw / float(ah))))
    if width > source_width:
        logger.warning(
            "Crop {}x{} is wider than the {}x{} source; window will be anchored at x=0",
            width,
            height,
            source_width,
            source_height,
        )
    return CropSize(width=width, height=height)


def max_offset(source_width: int, source_height: int, crop: CropSize) -> Tuple[float, float]:
    return (float(source_width - crop.width), float(source_height - crop.height))


def clamp_position(pos: Position, source_width: int, source_height: int, crop: CropSize) -> Position:
    hi_x, hi_y = max_offset(source_width, source_height, crop)
    return Position(clamp(pos.x, 0.0, hi_x), clamp(pos.y, 0.0, hi_y))


def initial_position(source_width: int, crop: CropSize) -> Position:
    """Horizontal center, top edge."""

    return Position(max(0.0, (source_width - crop.width) / 2.0), 0.0)


def position_from_preview(
    point: Tuple[float, float],
    preview_size: Tuple[int, int],
    source_width: int,
    source_height: int,
    crop: CropSize,
) -> Position:
    """Map a click on a scaled preview to a crop position centered on it."""

    px, py = point
    pw, ph = preview_size
    scale_x = source_width / float(pw)
    scale_y = source_height / float(ph)
    raw = Position(px * scale_x - crop.width / 2.0, py * scale_y - crop.height / 2.0)
    return clamp_position(raw, source_width, source_height, crop)


@dataclass
class TrackRow:
    tick: int
    time_ms: float
    mode: str
    classification: str
    change_ratio: float
    target_x: float
    target_y: float
    current_x: float
    current_y: float


_TRACK_FIELDS = [
    "tick",
    "time_ms",
    "mode",
    "classification",
    "change_ratio",
    "target_x",
    "target_y",
    "current_x",
    "current_y",
]


def write_track_csv(csv_path: Path, rows: Sequence[TrackRow]) -> None:
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    with csv_path.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(_TRACK_FIELDS)
        for r in rows:
            writer.writerow(
                [
                    r.tick,
                    f"{r.time_ms:.3f}",
                    r.mode,
                    r.classification,
                    f"{r.change_ratio:.6f}",
                    f"{r.target_x:.3f}",
                    f"{r.target_y:.3f}",
                    f"{r.current_x:.3f}",
                    f"{r.current_y:.3f}",
                ]
            )


def read_track_csv(csv_path: Path) -> List[TrackRow]:
    rows: List[TrackRow] = []
    with csv_path.open(newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            rows.append(
                TrackRow(
                    tick=int(row.get("tick", 0)),
                    time_ms=float(row.get("time_ms", 0.0)),
                    mode=row.get("mode", ""),
                    classification=row.get("classification", ""),
                    change_ratio=float(row.get("change_ratio", 0.0)),
                    target_x=float(row.get("target_x", 0.0)),
                    target_y=float(row.get("target_y", 0.0)),
                    current_x=float(row.get("current_x", 0.0)),
                    current_y=float(row.get("current_y", 0.0)),
                )
            )
    return rows


@dataclass
class SessionReport:
    path: Path
    data: dict

    def update(self, section: str, payload: dict) -> None:
        self.data[section] = payload
        self.write()

    def write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.data, indent=2))
        write_report_md(self.path.with_suffix(".md"), self.data)


def load_report(base_dir: Path) -> SessionReport:
    json_path = base_dir / "report.json"
    if json_path.exists():
        data = json.loads(json_path.read_text())
    else:
        data = {}
    return SessionReport(path=json_path, data=data)


def write_report_md(path: Path, data: dict) -> None:
    lines = ["# CineStream Tracking Report", ""]
    if not data:
        lines.append("No tracking sessions recorded yet.")
    else:
        for section, payload in data.items():
            lines.append(f"## {section.title()}")
            for key, value in payload.items():
                lines.append(f"- **{key.replace('_', ' ').title()}**: {value}")
            lines.append("")
    path.write_text("\n".join(lines))
