"""Tracking modes and the per-session mutable state."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

import numpy as np

from .utils import CropSize, Position, initial_position

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .scheduler import ScheduledTask


class TrackingMode(str, Enum):
    MANUAL = "manual"
    SMOOTH_FOLLOW = "smooth_follow"
    AUTO_TRACK = "auto_track"

    @property
    def is_manual(self) -> bool:
        return self is not TrackingMode.AUTO_TRACK

    @classmethod
    def parse(cls, value: "str | TrackingMode") -> "TrackingMode":
        if isinstance(value, TrackingMode):
            return value
        key = str(value).strip().lower().replace("-", "_")
        aliases = {
            "manual": cls.MANUAL,
            "smooth": cls.SMOOTH_FOLLOW,
            "smooth_follow": cls.SMOOTH_FOLLOW,
            "auto": cls.AUTO_TRACK,
            "auto_track": cls.AUTO_TRACK,
        }
        if key not in aliases:
            raise ValueError(f"unknown tracking mode {value!r}; expected one of {sorted(aliases)}")
        return aliases[key]


@dataclass
class TrackingState:
    """Everything a capture session mutates between ticks.

    Owned by :class:`~cinestream.engine.TrackingEngine` and handed to the
    detector and estimator on each update; discarded when capture stops.
    """

    source_width: int
    source_height: int
    crop: CropSize
    target: Position
    current: Position
    last_active_ms: float
    previous_frame: Optional[np.ndarray] = None
    pending_reset: Optional["ScheduledTask"] = None
    mode: TrackingMode = TrackingMode.AUTO_TRACK
    # counters for the session report
    ticks: int = 0
    skipped_ticks: int = 0
    target_updates: int = 0
    edge_resets: int = 0
    samples: dict = field(default_factory=lambda: {"none": 0, "scene": 0, "local": 0})


def new_session_state(
    source_width: int,
    source_height: int,
    crop: CropSize,
    now_ms: float,
    mode: TrackingMode = TrackingMode.AUTO_TRACK,
) -> TrackingState:
    start = initial_position(source_width, crop)
    return TrackingState(
        source_width=int(source_width),
        source_height=int(source_height),
        crop=crop,
        target=start.copy(),
        current=start.copy(),
        last_active_ms=float(now_ms),
        mode=mode,
    )
