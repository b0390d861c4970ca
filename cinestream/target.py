"""Turn motion samples (or manual input) into a clamped crop target."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from .config import TargetConfig
from .motion import MotionClass, MotionSample
from .scheduler import FrameClockScheduler
from .state import TrackingState
from .utils import Position, clamp_position, distance, initial_position


@dataclass(frozen=True)
class TargetUpdate:
    source_point: Position
    candidate: Position
    near_edge: bool
    moved: bool


class JitterFilter:
    """Deadzone: the target only moves when the candidate is far enough away."""

    def __init__(self, threshold: float = 5.0) -> None:
        self.threshold = float(threshold)

    def exceeds(self, candidate: Position, current: Position) -> bool:
        return distance(candidate, current) > self.threshold

    def apply(self, state: TrackingState, candidate: Position, now_ms: float) -> bool:
        if not self.exceeds(candidate, state.target):
            return False
        state.target = candidate
        state.last_active_ms = float(now_ms)
        state.target_updates += 1
        return True


class EdgeGuard:
    """Recenter the crop when activity dwells at the left or right edge.

    At most one reset is pending per session; it lives on
    ``state.pending_reset`` and keeps running while motion stays inside the
    edge band.  Motion anywhere else cancels it.
    """

    def __init__(
        self,
        scheduler: FrameClockScheduler,
        edge_buffer: float = 50.0,
        dwell_ms: float = 3000.0,
    ) -> None:
        self.scheduler = scheduler
        self.edge_buffer = float(edge_buffer)
        self.dwell_ms = float(dwell_ms)

    def is_near_edge(self, source_x: float, source_width: int) -> bool:
        return source_x < self.edge_buffer or source_x > source_width - self.edge_buffer

    @staticmethod
    def reset_position(state: TrackingState) -> Position:
        return initial_position(state.source_width, state.crop)

    def observe(self, state: TrackingState, source_x: float, now_ms: float) -> bool:
        near = self.is_near_edge(source_x, state.source_width)
        if not near:
            self.cancel(state)
            return False
        pending = state.pending_reset
        if pending is None or not pending.pending:
            state.pending_reset = self.scheduler.call_at(
                now_ms + self.dwell_ms, lambda: self._fire(state), label="edge-reset"
            )
            logger.debug("Edge dwell started at x={:.1f}; reset due in {:.0f} ms", source_x, self.dwell_ms)
        return True

    def cancel(self, state: TrackingState) -> None:
        pending = state.pending_reset
        if pending is not None:
            if pending.cancel():
                logger.debug("Edge dwell cancelled")
            state.pending_reset = None

    def _fire(self, state: TrackingState) -> None:
        state.pending_reset = None
        state.target = self.reset_position(state)
        state.edge_resets += 1
        logger.info("Edge dwell elapsed; recentering crop to ({:.1f}, {:.1f})", state.target.x, state.target.y)


class TargetEstimator:
    def __init__(self, config: Optional[TargetConfig] = None, scheduler: Optional[FrameClockScheduler] = None) -> None:
        self.config = config or TargetConfig()
        self.scheduler = scheduler or FrameClockScheduler()
        self.jitter = JitterFilter(self.config.jitter_threshold)
        self.edge_guard = EdgeGuard(self.scheduler, self.config.edge_buffer, self.config.edge_dwell_ms)

    @staticmethod
    def to_source(sample: MotionSample, state: TrackingState) -> Position:
        aw, ah = sample.frame_size
        c = sample.centroid
        if c is None:
            raise ValueError(f"{sample.classification.value} sample has no centroid")
        return Position(c.x / aw * state.source_width, c.y / ah * state.source_height)

    @staticmethod
    def candidate_for(source_point: Position, state: TrackingState) -> Position:
        raw = Position(source_point.x - state.crop.width / 2.0, source_point.y - state.crop.height / 2.0)
        return clamp_position(raw, state.source_width, state.source_height, state.crop)

    def update(self, state: TrackingState, sample: Optional[MotionSample], now_ms: float) -> Optional[TargetUpdate]:
        """Apply one detector sample. Anything but local motion holds the target."""

        if state.mode.is_manual or sample is None or sample.classification is not MotionClass.LOCAL:
            return None
        source_point = self.to_source(sample, state)
        candidate = self.candidate_for(source_point, state)
        near_edge = self.edge_guard.observe(state, source_point.x, now_ms)
        moved = self.jitter.apply(state, candidate, now_ms)
        if moved:
            logger.debug("Target -> ({:.1f}, {:.1f})", candidate.x, candidate.y)
        return TargetUpdate(source_point=source_point, candidate=candidate, near_edge=near_edge, moved=moved)

    def set_manual(self, state: TrackingState, position: Position) -> Position:
        """Write an externally chosen target, clamped into the valid range."""

        clamped = clamp_position(position, state.source_width, state.source_height, state.crop)
        state.target = clamped
        return clamped
