"""Per-frame tracking loop tying sampler, detector, estimator and smoother together.

One :meth:`TrackingEngine.tick` corresponds to one displayed frame:

1. In auto-track mode the frame is downsampled and diffed against the last
   analysis frame; a local-motion sample may move the target.
2. Deferred callbacks that are due (the edge-dwell reset) run.
3. The smoother advances the current crop position toward the target.

In the manual modes step 1 is skipped and the target only changes through
:meth:`TrackingEngine.set_manual_position`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np
from loguru import logger

from .config import AppConfig
from .io import FrameSource
from .motion import MotionDetector, MotionSample
from .sampler import FrameSampler
from .scheduler import FrameClockScheduler
from .smoother import Smoother
from .state import TrackingMode, TrackingState, new_session_state
from .target import TargetEstimator
from .utils import CropRect, CropSize, Position, TrackRow, crop_size_for_source, position_from_preview


@dataclass(frozen=True)
class TickResult:
    tick: int
    time_ms: float
    mode: TrackingMode
    frame_ready: bool
    sample: Optional[MotionSample]
    target: Position
    current: Position

    def to_row(self) -> TrackRow:
        return TrackRow(
            tick=self.tick,
            time_ms=self.time_ms,
            mode=self.mode.value,
            classification=self.sample.classification.value if self.sample else "",
            change_ratio=self.sample.change_ratio if self.sample else 0.0,
            target_x=self.target.x,
            target_y=self.target.y,
            current_x=self.current.x,
            current_y=self.current.y,
        )


class TrackingEngine:
    def __init__(self, config: Optional[AppConfig] = None) -> None:
        self.config = config or AppConfig()
        self.scheduler = FrameClockScheduler()
        self.sampler = FrameSampler(self.config.sampler.analysis_width)
        self.detector = MotionDetector(self.config.motion)
        self.estimator = TargetEstimator(self.config.target, self.scheduler)
        self.smoother = Smoother(self.config.smoothing)
        self.state: Optional[TrackingState] = None
        self._mode = self.config.mode

    # ------------------------------------------------------------------ #
    #   Session lifecycle
    # ------------------------------------------------------------------ #
    @property
    def active(self) -> bool:
        return self.state is not None

    def start(
        self,
        source_width: int,
        source_height: int,
        crop: Optional[CropSize] = None,
        now_ms: float = 0.0,
    ) -> TrackingState:
        if self.active:
            self.stop()
        crop = crop or crop_size_for_source(source_width, source_height, self.config.crop.aspect)
        self.scheduler.now_ms = float(now_ms)
        self.state = new_session_state(source_width, source_height, crop, now_ms, self._mode)
        logger.info(
            "Tracking session started: source {}x{}, crop {}x{}, mode {}",
            source_width,
            source_height,
            crop.width,
            crop.height,
            self._mode.value,
        )
        return self.state

    def stop(self) -> Optional[TrackingState]:
        """End the session; any pending edge reset is cancelled, not fired."""

        state = self.state
        if state is None:
            return None
        self.estimator.edge_guard.cancel(state)
        self.scheduler.cancel_all()
        self.state = None
        logger.info(
            "Tracking session stopped after {} ticks ({} target updates, {} edge resets)",
            state.ticks,
            state.target_updates,
            state.edge_resets,
        )
        return state

    def _require_state(self) -> TrackingState:
        if self.state is None:
            raise RuntimeError("tracking session not started")
        return self.state

    # ------------------------------------------------------------------ #
    #   External controls
    # ------------------------------------------------------------------ #
    @property
    def mode(self) -> TrackingMode:
        return self._mode

    def set_mode(self, mode: "TrackingMode | str") -> TrackingMode:
        mode = TrackingMode.parse(mode)
        if mode is self._mode:
            return mode
        logger.info("Tracking mode {} -> {}", self._mode.value, mode.value)
        self._mode = mode
        state = self.state
        if state is not None:
            state.mode = mode
            if mode.is_manual:
                self.estimator.edge_guard.cancel(state)
            else:
                # stale baseline from before the manual stretch would read as a scene cut
                state.previous_frame = None
        return mode

    def set_manual_position(self, position: Position) -> Optional[Position]:
        """Write the target directly. Ignored while auto-tracking."""

        state = self._require_state()
        if not state.mode.is_manual:
            logger.debug("Manual position ignored in {} mode", state.mode.value)
            return None
        return self.estimator.set_manual(state, position)

    def preview_size(self) -> Tuple[int, int]:
        state = self._require_state()
        width = self.config.crop.preview_width
        return (width, max(1, int(width * state.source_height / float(state.source_width))))

    def set_manual_from_preview(
        self, point: Tuple[float, float], preview_size: Optional[Tuple[int, int]] = None
    ) -> Optional[Position]:
        """Pan to a point picked on the scaled preview (default: ``crop.preview_width`` wide)."""

        state = self._require_state()
        size = preview_size or self.preview_size()
        pos = position_from_preview(point, size, state.source_width, state.source_height, state.crop)
        return self.set_manual_position(pos)

    # ------------------------------------------------------------------ #
    #   Outputs
    # ------------------------------------------------------------------ #
    @property
    def crop_rect(self) -> CropRect:
        state = self._require_state()
        return CropRect(position=state.current.copy(), size=state.crop)

    @property
    def target(self) -> Position:
        return self._require_state().target.copy()

    # ------------------------------------------------------------------ #
    #   Frame loop
    # ------------------------------------------------------------------ #
    def tick(self, frame: Optional[np.ndarray], now_ms: float) -> TickResult:
        state = self._require_state()
        state.ticks += 1
        sample: Optional[MotionSample] = None
        frame_ready = frame is not None and frame.size > 0
        if not frame_ready:
            state.skipped_ticks += 1
            logger.warning("Frame source not ready at {:.1f} ms", now_ms)

        if state.mode is TrackingMode.AUTO_TRACK and frame_ready:
            analysis = self.sampler.sample(frame)
            if analysis is not None:
                sample = self.detector.detect(state, analysis)
                if sample is not None:
                    state.samples[sample.classification.value] += 1
                    self.estimator.update(state, sample, now_ms)

        self.scheduler.run_due(now_ms)
        self.smoother.step(state)
        return TickResult(
            tick=state.ticks,
            time_ms=float(now_ms),
            mode=state.mode,
            frame_ready=frame_ready,
            sample=sample,
            target=state.target.copy(),
            current=state.current.copy(),
        )

    def run(
        self,
        source: FrameSource,
        fps: float,
        *,
        max_frames: Optional[int] = None,
        start_ms: float = 0.0,
    ) -> Iterator[Tuple[Optional[np.ndarray], TickResult]]:
        """Drive ticks from *source* on a media clock until it runs dry or :meth:`stop` is called.

        Yields the raw frame alongside each result so a compositor can render it.
        """

        frame_ms = 1000.0 / fps if fps > 0 else 1000.0 / 30.0
        index = 0
        while self.active and (max_frames is None or index < max_frames):
            frame = source.current_frame()
            if frame is None and getattr(source, "exhausted", False):
                break
            now_ms = start_ms + index * frame_ms
            result = self.tick(frame, now_ms)
            index += 1
            yield frame, result

    def summary(self, state: Optional[TrackingState] = None) -> dict:
        state = state or self._require_state()
        return {
            "ticks": state.ticks,
            "skipped_ticks": state.skipped_ticks,
            "target_updates": state.target_updates,
            "edge_resets": state.edge_resets,
            "samples": dict(state.samples),
            "source": f"{state.source_width}x{state.source_height}",
            "crop": f"{state.crop.width}x{state.crop.height}",
        }
