"""Frame-differencing motion detector.

Each pass compares the current analysis frame with the one stored in the
session state, sampling every ``stride``-th pixel in raster order.  A pixel
counts as changed when the summed absolute difference of its first three
channels exceeds ``motion_threshold``.  The fraction of changed samples
decides how the pass is classified:

``scene``
    More than ``scroll_ratio`` of the frame changed.  Scrolling, window
    switches and cuts land here and must not move the crop.

``local``
    More than ``motion_floor`` changed.  The mean grid position of the
    changed pixels is the activity centroid (usually the cursor).

``none``
    Anything else, including passes with zero changed pixels.

Both comparisons are strict, so a ratio sitting exactly on a boundary falls
into the lower class.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np
from loguru import logger

from .config import MotionConfig
from .state import TrackingState
from .utils import Position


class MotionClass(str, Enum):
    NONE = "none"
    SCENE = "scene"
    LOCAL = "local"


@dataclass(frozen=True)
class MotionSample:
    classification: MotionClass
    change_ratio: float
    changed_count: int
    sampled_count: float
    frame_size: Tuple[int, int]
    centroid: Optional[Position] = None


def classify_change(
    changed_count: int,
    sampled_count: float,
    scroll_ratio: float = 0.15,
    motion_floor: float = 0.00005,
) -> Tuple[MotionClass, float]:
    """Return the classification and change ratio for one pass."""

    ratio = changed_count / sampled_count if sampled_count > 0 else 0.0
    if changed_count == 0:
        return MotionClass.NONE, ratio
    if ratio > scroll_ratio:
        return MotionClass.SCENE, ratio
    if ratio > motion_floor:
        return MotionClass.LOCAL, ratio
    return MotionClass.NONE, ratio


def as_uint8(frame: np.ndarray) -> np.ndarray:
    """Bring an analysis frame to 8-bit.

    Integer frames are rescaled from their full range; float frames are taken
    to be on the 0-255 scale and saturated.
    """

    if frame.dtype == np.uint8:
        return frame
    if np.issubdtype(frame.dtype, np.integer):
        info = np.iinfo(frame.dtype)
        scaled = frame.astype(np.float32) * (255.0 / float(info.max))
    else:
        scaled = np.nan_to_num(frame.astype(np.float32, copy=False))
    return np.clip(np.rint(scaled), 0, 255).astype(np.uint8)


class _SampleGrid:
    """Per-shape scratch buffers so a pass allocates nothing per pixel."""

    def __init__(self, shape: Tuple[int, ...], stride: int) -> None:
        height, width = shape[:2]
        channels = shape[2] if len(shape) > 2 else 1
        self.shape = shape
        self.channels = channels
        self.used_channels = min(channels, 3)
        self.total_pixels = height * width
        idx = np.arange(0, self.total_pixels, stride)
        self.xs = (idx % width).astype(np.float64)
        self.ys = (idx // width).astype(np.float64)
        n = idx.size
        self.diff = np.empty((n, self.used_channels), dtype=np.int16)
        self.sums = np.empty(n, dtype=np.int16)
        self.mask = np.empty(n, dtype=bool)
        self.sampled_count = self.total_pixels / float(stride)

    def view(self, frame: np.ndarray, stride: int) -> np.ndarray:
        flat = frame.reshape(-1, self.channels)
        return flat[::stride, : self.used_channels]


class MotionDetector:
    def __init__(self, config: Optional[MotionConfig] = None) -> None:
        self.config = config or MotionConfig()
        self._grid: Optional[_SampleGrid] = None

    def _grid_for(self, shape: Tuple[int, ...]) -> _SampleGrid:
        if self._grid is None or self._grid.shape != shape:
            self._grid = _SampleGrid(shape, self.config.stride)
        return self._grid

    @staticmethod
    def _store_baseline(state: TrackingState, frame: np.ndarray) -> None:
        prev = state.previous_frame
        if prev is not None and prev.shape == frame.shape and prev.dtype == frame.dtype:
            np.copyto(prev, frame)
        else:
            state.previous_frame = frame.copy()

    def detect(self, state: TrackingState, frame: np.ndarray) -> Optional[MotionSample]:
        """Diff *frame* against the stored baseline and replace the baseline.

        Returns ``None`` on the first pass of a session (or after the analysis
        size changed), when there is nothing to compare against yet.
        """

        frame = as_uint8(frame)
        prev = state.previous_frame
        if prev is None or prev.shape != frame.shape:
            self._store_baseline(state, frame)
            return None

        cfg = self.config
        grid = self._grid_for(frame.shape)
        np.subtract(grid.view(frame, cfg.stride), grid.view(prev, cfg.stride), out=grid.diff, dtype=np.int16)
        np.abs(grid.diff, out=grid.diff)
        np.sum(grid.diff, axis=1, dtype=np.int16, out=grid.sums)
        np.greater(grid.sums, cfg.motion_threshold, out=grid.mask)
        changed = int(np.count_nonzero(grid.mask))

        classification, ratio = classify_change(changed, grid.sampled_count, cfg.scroll_ratio, cfg.motion_floor)
        centroid = None
        if classification is MotionClass.LOCAL:
            cx = float(np.sum(grid.xs, where=grid.mask)) / changed
            cy = float(np.sum(grid.ys, where=grid.mask)) / changed
            centroid = Position(cx, cy)

        self._store_baseline(state, frame)
        height, width = frame.shape[:2]
        logger.debug("motion {} ratio={:.5f} changed={}", classification.value, ratio, changed)
        return MotionSample(
            classification=classification,
            change_ratio=ratio,
            changed_count=changed,
            sampled_count=grid.sampled_count,
            frame_size=(width, height),
            centroid=centroid,
        )
