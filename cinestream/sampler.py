"""Downsampled analysis frames for motion detection."""
from __future__ import annotations

from typing import Optional, Tuple

import cv2
import numpy as np
from loguru import logger


class FrameSampler:
    """Scale full-resolution frames to a fixed analysis width.

    The output buffer is reused between calls and only reallocated when the
    source dimensions change, so callers that keep a frame across ticks must
    copy it.
    """

    def __init__(self, analysis_width: int = 320) -> None:
        if analysis_width <= 0:
            raise ValueError("analysis_width must be positive")
        self.analysis_width = int(analysis_width)
        self._source_shape: Optional[Tuple[int, ...]] = None
        self._buffer: Optional[np.ndarray] = None

    @property
    def analysis_size(self) -> Optional[Tuple[int, int]]:
        if self._buffer is None:
            return None
        h, w = self._buffer.shape[:2]
        return (w, h)

    def analysis_size_for(self, source_width: int, source_height: int) -> Tuple[int, int]:
        h = max(1, int(self.analysis_width * source_height / float(source_width)))
        return (self.analysis_width, h)

    def _ensure_buffer(self, frame: np.ndarray) -> np.ndarray:
        if self._buffer is not None and self._source_shape == frame.shape:
            return self._buffer
        src_h, src_w = frame.shape[:2]
        out_w, out_h = self.analysis_size_for(src_w, src_h)
        shape = (out_h, out_w) + tuple(frame.shape[2:])
        self._buffer = np.empty(shape, dtype=frame.dtype)
        self._source_shape = frame.shape
        logger.debug("Analysis buffer {}x{} for source {}x{}", out_w, out_h, src_w, src_h)
        return self._buffer

    def sample(self, frame: Optional[np.ndarray]) -> Optional[np.ndarray]:
        """Return the analysis frame, or ``None`` when no source frame is ready."""

        if frame is None or frame.size == 0:
            return None
        buf = self._ensure_buffer(frame)
        out_h, out_w = buf.shape[:2]
        return cv2.resize(frame, (out_w, out_h), dst=buf, interpolation=cv2.INTER_AREA)
