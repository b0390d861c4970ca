"""Extract the smoothed crop window and scale it to the output canvas."""
from __future__ import annotations

from typing import Optional, Tuple

import cv2
import numpy as np

from .utils import CropRect


class CropRenderer:
    """Compositor for the portrait output.

    Parts of the crop window that fall outside the source (an oversized crop
    anchored at the origin) are filled black.
    """

    def __init__(self, output_size: Tuple[int, int] = (720, 1280)) -> None:
        self.output_size = (int(output_size[0]), int(output_size[1]))
        self._patch: Optional[np.ndarray] = None

    def _patch_for(self, rect: CropRect, frame: np.ndarray) -> np.ndarray:
        shape = (rect.size.height, rect.size.width) + tuple(frame.shape[2:])
        if self._patch is None or self._patch.shape != shape or self._patch.dtype != frame.dtype:
            self._patch = np.zeros(shape, dtype=frame.dtype)
        else:
            self._patch.fill(0)
        return self._patch

    def extract(self, frame: np.ndarray, rect: CropRect) -> np.ndarray:
        src_h, src_w = frame.shape[:2]
        x0, y0, x1, y1 = rect.bounds
        if 0 <= x0 and 0 <= y0 and x1 <= src_w and y1 <= src_h:
            return frame[y0:y1, x0:x1]
        patch = self._patch_for(rect, frame)
        sx0, sy0 = max(0, x0), max(0, y0)
        sx1, sy1 = min(src_w, x1), min(src_h, y1)
        if sx1 > sx0 and sy1 > sy0:
            patch[sy0 - y0 : sy1 - y0, sx0 - x0 : sx1 - x0] = frame[sy0:sy1, sx0:sx1]
        return patch

    def render(self, frame: np.ndarray, rect: CropRect) -> np.ndarray:
        crop = self.extract(frame, rect)
        return cv2.resize(crop, self.output_size, interpolation=cv2.INTER_CUBIC)
