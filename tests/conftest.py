"""Shared fixtures for the cinestream test suite."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Tuple

import numpy as np
import pytest

from cinestream.config import AppConfig
from cinestream.engine import TrackingEngine
from cinestream.state import TrackingState, new_session_state
from cinestream.utils import CropSize

SOURCE_W, SOURCE_H = 1920, 1080
CROP = CropSize(width=607, height=1080)


@pytest.fixture
def default_config() -> AppConfig:
    """Return a default AppConfig with no file."""
    return AppConfig()


@pytest.fixture
def session_state() -> TrackingState:
    """Fresh 1920x1080 session with the standard portrait crop."""
    return new_session_state(SOURCE_W, SOURCE_H, CROP, now_ms=0.0)


@pytest.fixture
def make_frame() -> Callable[..., np.ndarray]:
    """Build a BGR frame, optionally with a bright rectangle ``(x0, y0, x1, y1)``."""

    def _make(
        width: int = SOURCE_W,
        height: int = SOURCE_H,
        box: Optional[Tuple[int, int, int, int]] = None,
        value: int = 255,
    ) -> np.ndarray:
        frame = np.zeros((height, width, 3), dtype=np.uint8)
        if box is not None:
            x0, y0, x1, y1 = box
            frame[y0:y1, x0:x1] = value
        return frame

    return _make


@pytest.fixture
def engine() -> TrackingEngine:
    """An engine with a running 1920x1080 session at t=0."""
    eng = TrackingEngine(AppConfig())
    eng.start(SOURCE_W, SOURCE_H, CROP, now_ms=0.0)
    return eng


@pytest.fixture
def sample_yaml(tmp_path: Path) -> Path:
    """Write a minimal config.yaml and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        "mode: smooth\n"
        "paths:\n"
        "  video: capture.mkv\n"
        "  output_dir: results\n"
        "motion:\n"
        "  motion_threshold: 20\n"
        "target:\n"
        "  jitter_threshold: 8\n"
    )
    return cfg
