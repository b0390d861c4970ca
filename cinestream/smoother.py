"""Per-frame exponential smoothing of the crop position."""
from __future__ import annotations

from typing import Optional

from .config import SmoothingConfig
from .state import TrackingMode, TrackingState
from .utils import Position, lerp


def alpha_for_mode(mode: TrackingMode, config: Optional[SmoothingConfig] = None) -> float:
    cfg = config or SmoothingConfig()
    return cfg.auto_alpha if mode is TrackingMode.AUTO_TRACK else cfg.manual_alpha


class Smoother:
    """First-order IIR filter moving ``current`` toward ``target`` each tick."""

    def __init__(self, config: Optional[SmoothingConfig] = None) -> None:
        self.config = config or SmoothingConfig()

    def step(self, state: TrackingState) -> Position:
        alpha = alpha_for_mode(state.mode, self.config)
        if alpha >= 1.0:
            # exact snap; lerp can leave a rounding residue
            state.current = state.target.copy()
        else:
            state.current = Position(
                lerp(state.current.x, state.target.x, alpha),
                lerp(state.current.y, state.target.y, alpha),
            )
        return state.current
