"""Tests for cinestream.smoother."""
from __future__ import annotations

import pytest

from cinestream.config import SmoothingConfig
from cinestream.smoother import Smoother, alpha_for_mode
from cinestream.state import TrackingMode
from cinestream.utils import Position


class TestAlphaForMode:
    def test_defaults(self):
        assert alpha_for_mode(TrackingMode.AUTO_TRACK) == 0.25
        assert alpha_for_mode(TrackingMode.SMOOTH_FOLLOW) == 1.0
        assert alpha_for_mode(TrackingMode.MANUAL) == 1.0

    def test_configured(self):
        cfg = SmoothingConfig(auto_alpha=0.5, manual_alpha=0.75)
        assert alpha_for_mode(TrackingMode.AUTO_TRACK, cfg) == 0.5
        assert alpha_for_mode(TrackingMode.MANUAL, cfg) == 0.75


class TestSmoother:
    def test_single_step_moves_quarter_way(self, session_state):
        session_state.current = Position(0.0, 0.0)
        session_state.target = Position(100.0, 0.0)
        Smoother().step(session_state)
        assert session_state.current.x == pytest.approx(25.0)
        assert session_state.current.y == 0.0

    def test_converges_without_overshoot(self, session_state):
        session_state.current = Position(0.0, 0.0)
        session_state.target = Position(1000.0, 0.0)
        smoother = Smoother()
        gaps = []
        for _ in range(60):
            smoother.step(session_state)
            assert session_state.current.x <= 1000.0
            gaps.append(1000.0 - session_state.current.x)
        assert all(b < a for a, b in zip(gaps, gaps[1:]) if a > 0)
        assert session_state.current.x == pytest.approx(1000.0, abs=1e-3)

    def test_manual_modes_snap_exactly(self, session_state):
        session_state.mode = TrackingMode.MANUAL
        session_state.current = Position(0.0, 0.0)
        session_state.target = Position(333.3, 0.0)
        Smoother().step(session_state)
        assert session_state.current == Position(333.3, 0.0)
        assert session_state.current is not session_state.target

    def test_at_rest_stays_put(self, session_state):
        before = session_state.current.copy()
        Smoother().step(session_state)
        assert session_state.current == before
