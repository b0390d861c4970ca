"""Tests for cinestream.io."""
from __future__ import annotations

from fractions import Fraction
from pathlib import Path

import numpy as np
import pytest

from cinestream.io import (
    ArrayFrameSource,
    FFmpegError,
    VideoFileSource,
    _parse_fraction,
    parse_stream_info,
)


# --- _parse_fraction ------------------------------------------------------

class TestParseFraction:
    def test_ratio(self):
        assert _parse_fraction("30000/1001") == Fraction(30000, 1001)

    def test_decimal(self):
        assert _parse_fraction("29.97") == Fraction(2997, 100)


# --- parse_stream_info ----------------------------------------------------

class TestParseStreamInfo:
    def _probe(self, **stream):
        base = {
            "codec_type": "video",
            "width": 1920,
            "height": 1080,
            "r_frame_rate": "60/1",
            "time_base": "1/15360",
        }
        base.update(stream)
        return {"streams": [{"codec_type": "audio"}, base], "format": {"duration": "12.5"}}

    def test_video_stream_selected(self):
        info = parse_stream_info(Path("cap.mp4"), self._probe())
        assert (info.width, info.height) == (1920, 1080)
        assert info.fps == 60.0
        assert info.duration == 12.5
        assert info.time_base == Fraction(1, 15360)

    def test_avg_frame_rate_fallback(self):
        info = parse_stream_info(Path("cap.mp4"), self._probe(r_frame_rate="0/0", avg_frame_rate="30/1"))
        assert info.fps == 30.0

    def test_stream_duration_preferred(self):
        info = parse_stream_info(Path("cap.mp4"), self._probe(duration="9.0"))
        assert info.duration == 9.0

    def test_no_video_stream(self):
        with pytest.raises(FFmpegError):
            parse_stream_info(Path("cap.mp4"), {"streams": [{"codec_type": "audio"}]})


# --- ArrayFrameSource ------------------------------------------------------

class TestArrayFrameSource:
    def test_serves_frames_then_exhausts(self):
        frame = np.zeros((4, 4, 3), dtype=np.uint8)
        source = ArrayFrameSource([frame, None])
        assert len(source) == 2
        assert source.current_frame() is frame
        assert source.current_frame() is None
        assert not source.exhausted
        assert source.current_frame() is None
        assert source.exhausted


# --- VideoFileSource -------------------------------------------------------

class TestVideoFileSource:
    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(RuntimeError, match="Unable to open video"):
            VideoFileSource(tmp_path / "missing.mp4").open()

    def test_unopened_source_is_not_ready(self, tmp_path):
        source = VideoFileSource(tmp_path / "missing.mp4")
        assert source.current_frame() is None
        source.release()
