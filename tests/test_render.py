"""Tests for cinestream.render."""
from __future__ import annotations

import numpy as np

from cinestream.render import CropRenderer
from cinestream.utils import CropRect, CropSize, Position


class TestCropRenderer:
    def test_in_bounds_extract_is_a_view(self, make_frame):
        frame = make_frame(box=(700, 0, 800, 1080))
        rect = CropRect(Position(656.5, 0.0), CropSize(607, 1080))
        patch = CropRenderer().extract(frame, rect)
        assert patch.shape == (1080, 607, 3)
        assert np.shares_memory(patch, frame)
        # 656.5 rounds to 656 (banker's rounding); the box starts 44px in
        assert patch[0, 44].tolist() == [255, 255, 255]
        assert patch[0, 43].tolist() == [0, 0, 0]

    def test_oversized_crop_is_padded_black(self, make_frame):
        frame = make_frame(400, 1080, box=(0, 0, 400, 1080))
        rect = CropRect(Position(0.0, 0.0), CropSize(607, 1080))
        patch = CropRenderer().extract(frame, rect)
        assert patch.shape == (1080, 607, 3)
        assert patch[:, :400].min() == 255
        assert patch[:, 400:].max() == 0

    def test_padding_buffer_is_reused_and_cleared(self, make_frame):
        renderer = CropRenderer()
        rect = CropRect(Position(0.0, 0.0), CropSize(607, 1080))
        first = renderer.extract(make_frame(400, 1080, box=(0, 0, 400, 1080)), rect)
        second = renderer.extract(make_frame(400, 1080), rect)
        assert first is second
        assert second.max() == 0

    def test_render_scales_to_output(self, make_frame):
        renderer = CropRenderer((360, 640))
        out = renderer.render(make_frame(), CropRect(Position(0.0, 0.0), CropSize(607, 1080)))
        assert out.shape == (640, 360, 3)
