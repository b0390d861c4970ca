"""Tests for the cinestream command line."""
from __future__ import annotations

import json
from pathlib import Path

import cv2
import numpy as np
import pytest

from cinestream.cli import build_parser, main
from cinestream.utils import read_track_csv


def _write_capture(path: Path, frames: int = 12, size=(192, 108)) -> Path:
    w, h = size
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"mp4v"), 10.0, (w, h))
    if not writer.isOpened():
        pytest.skip("mp4v writer unavailable")
    for i in range(frames):
        frame = np.zeros((h, w, 3), dtype=np.uint8)
        x = 20 + i * 8
        frame[40:60, x : x + 16] = 255
        writer.write(frame)
    writer.release()
    cap = cv2.VideoCapture(str(path))
    ok = cap.isOpened() and cap.read()[0]
    cap.release()
    if not ok:
        pytest.skip("mp4v reader unavailable")
    return path


class TestParser:
    def test_track_args(self):
        args = build_parser().parse_args(["track", "--video", "a.mp4", "--mode", "smooth", "--max-frames", "5"])
        assert args.command == "track"
        assert args.mode == "smooth"
        assert args.max_frames == 5

    def test_unknown_mode_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["track", "--mode", "hover"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestTrackCommand:
    def test_missing_video_exits(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as exc:
            main(["track", "--video", str(tmp_path / "missing.mp4")])
        assert exc.value.code == 2

    def test_track_writes_csv_and_report(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        video = _write_capture(tmp_path / "capture.mp4")
        out_csv = tmp_path / "out" / "track.csv"
        render = tmp_path / "out" / "portrait.mp4"
        main(["track", "--video", str(video), "--csv", str(out_csv), "--render", str(render)])

        rows = read_track_csv(out_csv)
        assert len(rows) == 12
        assert rows[0].classification == ""
        assert all(r.mode == "auto_track" for r in rows)
        assert rows[-1].time_ms == pytest.approx(1100.0)

        report = json.loads((tmp_path / "out" / "report.json").read_text())
        assert report["track"]["ticks"] == 12
        assert report["track"]["crop"] == "60x108"
        assert render.exists()

    def test_max_frames_and_manual_mode(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        video = _write_capture(tmp_path / "capture.mp4")
        out_csv = tmp_path / "track.csv"
        main(["track", "--video", str(video), "--csv", str(out_csv), "--mode", "manual", "--max-frames", "4"])
        rows = read_track_csv(out_csv)
        assert len(rows) == 4
        assert {r.classification for r in rows} == {""}
        assert {r.target_x for r in rows} == {66.0}
