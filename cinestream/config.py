"""Configuration models and loader for the tracking engine."""
from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .state import TrackingMode


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PathsConfig(_Section):
    video: Path = Field(Path("capture.mp4"), description="Recorded screen capture used as the frame source.")
    output_dir: Path = Field(Path("out"), description="Base directory for telemetry and reports.")


class SamplerConfig(_Section):
    analysis_width: int = Field(320, gt=0, description="Width of the downsampled analysis frame.")


class MotionConfig(_Section):
    motion_threshold: int = Field(15, ge=0, description="Summed per-channel difference marking a pixel as changed.")
    stride: int = Field(4, ge=1, description="Only every Nth pixel is compared.")
    scroll_ratio: float = Field(0.15, gt=0.0, le=1.0, description="Change ratio above which a frame is a scroll or cut.")
    motion_floor: float = Field(0.00005, ge=0.0, description="Change ratio that must be exceeded to count as motion.")

    @model_validator(mode="after")
    def check_ratios(self) -> "MotionConfig":
        if self.motion_floor >= self.scroll_ratio:
            raise ValueError("motion_floor must be smaller than scroll_ratio")
        return self


class TargetConfig(_Section):
    jitter_threshold: float = Field(5.0, ge=0.0, description="Deadzone radius in source pixels.")
    edge_buffer: float = Field(50.0, ge=0.0, description="Band near the left/right edge treated as 'leaving'.")
    edge_dwell_ms: float = Field(3000.0, gt=0.0, description="Edge dwell time before recentering.")


class SmoothingConfig(_Section):
    auto_alpha: float = Field(0.25, gt=0.0, le=1.0)
    manual_alpha: float = Field(1.0, gt=0.0, le=1.0)


class CropConfig(_Section):
    aspect_width: int = Field(9, gt=0)
    aspect_height: int = Field(16, gt=0)
    output_width: int = Field(720, gt=0, description="Compositor canvas width.")
    output_height: int = Field(1280, gt=0, description="Compositor canvas height.")
    preview_width: int = Field(320, gt=0, description="Width of the drag-to-pan preview.")

    @property
    def aspect(self) -> tuple[int, int]:
        return (self.aspect_width, self.aspect_height)


class AppConfig(_Section):
    mode: TrackingMode = Field(TrackingMode.AUTO_TRACK, description="Initial tracking mode.")
    paths: PathsConfig = Field(default_factory=PathsConfig)
    sampler: SamplerConfig = Field(default_factory=SamplerConfig)
    motion: MotionConfig = Field(default_factory=MotionConfig)
    target: TargetConfig = Field(default_factory=TargetConfig)
    smoothing: SmoothingConfig = Field(default_factory=SmoothingConfig)
    crop: CropConfig = Field(default_factory=CropConfig)

    @field_validator("mode", mode="before")
    @classmethod
    def parse_mode(cls, value: object) -> TrackingMode:
        return TrackingMode.parse(value)  # type: ignore[arg-type]

    @property
    def output_dir(self) -> Path:
        return self.paths.output_dir


def load_config(path: Path | str) -> AppConfig:
    """Load configuration from YAML, falling back to defaults when missing."""

    cfg_path = Path(path)
    if not cfg_path.exists():
        return AppConfig()
    data = yaml.safe_load(cfg_path.read_text()) or {}
    return AppConfig.model_validate(data)
