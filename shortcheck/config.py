"""
shortcheck.config - YAML config loading and validation.

Handles loading shortcheck.yaml, applying defaults, and validating all
pipeline parameters. The scene-change threshold and sampling rate are
empirical; keep the defaults unless a clip set shows them miscalibrated.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from shortcheck.exceptions import ConfigError

CONFIG_FILENAME = "shortcheck.yaml"


class KeyframeSettings(BaseModel):
    """Parameters for scene-change keyframe extraction."""

    sample_rate_hz: float = Field(default=5.0, gt=0.0)
    change_threshold: float = Field(default=15.0, ge=0.0, le=255.0)
    min_gap_seconds: float = Field(default=1.0, ge=0.0)
    downsample_width: int = Field(default=64, gt=0)
    downsample_height: int = Field(default=36, gt=0)
    jpeg_quality: int = Field(default=80, ge=1, le=95)

    @property
    def downsample_size(self) -> tuple[int, int]:
        return (self.downsample_width, self.downsample_height)


class TranscriptionSettings(BaseModel):
    """Parameters for the speech recognizer and its windowing."""

    backend: str = "faster"
    model: str = "tiny"
    language: str = "ja"
    task: str = "transcribe"
    chunk_length_seconds: float = Field(default=30.0, gt=0.0)
    stride_length_seconds: float = Field(default=5.0, ge=0.0)
    silence_rms_threshold: float = Field(default=0.001, ge=0.0)

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        valid = {"faster", "mlx"}
        if v not in valid:
            raise ValueError(f"backend must be one of: {valid}")
        return v

    @field_validator("task")
    @classmethod
    def validate_task(cls, v: str) -> str:
        if v != "transcribe":
            raise ValueError("task must be 'transcribe'")
        return v

    @model_validator(mode="after")
    def validate_stride(self) -> "TranscriptionSettings":
        if self.stride_length_seconds * 2 >= self.chunk_length_seconds:
            raise ValueError("stride_length_seconds must be less than half of chunk_length_seconds")
        return self


class AnalyzerSettings(BaseModel):
    """Parameters for the compliance analyzer call."""

    model: str = "gemini/gemini-2.5-flash"
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    timeout: int = Field(default=300, gt=0)
    max_tokens: int = Field(default=8192, gt=0)


class ShortcheckConfig(BaseModel):
    """Resolved configuration for a Shortcheck run."""

    keyframes: KeyframeSettings = Field(default_factory=KeyframeSettings)
    transcription: TranscriptionSettings = Field(default_factory=TranscriptionSettings)
    analyzer: AnalyzerSettings = Field(default_factory=AnalyzerSettings)

    config_path: Path | None = None


def load_config(path: Path | None = None) -> ShortcheckConfig:
    """Load and validate configuration.

    Args:
        path: Path to a shortcheck.yaml file; None returns built-in defaults

    Returns:
        Validated ShortcheckConfig

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    if path is None:
        return ShortcheckConfig()

    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")

    raw_config["config_path"] = path
    try:
        return ShortcheckConfig(**raw_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e


def find_config(start: Path | None = None) -> Path | None:
    """Find shortcheck.yaml in the given directory or any parent."""
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


def create_default_config() -> dict[str, Any]:
    """Create a default config dict for a new shortcheck.yaml."""
    return ShortcheckConfig().model_dump(exclude={"config_path"})


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
