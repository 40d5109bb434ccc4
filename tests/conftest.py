"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

import math
import os
import shutil
import struct
import wave
from pathlib import Path
from typing import Any, Callable

import numpy as np
import pytest
import yaml
from PIL import Image

from shortcheck.exceptions import MediaError
from shortcheck.media import Frame
from shortcheck.models import PCM_SAMPLE_RATE, PcmBuffer
from shortcheck.transcribe.engine import SpeechRecognizer

RED = (220, 30, 30)
BLUE = (30, 30, 220)


class FakeMediaHandle:
    """In-memory stand-in for MediaHandle that renders synthetic frames."""

    def __init__(
        self,
        duration: float,
        color_at: Callable[[float], tuple[int, int, int]],
        size: tuple[int, int] = (320, 180),
        fail_after: float | None = None,
    ) -> None:
        self.duration = duration
        self.color_at = color_at
        self.size = size
        self.fail_after = fail_after
        self.seeks: list[float] = []
        self.closed = False

    def seek(self, timestamp: float) -> Frame:
        self.seeks.append(timestamp)
        if self.fail_after is not None and timestamp >= self.fail_after:
            raise MediaError(f"decode failed at {timestamp}")
        return Frame(timestamp, Image.new("RGB", self.size, self.color_at(timestamp)))

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeMediaHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class FakeRecognizer(SpeechRecognizer):
    """SpeechRecognizer whose model is a canned list of segments per window."""

    def __init__(self, windows: list[list[dict[str, Any]]] | None = None, error: Exception | None = None):
        super().__init__(backend="faster", model="tiny", language="ja")
        self.windows = windows or []
        self.error = error
        self.load_count = 0
        self.calls: list[int] = []

    def _load_backend(self, on_progress):
        self.load_count += 1
        on_progress("Downloading speech model... 100.00%")

        def recognize_window(audio: np.ndarray) -> list[dict[str, Any]]:
            if self.error is not None:
                raise self.error
            index = len(self.calls)
            self.calls.append(len(audio))
            return self.windows[index] if index < len(self.windows) else []

        return recognize_window


def alternating_colors(period: float = 2.0) -> Callable[[float], tuple[int, int, int]]:
    return lambda t: RED if int(t // period) % 2 == 0 else BLUE


def synth_pcm(seconds: float, amplitude: float = 0.0, freq: float = 440.0) -> PcmBuffer:
    n = int(seconds * PCM_SAMPLE_RATE)
    t = np.arange(n) / PCM_SAMPLE_RATE
    samples = (amplitude * 32767 * np.sin(2 * math.pi * freq * t)).astype("<i2")
    return PcmBuffer(samples.tobytes())


def save_wav(path: Path, frames: bytes, rate: int = PCM_SAMPLE_RATE, channels: int = 1) -> Path:
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(rate)
        wav.writeframes(frames)
    return path


@pytest.fixture
def ffmpeg_tools() -> None:
    """Skip unless FFmpeg and ffprobe are on PATH."""
    if shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None:
        pytest.skip("FFmpeg not installed")


@pytest.fixture
def stub_binary(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Callable[[str, str], Path]:
    """Install a shell-script stand-in for an FFmpeg binary at the front of PATH."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")

    def install(name: str, body: str) -> Path:
        script = bin_dir / name
        script.write_text(f"#!/bin/sh\n{body}\n")
        script.chmod(0o755)
        return script

    return install


@pytest.fixture
def fake_handle() -> type[FakeMediaHandle]:
    return FakeMediaHandle


@pytest.fixture
def fake_recognizer() -> type[FakeRecognizer]:
    return FakeRecognizer


@pytest.fixture
def alternating() -> Callable[..., Callable[[float], tuple[int, int, int]]]:
    return alternating_colors


@pytest.fixture
def make_pcm() -> Callable[..., PcmBuffer]:
    return synth_pcm


@pytest.fixture
def write_wav() -> Callable[..., Path]:
    return save_wav


@pytest.fixture
def static_video() -> FakeMediaHandle:
    return FakeMediaHandle(duration=7.0, color_at=lambda t: RED)


@pytest.fixture
def alternating_video() -> FakeMediaHandle:
    return FakeMediaHandle(duration=10.0, color_at=alternating_colors(2.0))


@pytest.fixture
def silent_pcm() -> PcmBuffer:
    return synth_pcm(3.0, amplitude=0.0)


@pytest.fixture
def tone_pcm() -> PcmBuffer:
    return synth_pcm(3.0, amplitude=0.3)


@pytest.fixture
def tone_wav(tmp_path: Path) -> Path:
    frames = b"".join(struct.pack("<h", int(8000 * math.sin(i / 10))) for i in range(1600))
    return save_wav(tmp_path / "tone.wav", frames)


@pytest.fixture
def sample_config_dict() -> dict:
    """Return a sample configuration dictionary."""
    return {
        "keyframes": {
            "sample_rate_hz": 5.0,
            "change_threshold": 15.0,
            "min_gap_seconds": 1.0,
            "jpeg_quality": 80,
        },
        "transcription": {
            "backend": "faster",
            "model": "tiny",
            "language": "ja",
        },
        "analyzer": {
            "model": "gemini/gemini-2.5-flash",
            "temperature": 0.2,
        },
    }


@pytest.fixture
def config_file(tmp_path: Path, sample_config_dict: dict) -> Path:
    path = tmp_path / "shortcheck.yaml"
    with open(path, "w") as f:
        yaml.dump(sample_config_dict, f)
    return path


@pytest.fixture
def sample_analysis_json() -> str:
    return """{
      "overallScore": 62,
      "overallComment": "Needs revision of efficacy claims.",
      "issues": [
        {"timestamp": 8.4, "originalText": "シミが消える", "problem": "Unapproved efficacy claim", "suggestion": "肌を整える"},
        {"timestamp": 2.0, "originalText": "No.1", "problem": "Unsupported superlative", "suggestion": "Remove ranking"}
      ]
    }"""
