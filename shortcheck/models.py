"""
shortcheck.models - Value types passed between pipeline stages.

Core values are frozen dataclasses; the analyzer reply is validated with
pydantic because it comes from an external service.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

import numpy as np
from pydantic import BaseModel, Field

ProgressCallback = Callable[[str], None]

PCM_SAMPLE_RATE = 16000
PCM_SAMPLE_WIDTH = 2

T = TypeVar("T")


def noop_progress(message: str) -> None:
    pass


@dataclass(frozen=True)
class PcmBuffer:
    """Mono 16 kHz signed 16-bit little-endian samples."""

    data: bytes
    sample_rate: int = PCM_SAMPLE_RATE

    @property
    def num_samples(self) -> int:
        return len(self.data) // PCM_SAMPLE_WIDTH

    @property
    def duration_seconds(self) -> float:
        return self.num_samples / self.sample_rate

    def to_float32(self) -> np.ndarray:
        """Samples as float32 in [-1.0, 1.0], the layout Whisper backends expect."""
        usable = self.num_samples * PCM_SAMPLE_WIDTH
        samples = np.frombuffer(self.data[:usable], dtype="<i2")
        return samples.astype(np.float32) / 32768.0


@dataclass(frozen=True)
class TranscriptChunk:
    start_seconds: float
    end_seconds: float
    text: str


@dataclass(frozen=True)
class Keyframe:
    """A full-resolution frame selected at a scene change, JPEG-encoded."""

    timestamp_seconds: float
    image: bytes = field(repr=False)

    def to_base64(self) -> str:
        return base64.b64encode(self.image).decode("ascii")


@dataclass(frozen=True)
class ExtractedContent:
    """Everything handed to the compliance analyzer for one video."""

    audio_transcript: str
    keyframes: tuple[Keyframe, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.audio_transcript and not self.keyframes

    def to_dict(self) -> dict[str, Any]:
        return {
            "audioTranscript": self.audio_transcript,
            "keyframes": [
                {"timestamp": kf.timestamp_seconds, "base64Data": kf.to_base64()}
                for kf in self.keyframes
            ],
        }


class StageStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FATAL = "fatal"


@dataclass(frozen=True)
class StageOutcome(Generic[T]):
    """Result of one pipeline stage.

    A degraded outcome still carries a usable (possibly empty) value; a
    fatal one means the stage produced nothing at all.
    """

    status: StageStatus
    value: T
    error: str | None = None

    @classmethod
    def ok(cls, value: T) -> StageOutcome[T]:
        return cls(StageStatus.OK, value)

    @classmethod
    def degraded(cls, value: T, error: str) -> StageOutcome[T]:
        return cls(StageStatus.DEGRADED, value, error)

    @classmethod
    def fatal(cls, value: T, error: str) -> StageOutcome[T]:
        return cls(StageStatus.FATAL, value, error)

    @property
    def is_ok(self) -> bool:
        return self.status is StageStatus.OK


class Issue(BaseModel):
    """One potential compliance problem reported by the analyzer."""

    timestamp: float = Field(ge=0.0)
    originalText: str
    problem: str
    suggestion: str


class AnalysisResult(BaseModel):
    """Analyzer verdict for one video."""

    overallScore: int = Field(ge=0, le=100)
    overallComment: str
    issues: list[Issue] = Field(default_factory=list)
