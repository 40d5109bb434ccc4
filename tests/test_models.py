"""Tests for shortcheck.models module."""

from __future__ import annotations

import base64

import numpy as np
import pytest

from shortcheck.models import ExtractedContent, Keyframe, PcmBuffer, StageOutcome, StageStatus


class TestPcmBuffer:
    def test_duration(self) -> None:
        pcm = PcmBuffer(b"\x00\x00" * 16000)
        assert pcm.num_samples == 16000
        assert pcm.duration_seconds == 1.0

    def test_to_float32_range(self) -> None:
        samples = np.array([-32768, 0, 32767], dtype="<i2")
        floats = PcmBuffer(samples.tobytes()).to_float32()
        assert floats.dtype == np.float32
        assert floats[0] == -1.0
        assert floats[1] == 0.0
        assert floats[2] == pytest.approx(1.0, abs=1e-4)

    def test_odd_trailing_byte_ignored(self) -> None:
        assert PcmBuffer(b"\x01\x00\x02").to_float32().size == 1


class TestExtractedContent:
    def test_empty(self) -> None:
        assert ExtractedContent(audio_transcript="").is_empty

    def test_transcript_only_not_empty(self) -> None:
        assert not ExtractedContent(audio_transcript="(0s-1s): 「a」").is_empty

    def test_keyframes_only_not_empty(self) -> None:
        assert not ExtractedContent("", (Keyframe(0.0, b"jpg"),)).is_empty

    def test_to_dict(self) -> None:
        content = ExtractedContent("t", (Keyframe(1.5, b"jpg"),))
        data = content.to_dict()
        assert data["audioTranscript"] == "t"
        assert data["keyframes"][0]["timestamp"] == 1.5
        assert base64.b64decode(data["keyframes"][0]["base64Data"]) == b"jpg"


class TestStageOutcome:
    def test_ok(self) -> None:
        outcome = StageOutcome.ok([1])
        assert outcome.is_ok
        assert outcome.error is None

    def test_degraded_keeps_value(self) -> None:
        outcome = StageOutcome.degraded("", "recognizer failed")
        assert outcome.status is StageStatus.DEGRADED
        assert outcome.value == ""
        assert not outcome.is_ok

    def test_fatal(self) -> None:
        assert StageOutcome.fatal([], "no frame").status is StageStatus.FATAL
