"""
shortcheck.pipeline - Extraction pipeline orchestration.

Runs audio extraction, transcription and keyframe extraction in a fixed
order over one media handle. A failing stage degrades its own output and
the run continues; only a run that produces neither a transcript nor a
keyframe is an error.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from pathlib import Path

from shortcheck.config import KeyframeSettings, ShortcheckConfig, TranscriptionSettings
from shortcheck.exceptions import KeyframeError, NoContentError, TranscriptionError
from shortcheck.extract.audio import extract_audio
from shortcheck.keyframes.scene import extract_keyframes
from shortcheck.media import MediaHandle
from shortcheck.models import (
    ExtractedContent,
    Keyframe,
    PcmBuffer,
    ProgressCallback,
    StageOutcome,
    noop_progress,
)
from shortcheck.transcribe.engine import SpeechRecognizer, format_transcript, transcribe_pcm

logger = logging.getLogger(__name__)

NO_CONTENT_MESSAGE = (
    "No content extracted: the video yielded neither an audio transcript nor any keyframe."
)


class PipelineState(str, Enum):
    IDLE = "idle"
    EXTRACTING_AUDIO = "extracting_audio"
    TRANSCRIBING = "transcribing"
    EXTRACTING_KEYFRAMES = "extracting_keyframes"
    ASSEMBLING = "assembling"
    DONE = "done"


class VideoPipeline:
    """One extraction run over one video.

    The pipeline owns the media handle it opens and closes it exactly once,
    whichever stages ran.
    """

    def __init__(
        self,
        recognizer: SpeechRecognizer,
        config: ShortcheckConfig | None = None,
        on_progress: ProgressCallback = noop_progress,
        cancel: threading.Event | None = None,
    ) -> None:
        self.recognizer = recognizer
        self.config = config or ShortcheckConfig()
        self.on_progress = on_progress
        self.cancel = cancel
        self.state = PipelineState.IDLE
        self.outcomes: dict[PipelineState, StageOutcome] = {}

    @property
    def keyframe_settings(self) -> KeyframeSettings:
        return self.config.keyframes

    @property
    def transcription_settings(self) -> TranscriptionSettings:
        return self.config.transcription

    def run(self, source: bytes | Path, filename: str = "input.mp4") -> ExtractedContent:
        """Extract transcript and keyframes from a video.

        Args:
            source: Video bytes or a path to the video file
            filename: Original file name, used for in-memory input

        Returns:
            ExtractedContent with a transcript, keyframes, or both

        Raises:
            MediaError: If the decode context cannot be created
            NoContentError: If both transcript and keyframes are empty
        """
        self.outcomes = {}
        if isinstance(source, bytes):
            handle = MediaHandle.from_bytes(source, filename)
        else:
            handle = MediaHandle(Path(source))

        try:
            with handle:
                self._set_state(PipelineState.EXTRACTING_AUDIO)
                audio = self._audio_stage(handle)

                transcript = ""
                if audio.value is not None:
                    self._set_state(PipelineState.TRANSCRIBING)
                    transcript = self._transcription_stage(audio.value).value

                self._set_state(PipelineState.EXTRACTING_KEYFRAMES)
                keyframes = self._keyframe_stage(handle).value
        except Exception:
            self._set_state(PipelineState.DONE)
            raise

        self._set_state(PipelineState.ASSEMBLING)
        self.on_progress("Assembling analysis input...")
        content = ExtractedContent(audio_transcript=transcript, keyframes=tuple(keyframes))
        self._set_state(PipelineState.DONE)

        if content.is_empty:
            raise NoContentError(NO_CONTENT_MESSAGE)
        return content

    def _set_state(self, state: PipelineState) -> None:
        logger.debug("Pipeline state: %s -> %s", self.state.value, state.value)
        self.state = state

    def _record(self, stage: PipelineState, outcome: StageOutcome) -> StageOutcome:
        self.outcomes[stage] = outcome
        if outcome.error:
            logger.warning("%s %s: %s", stage.value, outcome.status.value, outcome.error)
        return outcome

    def _audio_stage(self, handle: MediaHandle) -> StageOutcome[PcmBuffer | None]:
        pcm = extract_audio(handle, self.on_progress)
        if pcm is None:
            self.on_progress("No usable audio found, continuing with video only.")
            return self._record(
                PipelineState.EXTRACTING_AUDIO,
                StageOutcome.degraded(None, "no usable audio track"),
            )
        return self._record(PipelineState.EXTRACTING_AUDIO, StageOutcome.ok(pcm))

    def _transcription_stage(self, pcm: PcmBuffer) -> StageOutcome[str]:
        try:
            chunks = transcribe_pcm(
                pcm,
                self.recognizer,
                self.transcription_settings,
                self.on_progress,
            )
        except TranscriptionError as e:
            self.on_progress("Audio processing failed, continuing with video only.")
            return self._record(PipelineState.TRANSCRIBING, StageOutcome.degraded("", str(e)))
        return self._record(PipelineState.TRANSCRIBING, StageOutcome.ok(format_transcript(chunks)))

    def _keyframe_stage(self, handle: MediaHandle) -> StageOutcome[list[Keyframe]]:
        try:
            keyframes = extract_keyframes(
                handle,
                self.keyframe_settings,
                self.on_progress,
                self.cancel,
            )
        except KeyframeError as e:
            self.on_progress("Keyframe extraction failed.")
            return self._record(PipelineState.EXTRACTING_KEYFRAMES, StageOutcome.fatal([], str(e)))
        return self._record(PipelineState.EXTRACTING_KEYFRAMES, StageOutcome.ok(keyframes))


def process_video(
    source: bytes | Path,
    recognizer: SpeechRecognizer,
    config: ShortcheckConfig | None = None,
    on_progress: ProgressCallback = noop_progress,
    cancel: threading.Event | None = None,
    filename: str = "input.mp4",
) -> ExtractedContent:
    """Run the full extraction pipeline on one video.

    See VideoPipeline.run for arguments and errors.
    """
    pipeline = VideoPipeline(recognizer, config, on_progress, cancel)
    return pipeline.run(source, filename)
