"""
shortcheck.transcribe.engine - Whisper transcription engine.

Uses faster-whisper (primary) or mlx-whisper on Apple Silicon. Long audio is
cut into fixed, overlapping windows; each window is recognized on its own
and the overlaps are resolved so every segment appears exactly once.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Any, Callable

import numpy as np

from shortcheck.config import TranscriptionSettings
from shortcheck.exceptions import TranscriptionError
from shortcheck.models import (
    PCM_SAMPLE_RATE,
    PcmBuffer,
    ProgressCallback,
    TranscriptChunk,
    noop_progress,
)

logger = logging.getLogger(__name__)

WindowRecognizer = Callable[[np.ndarray], list[dict[str, Any]]]

FASTER_WHISPER_FILES = [
    "config.json",
    "preprocessor_config.json",
    "model.bin",
    "tokenizer.json",
    "vocabulary.*",
]


class SpeechRecognizer:
    """Explicitly owned speech recognition capability.

    The model is loaded on first use and reused afterwards; construct one
    per process and pass it into every pipeline run.
    """

    def __init__(
        self,
        backend: str = "faster",
        model: str = "tiny",
        language: str | None = "ja",
        task: str = "transcribe",
    ) -> None:
        if backend not in {"faster", "mlx"}:
            raise TranscriptionError(f"Unknown backend: {backend}")
        self.backend = backend
        self.model = model
        self.language = language
        self.task = task
        self._recognize_window: WindowRecognizer | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: TranscriptionSettings) -> SpeechRecognizer:
        return cls(
            backend=settings.backend,
            model=settings.model,
            language=settings.language,
            task=settings.task,
        )

    @property
    def loaded(self) -> bool:
        return self._recognize_window is not None

    def load(self, on_progress: ProgressCallback = noop_progress) -> None:
        """Load the model if this recognizer has not done so yet."""
        with self._lock:
            if self._recognize_window is not None:
                return
            logger.debug("Loading %s whisper model '%s'", self.backend, self.model)
            try:
                self._recognize_window = self._load_backend(on_progress)
            except TranscriptionError:
                raise
            except Exception as e:
                raise TranscriptionError(f"Could not load speech model: {e}") from e

    def recognize(self, audio: np.ndarray) -> list[dict[str, Any]]:
        """Recognize one window of float32 audio.

        Returns:
            Segment dicts with start/end relative to the window and text
        """
        self.load()
        recognize_window = self._recognize_window
        if recognize_window is None:
            raise TranscriptionError("Speech model is not loaded")
        return recognize_window(audio)

    def _load_backend(self, on_progress: ProgressCallback) -> WindowRecognizer:
        if self.backend == "mlx":
            return self._load_mlx(on_progress)
        return self._load_faster(on_progress)

    def _load_faster(self, on_progress: ProgressCallback) -> WindowRecognizer:
        """Load a faster-whisper model, downloading it first if needed."""
        try:
            from faster_whisper import WhisperModel
        except ImportError as e:
            raise TranscriptionError(
                "faster-whisper not installed. Install with: pip install faster-whisper"
            ) from e

        model_path = self.model
        if "/" not in model_path:
            model_path = _download_model(
                f"Systran/faster-whisper-{self.model}", on_progress, FASTER_WHISPER_FILES
            )

        model_instance = WhisperModel(model_path, device="auto", compute_type="auto")

        def recognize_window(audio: np.ndarray) -> list[dict[str, Any]]:
            segments, _info = model_instance.transcribe(
                audio,
                language=self.language,
                task=self.task,
                vad_filter=True,
            )
            return [{"start": s.start, "end": s.end, "text": s.text} for s in segments]

        return recognize_window

    def _load_mlx(self, on_progress: ProgressCallback) -> WindowRecognizer:
        """Fetch the mlx-whisper weights and bind them; mlx caches the loaded model itself."""
        try:
            import mlx_whisper
        except ImportError as e:
            raise TranscriptionError(
                "mlx-whisper not installed. Install with: pip install mlx-whisper"
            ) from e

        model_path = self.model
        if "/" not in model_path:
            model_path = _download_model(f"mlx-community/whisper-{self.model}-mlx", on_progress)

        def recognize_window(audio: np.ndarray) -> list[dict[str, Any]]:
            kwargs: dict[str, Any] = {"path_or_hf_repo": model_path, "task": self.task}
            if self.language:
                kwargs["language"] = self.language
            result = mlx_whisper.transcribe(audio, **kwargs)
            return list(result.get("segments", []))

        return recognize_window


def _download_model(
    repo_id: str,
    on_progress: ProgressCallback,
    allow_patterns: list[str] | None = None,
) -> str:
    """Fetch a model snapshot, forwarding download percentage to on_progress."""
    from huggingface_hub import snapshot_download
    from tqdm.auto import tqdm

    class ProgressTqdm(tqdm):
        def update(self, n=1):
            displayed = super().update(n)
            if self.total:
                on_progress(f"Downloading speech model... {100 * self.n / self.total:.2f}%")
            return displayed

        def close(self):
            if self.total and not self.disable:
                on_progress("Downloading speech model... 100.00%")
            super().close()

    on_progress("Downloading speech model... 0.00%")
    return snapshot_download(
        repo_id,
        allow_patterns=allow_patterns,
        tqdm_class=ProgressTqdm,
    )


def plan_windows(
    duration: float,
    chunk_length: float = 30.0,
    stride_length: float = 5.0,
) -> list[tuple[float, float]]:
    """Split [0, duration) into chunk_length windows overlapping by stride_length."""
    if duration <= 0:
        return []
    step = chunk_length - stride_length
    windows = []
    start = 0.0
    while True:
        end = min(start + chunk_length, duration)
        windows.append((start, end))
        if end >= duration:
            break
        start += step
    return windows


def merge_window_segments(
    windows: list[tuple[float, float]],
    window_segments: list[list[dict[str, Any]]],
    stride_length: float = 5.0,
) -> list[TranscriptChunk]:
    """Offset per-window segments to absolute time and drop overlap duplicates.

    A window owns segments starting between the midpoints of its overlaps
    with the previous and next window.
    """
    chunks: list[TranscriptChunk] = []
    half = stride_length / 2
    last = len(windows) - 1

    for i, ((win_start, _win_end), segments) in enumerate(zip(windows, window_segments)):
        lower = win_start + half if i > 0 else -math.inf
        upper = windows[i + 1][0] + half if i < last else math.inf

        for seg in segments:
            text = (seg.get("text") or "").strip()
            if not text:
                continue
            start = win_start + float(seg.get("start") or 0.0)
            end = win_start + float(seg.get("end") or 0.0)
            if not lower <= start < upper:
                continue
            chunks.append(TranscriptChunk(start_seconds=start, end_seconds=max(end, start), text=text))

    return chunks


def is_silent(pcm: PcmBuffer, threshold: float) -> bool:
    """True when the buffer's RMS level is below threshold."""
    samples = pcm.to_float32()
    if samples.size == 0:
        return True
    rms = float(np.sqrt(np.mean(np.square(samples, dtype=np.float64))))
    return rms < threshold


def transcribe_pcm(
    pcm: PcmBuffer | None,
    recognizer: SpeechRecognizer,
    settings: TranscriptionSettings | None = None,
    on_progress: ProgressCallback = noop_progress,
) -> list[TranscriptChunk]:
    """Transcribe PCM audio into chronological transcript chunks.

    Args:
        pcm: Mono 16 kHz PCM, or None when there is no audio
        recognizer: Shared speech recognizer
        settings: Windowing and silence parameters
        on_progress: Progress message sink

    Returns:
        Transcript chunks; empty for absent or silent audio

    Raises:
        TranscriptionError: If recognition fails
    """
    settings = settings or TranscriptionSettings()

    if pcm is None or pcm.num_samples == 0:
        return []
    if is_silent(pcm, settings.silence_rms_threshold):
        logger.info("Audio is silent; skipping recognition")
        return []

    on_progress("Preparing speech recognition model...")
    recognizer.load(on_progress)

    on_progress("Transcribing audio...")
    samples = pcm.to_float32()
    windows = plan_windows(
        pcm.duration_seconds,
        settings.chunk_length_seconds,
        settings.stride_length_seconds,
    )

    try:
        window_segments = []
        for win_start, win_end in windows:
            a = int(round(win_start * PCM_SAMPLE_RATE))
            b = int(round(win_end * PCM_SAMPLE_RATE))
            window_segments.append(recognizer.recognize(samples[a:b]))
    except TranscriptionError:
        raise
    except Exception as e:
        raise TranscriptionError(f"Transcription failed: {e}") from e

    chunks = merge_window_segments(windows, window_segments, settings.stride_length_seconds)
    logger.debug("Transcribed %d chunks from %d windows", len(chunks), len(windows))
    return chunks


def format_transcript(chunks: list[TranscriptChunk]) -> str:
    """Join chunks into one line per chunk: (Ss-Es): 「text」."""
    lines = []
    for chunk in chunks:
        text = chunk.text.strip()
        if not text:
            continue
        lines.append(
            f"({math.floor(chunk.start_seconds)}s-{math.floor(chunk.end_seconds)}s): 「{text}」"
        )
    return "\n".join(lines)
