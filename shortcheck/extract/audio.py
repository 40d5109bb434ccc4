"""
shortcheck.extract.audio - FFmpeg audio extraction.

Transcodes the audio track of a video into mono 16 kHz 16-bit PCM. Any
failure here means "no audio" to the pipeline, never an abort.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
import wave
from pathlib import Path

from shortcheck.exceptions import DependencyError, ExtractionError
from shortcheck.media import MediaHandle, require_binary
from shortcheck.models import (
    PCM_SAMPLE_RATE,
    PCM_SAMPLE_WIDTH,
    PcmBuffer,
    ProgressCallback,
    noop_progress,
)

logger = logging.getLogger(__name__)


def build_extract_command(ffmpeg: str, source_path: Path, output_path: Path) -> list[str]:
    """FFmpeg argv producing a mono 16 kHz s16le WAV."""
    return [
        ffmpeg,
        "-y",
        "-hide_banner",
        "-i",
        str(source_path),
        "-vn",
        "-acodec",
        "pcm_s16le",
        "-ar",
        str(PCM_SAMPLE_RATE),
        "-ac",
        "1",
        str(output_path),
    ]


def run_ffmpeg_extract(source_path: Path, output_path: Path, ffmpeg: str = "ffmpeg") -> None:
    """Extract audio from a video file using FFmpeg.

    Args:
        source_path: Path to source video file
        output_path: Output path for the 16kHz mono WAV

    Raises:
        ExtractionError: If FFmpeg fails
    """
    if not source_path.exists():
        raise ExtractionError(f"Source file not found: {source_path}")

    try:
        proc = subprocess.run(
            build_extract_command(ffmpeg, source_path, output_path),
            capture_output=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        raise ExtractionError(f"Could not run FFmpeg: {e}") from e

    if proc.returncode != 0:
        raise ExtractionError(f"FFmpeg 16kHz extraction failed: {proc.stderr.strip()}")
    if not output_path.exists():
        raise ExtractionError("FFmpeg produced no output file")


def read_pcm_wav(path: Path) -> PcmBuffer:
    """Read a mono 16 kHz 16-bit WAV into a PcmBuffer.

    Raises:
        ExtractionError: If the file is unreadable or in the wrong format
    """
    try:
        with wave.open(str(path), "rb") as wav:
            channels = wav.getnchannels()
            sample_width = wav.getsampwidth()
            sample_rate = wav.getframerate()
            frames = wav.readframes(wav.getnframes())
    except (wave.Error, EOFError, OSError) as e:
        raise ExtractionError(f"Could not read WAV output: {e}") from e

    if channels != 1 or sample_width != PCM_SAMPLE_WIDTH or sample_rate != PCM_SAMPLE_RATE:
        raise ExtractionError(
            f"Unexpected PCM format: {channels}ch {sample_width * 8}bit {sample_rate}Hz"
        )
    return PcmBuffer(data=frames, sample_rate=sample_rate)


def extract_audio(
    source: MediaHandle | Path | bytes,
    on_progress: ProgressCallback = noop_progress,
    filename: str = "input.mp4",
) -> PcmBuffer | None:
    """Extract the audio track as PCM, or None when there is no usable audio.

    Scratch files are removed on return whatever the outcome.

    Args:
        source: Open media handle, path to a video, or the video bytes
        on_progress: Progress message sink
        filename: Name used for in-memory input inside scratch space

    Returns:
        PcmBuffer, or None if the video has no decodable audio
    """
    if isinstance(source, MediaHandle) and source.info.duration_seconds > 0 and not source.info.has_audio:
        on_progress("No audio track found.")
        logger.info("No audio stream in %s", source.path)
        return None

    try:
        on_progress("Initializing FFmpeg...")
        ffmpeg = require_binary("ffmpeg")

        with tempfile.TemporaryDirectory(prefix="shortcheck-audio-") as scratch:
            scratch_dir = Path(scratch)

            on_progress("Loading video into memory...")
            if isinstance(source, MediaHandle):
                source_path = source.path
            elif isinstance(source, bytes):
                source_path = scratch_dir / Path(filename).name
                source_path.write_bytes(source)
            else:
                source_path = source

            on_progress("Extracting and converting audio track...")
            output_path = scratch_dir / "output.wav"
            run_ffmpeg_extract(source_path, output_path, ffmpeg)

            on_progress("Reading audio data...")
            pcm = read_pcm_wav(output_path)

    except (ExtractionError, DependencyError, OSError) as e:
        logger.warning("Audio extraction failed: %s", e)
        return None

    if pcm.num_samples == 0:
        logger.info("Audio track is empty")
        return None

    logger.debug("Extracted %.2fs of audio", pcm.duration_seconds)
    return pcm
