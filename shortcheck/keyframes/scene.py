"""
shortcheck.keyframes.scene - Scene-change keyframe selection.

Walks the video forward at a fixed sampling rate, compares each sample's
downsampled RGB against the last accepted keyframe (mean absolute
difference, 0-255 scale) and keeps a full-resolution JPEG when the change
exceeds the threshold and the minimum gap has elapsed. Frame 0 is always
kept.
"""

from __future__ import annotations

import logging
import threading

import numpy as np
from PIL import Image

from shortcheck.config import KeyframeSettings
from shortcheck.exceptions import KeyframeError, MediaError
from shortcheck.media import MediaHandle, encode_jpeg
from shortcheck.models import Keyframe, ProgressCallback, noop_progress

logger = logging.getLogger(__name__)


def downsample(image: Image.Image, size: tuple[int, int] = (64, 36)) -> np.ndarray:
    """Bilinear downsample to size, as an int16 (h, w, 3) array."""
    small = image.convert("RGB").resize(size, Image.BILINEAR)
    return np.asarray(small, dtype=np.int16)


def frame_difference(reference: np.ndarray, current: np.ndarray) -> float:
    """Mean absolute per-channel difference between two downsampled frames."""
    if reference.shape != current.shape:
        raise ValueError(f"Shape mismatch: {reference.shape} vs {current.shape}")
    return float(np.abs(current - reference).sum()) / current.size


def sample_times(duration: float, sample_rate_hz: float = 5.0) -> list[float]:
    """Sampling clock after frame 0: k/rate for k >= 1 while below duration."""
    if duration <= 0:
        return []
    step = 1.0 / sample_rate_hz
    times = []
    k = 1
    while True:
        t = round(k * step, 6)
        if t >= duration:
            break
        times.append(t)
        k += 1
    return times


def extract_keyframes(
    handle: MediaHandle,
    settings: KeyframeSettings | None = None,
    on_progress: ProgressCallback = noop_progress,
    cancel: threading.Event | None = None,
) -> list[Keyframe]:
    """Select visually distinct keyframes from a video.

    Args:
        handle: Open media handle; only seek() and duration are used
        settings: Sampling rate, threshold, minimum gap and image parameters
        on_progress: Progress message sink
        cancel: Checked before every seek; when set, sampling stops early

    Returns:
        Keyframes in increasing time order, always starting at 0

    Raises:
        KeyframeError: If the first frame cannot be captured
    """
    settings = settings or KeyframeSettings()
    size = settings.downsample_size

    on_progress("Preparing keyframe extraction...")
    try:
        first = handle.seek(0.0)
        first_jpeg = encode_jpeg(first.image, settings.jpeg_quality)
    except (MediaError, OSError) as e:
        raise KeyframeError(f"Could not capture first frame: {e}") from e

    keyframes = [Keyframe(timestamp_seconds=0.0, image=first_jpeg)]
    reference = downsample(first.image, size)
    last_keyframe_time = 0.0

    duration = handle.duration
    total = round(duration)
    last_reported = -1

    for t in sample_times(duration, settings.sample_rate_hz):
        if cancel is not None and cancel.is_set():
            logger.info("Keyframe extraction cancelled at %.2fs", t)
            break

        whole = int(t)
        if whole != last_reported:
            on_progress(f"Extracting keyframes... ({round(t)}s / {total}s)")
            last_reported = whole

        try:
            frame = handle.seek(t)
            current = downsample(frame.image, size)
        except (MediaError, OSError) as e:
            logger.warning("Stopping keyframe scan at %.2fs: %s", t, e)
            on_progress(f"Frame decode failed at {t:.1f}s, keeping {len(keyframes)} keyframe(s).")
            break

        score = frame_difference(reference, current)
        if score > settings.change_threshold and t - last_keyframe_time > settings.min_gap_seconds:
            try:
                jpeg = encode_jpeg(frame.image, settings.jpeg_quality)
            except OSError as e:
                logger.warning("Could not encode keyframe at %.2fs: %s", t, e)
                break
            keyframes.append(Keyframe(timestamp_seconds=t, image=jpeg))
            reference = current
            last_keyframe_time = t
            logger.debug("Keyframe at %.2fs (score %.1f)", t, score)
            on_progress(
                f"Extracting keyframes... ({round(t)}s / {total}s, {len(keyframes)} found)"
            )

    return keyframes
