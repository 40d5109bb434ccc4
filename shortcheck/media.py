"""
shortcheck.media - Owned decode context over one input video.

Wraps ffprobe/ffmpeg behind a synchronous seek(t) -> Frame call. Each seek
runs one ffmpeg process to completion, so there is never more than one seek
in flight on a handle.
"""

from __future__ import annotations

import io
import json
import logging
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from PIL import Image

from shortcheck.exceptions import DependencyError, MediaError

logger = logging.getLogger(__name__)

FFMPEG_INSTALL_HINT = "Install FFmpeg (e.g. 'brew install ffmpeg' or 'apt install ffmpeg')"


@dataclass(frozen=True)
class MediaInfo:
    duration_seconds: float = 0.0
    width: int | None = None
    height: int | None = None
    has_video: bool = False
    has_audio: bool = False


@dataclass(frozen=True)
class Frame:
    timestamp_seconds: float
    image: Image.Image


def require_binary(name: str) -> str:
    """Return the full path of an FFmpeg tool or raise DependencyError."""
    found = shutil.which(name)
    if not found:
        raise DependencyError(name, "not found on PATH", install_hint=FFMPEG_INSTALL_HINT)
    return found


def check_ffmpeg() -> dict[str, str]:
    """Check that FFmpeg and FFprobe are installed and get their versions.

    Raises:
        DependencyError: If either binary is missing
    """
    versions = {}
    for name in ("ffmpeg", "ffprobe"):
        binary = require_binary(name)
        try:
            proc = subprocess.run(
                [binary, "-version"],
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=5,
            )
            first_line = proc.stdout.splitlines()[0] if proc.stdout else "unknown"
        except (OSError, subprocess.TimeoutExpired):
            first_line = "unknown"
        versions[f"{name}_version"] = first_line
    return versions


def encode_jpeg(image: Image.Image, quality: int = 80) -> bytes:
    """Encode an image as JPEG bytes."""
    buf = io.BytesIO()
    image.convert("RGB").save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def parse_probe_output(data: dict[str, Any]) -> MediaInfo:
    """Build MediaInfo from ffprobe's JSON output."""
    video_stream = None
    audio_stream = None
    for stream in data.get("streams", []):
        if stream.get("codec_type") == "video" and video_stream is None:
            video_stream = stream
        elif stream.get("codec_type") == "audio" and audio_stream is None:
            audio_stream = stream

    format_info = data.get("format", {})
    duration = _to_float(format_info.get("duration"))
    if duration is None and video_stream:
        duration = _to_float(video_stream.get("duration"))

    width = height = None
    if video_stream:
        width = video_stream.get("width")
        height = video_stream.get("height")

    return MediaInfo(
        duration_seconds=max(duration or 0.0, 0.0),
        width=width,
        height=height,
        has_video=video_stream is not None,
        has_audio=audio_stream is not None,
    )


def _to_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def probe_media(path: Path, ffprobe: str = "ffprobe") -> MediaInfo:
    """Probe a media file for duration and streams using ffprobe.

    An unreadable file is not an error here: it probes as empty so that
    callers can still attempt extraction and report what they got.
    """
    cmd = [
        ffprobe,
        "-v",
        "quiet",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
        str(path),
    ]
    result = subprocess.run(cmd, capture_output=True, encoding="utf-8", errors="replace")
    if result.returncode != 0:
        logger.warning("ffprobe failed for %s: %s", path, result.stderr.strip())
        return MediaInfo()
    try:
        data = json.loads(result.stdout or "{}")
    except json.JSONDecodeError:
        logger.warning("ffprobe returned invalid JSON for %s", path)
        return MediaInfo()
    return parse_probe_output(data)


class MediaHandle:
    """Exclusively owned decode context bound to one input file.

    Use as a context manager; the scratch copy of an in-memory input is
    removed on close. Closing twice is a no-op.
    """

    def __init__(self, path: Path, *, scratch_dir: tempfile.TemporaryDirectory | None = None) -> None:
        self._scratch_dir = scratch_dir
        self._closed = False
        try:
            if not path.exists():
                raise MediaError(f"Input file not found: {path}")
            self._ffmpeg = require_binary("ffmpeg")
            self._ffprobe = require_binary("ffprobe")
        except DependencyError as e:
            self.close()
            raise MediaError(f"Cannot create decode context: {e}") from e
        except MediaError:
            self.close()
            raise
        self.path = path
        self.info = probe_media(path, self._ffprobe)
        logger.debug("Opened %s: %s", path, self.info)

    @classmethod
    def from_bytes(cls, data: bytes, filename: str = "input.mp4") -> MediaHandle:
        """Create a handle over an in-memory video by spilling it to scratch space."""
        scratch = tempfile.TemporaryDirectory(prefix="shortcheck-")
        path = Path(scratch.name) / Path(filename).name
        try:
            path.write_bytes(data)
        except OSError as e:
            scratch.cleanup()
            raise MediaError(f"Cannot write input to scratch space: {e}") from e
        return cls(path, scratch_dir=scratch)

    @property
    def duration(self) -> float:
        return self.info.duration_seconds

    @property
    def closed(self) -> bool:
        return self._closed

    def seek(self, timestamp: float) -> Frame:
        """Decode the full-resolution frame at timestamp; blocks until done.

        Raises:
            MediaError: If the handle is closed or no frame could be decoded
        """
        if self._closed:
            raise MediaError("Media handle is closed")
        if timestamp < 0:
            raise MediaError(f"Cannot seek to negative time {timestamp}")

        cmd = [
            self._ffmpeg,
            "-hide_banner",
            "-v",
            "error",
            "-ss",
            f"{timestamp:.3f}",
            "-i",
            str(self.path),
            "-an",
            "-frames:v",
            "1",
            "-c:v",
            "png",
            "-f",
            "image2pipe",
            "pipe:1",
        ]
        proc = subprocess.run(cmd, capture_output=True)
        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise MediaError(f"Seek to {timestamp:.2f}s failed: {stderr}")
        if not proc.stdout:
            raise MediaError(f"No frame decoded at {timestamp:.2f}s")

        try:
            image = Image.open(io.BytesIO(proc.stdout))
            image.load()
        except OSError as e:
            raise MediaError(f"Undecodable frame at {timestamp:.2f}s: {e}") from e
        return Frame(timestamp_seconds=timestamp, image=image.convert("RGB"))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._scratch_dir is not None:
            self._scratch_dir.cleanup()
            self._scratch_dir = None

    def __enter__(self) -> MediaHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
