"""
shortcheck.transcribe - Whisper transcription engine.

Pipeline Stage 2: Transcribe PCM audio using faster-whisper (default) or
mlx-whisper. Produces chronological, timestamped transcript chunks.
"""

from __future__ import annotations
