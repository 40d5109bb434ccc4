"""
shortcheck.extract - Audio extraction from video files.

Pipeline Stage 1: Extract the audio track from any container FFmpeg can
decode, producing mono 16 kHz signed 16-bit PCM for transcription.
"""

from __future__ import annotations
