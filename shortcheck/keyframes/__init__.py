"""
shortcheck.keyframes - Scene-change keyframe extraction.

Pipeline Stage 3: Sample the video at a fixed rate and keep full-resolution
frames wherever the downsampled picture changes significantly.
"""

from __future__ import annotations
