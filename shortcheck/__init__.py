"""
Shortcheck - short video feature extraction for compliance review.

Takes a short video and produces a compact summary of its content through
a four-stage pipeline: audio extraction → transcription → scene-change
keyframe extraction → assembly, ready to hand to a compliance analyzer.
"""

__version__ = "0.1.0"
