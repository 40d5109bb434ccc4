"""
shortcheck.exceptions - Custom exception classes.

All Shortcheck-specific exceptions inherit from ShortcheckError.
"""


class ShortcheckError(Exception):
    """Base exception for all Shortcheck errors."""

    pass


class ConfigError(ShortcheckError):
    """Configuration loading or validation error."""

    pass


class MediaError(ShortcheckError):
    """Decode context could not be created or used."""

    pass


class ExtractionError(ShortcheckError):
    """Audio extraction error."""

    pass


class TranscriptionError(ShortcheckError):
    """Transcription error."""

    pass


class KeyframeError(ShortcheckError):
    """Not even the first keyframe could be captured."""

    pass


class NoContentError(ShortcheckError):
    """Neither a transcript nor any keyframe could be extracted."""

    pass


class AnalyzerError(ShortcheckError):
    """Compliance analyzer backend or prompt error."""

    pass


class AnalyzerResponseError(AnalyzerError):
    """Analyzer returned malformed or unexpected response."""

    pass


class DependencyError(ShortcheckError):
    """Required dependency missing or misconfigured."""

    def __init__(self, dependency: str, message: str, install_hint: str | None = None):
        self.dependency = dependency
        self.message = message
        self.install_hint = install_hint
        super().__init__(f"{dependency}: {message}")
