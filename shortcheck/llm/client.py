"""
shortcheck.llm.client - Multimodal LLM backend abstraction using litellm.

Provides a single completion call taking mixed text and image parts, so
any litellm-supported vision model can act as the compliance analyzer.
"""

from __future__ import annotations

import logging
from typing import Any

from shortcheck.config import AnalyzerSettings
from shortcheck.exceptions import AnalyzerError, AnalyzerResponseError

logger = logging.getLogger(__name__)


def text_part(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def jpeg_part(base64_data: str) -> dict[str, Any]:
    return {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{base64_data}"}}


class LLMClient:
    """LLM client wrapper for one multimodal JSON completion per call."""

    def __init__(
        self,
        model: str = "gemini/gemini-2.5-flash",
        temperature: float = 0.2,
        timeout: int = 300,
        max_tokens: int = 8192,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.max_tokens = max_tokens
        self._token_usage = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}

    def complete(self, parts: list[dict[str, Any]], console=None) -> str:
        """Send content parts to the LLM and return the text reply.

        The request is attempted once.

        Args:
            parts: OpenAI-style content parts (text and image_url)
            console: Optional rich console for output

        Returns:
            LLM response text

        Raises:
            AnalyzerError: If the request fails
            AnalyzerResponseError: If the response has no content
        """
        try:
            import litellm
        except ImportError as e:
            raise AnalyzerError("litellm not installed. Install with: pip install litellm") from e

        litellm.telemetry = False

        if console:
            console.print(f"[dim]  Calling {self.model}...[/dim]")

        try:
            response = litellm.completion(
                model=self.model,
                messages=[{"role": "user", "content": parts}],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                timeout=self.timeout,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise AnalyzerError(f"Analyzer request failed: {e}") from e

        usage = getattr(response, "usage", None)
        if usage:
            self._token_usage["prompt_tokens"] += getattr(usage, "prompt_tokens", 0) or 0
            self._token_usage["completion_tokens"] += getattr(usage, "completion_tokens", 0) or 0
            self._token_usage["total_tokens"] += getattr(usage, "total_tokens", 0) or 0

        choices = getattr(response, "choices", [])
        if not choices:
            raise AnalyzerResponseError("Empty response from LLM")

        message = getattr(choices[0], "message", None)
        if message is None:
            raise AnalyzerResponseError("No message in LLM response")

        content = getattr(message, "content", None)
        if content is None:
            raise AnalyzerResponseError("No content in LLM message")

        logger.debug("Analyzer replied with %d characters", len(content))
        return content

    def get_token_usage(self) -> dict[str, int]:
        """Get cumulative token usage."""
        return self._token_usage.copy()

    def reset_token_usage(self) -> None:
        """Reset token usage counters."""
        self._token_usage = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}


def create_client_from_settings(settings: AnalyzerSettings) -> LLMClient:
    """Create LLM client from AnalyzerSettings."""
    return LLMClient(
        model=settings.model,
        temperature=settings.temperature,
        timeout=settings.timeout,
        max_tokens=settings.max_tokens,
    )
