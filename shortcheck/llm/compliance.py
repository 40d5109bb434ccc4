"""
shortcheck.llm.compliance - Compliance review of extracted content.

Builds the multimodal request (instructions, transcript, then each keyframe
preceded by its timestamp), calls the analyzer and validates the verdict.
"""

from __future__ import annotations

from typing import Any

from shortcheck.exceptions import NoContentError
from shortcheck.llm.client import LLMClient, jpeg_part, text_part
from shortcheck.llm.parsing import parse_llm_json, validate_analysis_response
from shortcheck.llm.templates import (
    PromptTemplateManager,
    format_keyframe_label,
    format_transcript_section,
)
from shortcheck.models import AnalysisResult, ExtractedContent

COMPLIANCE_TEMPLATE = "compliance.txt"


def build_request_parts(
    content: ExtractedContent,
    instructions: str = "",
    output_language: str = "Japanese",
    templates: PromptTemplateManager | None = None,
) -> list[dict[str, Any]]:
    """Build the ordered content parts sent to the analyzer."""
    templates = templates or PromptTemplateManager()
    prompt = templates.render(
        COMPLIANCE_TEMPLATE,
        {
            "transcript": format_transcript_section(content.audio_transcript),
            "keyframe_count": len(content.keyframes),
            "instructions": instructions.strip(),
            "output_language": output_language,
        },
    )

    parts = [text_part(prompt)]
    for keyframe in content.keyframes:
        parts.append(text_part(format_keyframe_label(keyframe.timestamp_seconds)))
        parts.append(jpeg_part(keyframe.to_base64()))
    return parts


def analyze_content(
    content: ExtractedContent,
    client: LLMClient,
    instructions: str = "",
    output_language: str = "Japanese",
    console=None,
) -> AnalysisResult:
    """Ask the analyzer for a compliance verdict on extracted content.

    Args:
        content: Output of the extraction pipeline
        client: Configured LLM client
        instructions: Free-text instructions appended to the prompt
        output_language: Language for the verdict's free-text fields
        console: Optional rich console for output

    Returns:
        Validated AnalysisResult with issues sorted by timestamp

    Raises:
        NoContentError: If content has neither transcript nor keyframes
        AnalyzerError: If the call fails or the reply is invalid
    """
    if content.is_empty:
        raise NoContentError("Refusing to analyze: no transcript and no keyframes.")

    parts = build_request_parts(content, instructions, output_language)
    response = client.complete(parts, console=console)
    return validate_analysis_response(parse_llm_json(response))
