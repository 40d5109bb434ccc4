"""
shortcheck.llm.parsing - Analyzer output JSON parsing with validation.

Handles parsing LLM responses into structured JSON with error recovery.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError

from shortcheck.exceptions import AnalyzerResponseError
from shortcheck.models import AnalysisResult


def extract_json_from_response(response: str) -> str:
    """Extract JSON from LLM response with multiple strategies.

    Args:
        response: Raw LLM response text

    Returns:
        Extracted JSON string

    Raises:
        AnalyzerResponseError: If no JSON found
    """
    text = response.strip()

    # Remove markdown code blocks
    if "```" in text:
        text = re.sub(r"```json\s*", "", text)
        text = re.sub(r"```\s*", "", text)
        text = text.strip()

    json_match = re.search(r"\{[\s\S]*\}", text)
    if json_match:
        return json_match.group(0)

    raise AnalyzerResponseError("No JSON object found in response")


def repair_json(text: str) -> str:
    """Attempt to repair common JSON issues.

    Args:
        text: JSON string with potential issues

    Returns:
        Repaired JSON string
    """
    # Remove trailing commas before } or ]
    text = re.sub(r",(\s*[}\]])", r"\1", text)

    open_braces = text.count("{")
    close_braces = text.count("}")
    open_brackets = text.count("[")
    close_brackets = text.count("]")

    if open_brackets > close_brackets:
        text += "]" * (open_brackets - close_brackets)
    if open_braces > close_braces:
        text += "}" * (open_braces - close_braces)

    return text


def parse_llm_json(response: str) -> dict[str, Any]:
    """Parse JSON from LLM response with error recovery.

    Handles markdown code fences, trailing commas, missing closing braces
    and text before/after the JSON object.

    Raises:
        AnalyzerResponseError: If parsing fails
    """
    text = extract_json_from_response(response)

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    repaired = repair_json(text)
    try:
        return json.loads(repaired)
    except json.JSONDecodeError:
        pass

    raise AnalyzerResponseError(
        f"Failed to parse analyzer response as JSON after repair attempts.\n\n"
        f"Response (first 500 chars):\n{text[:500]}"
    )


def validate_analysis_response(data: dict[str, Any]) -> AnalysisResult:
    """Validate an analyzer verdict and sort its issues by timestamp.

    Raises:
        AnalyzerResponseError: If required fields are missing or out of range
    """
    try:
        result = AnalysisResult.model_validate(data)
    except ValidationError as e:
        raise AnalyzerResponseError(f"Analyzer response failed validation: {e}") from e
    result.issues.sort(key=lambda issue: issue.timestamp)
    return result
