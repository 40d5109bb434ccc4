"""
shortcheck.llm.templates - Prompt template loading and rendering.

Uses Jinja2 to load and render prompt templates, by default from the
prompts/ directory shipped with the package.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, Template

PROMPTS_DIR = Path(__file__).parent.parent / "prompts"

NO_AUDIO_PLACEHOLDER = "(No audio was detected)"


class PromptTemplateManager:
    """Manages loading and rendering of prompt templates."""

    def __init__(self, prompts_dir: Path = PROMPTS_DIR) -> None:
        self.prompts_dir = prompts_dir
        self.env = Environment(
            loader=FileSystemLoader(str(prompts_dir)),
            autoescape=False,
            keep_trailing_newline=True,
        )
        self._cache: dict[str, Template] = {}

    def get_template(self, name: str) -> Template:
        """Load a template by name.

        Raises:
            FileNotFoundError: If template doesn't exist
        """
        if name not in self._cache:
            template_path = self.prompts_dir / name
            if not template_path.exists():
                raise FileNotFoundError(f"Template not found: {template_path}")
            self._cache[name] = self.env.get_template(name)
        return self._cache[name]

    def render(self, template_name: str, variables: dict[str, Any]) -> str:
        """Render a template with variables."""
        template = self.get_template(template_name)
        return template.render(**variables)

    def list_templates(self) -> list[str]:
        """List available templates."""
        if not self.prompts_dir.exists():
            return []
        return [f.name for f in self.prompts_dir.glob("*.txt")]


def format_transcript_section(transcript: str) -> str:
    """Transcript text for the prompt, with a placeholder when empty."""
    return transcript.strip() or NO_AUDIO_PLACEHOLDER


def format_keyframe_label(timestamp: float) -> str:
    return f"Timestamp: {timestamp:.2f}s"
