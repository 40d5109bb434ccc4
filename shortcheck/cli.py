"""
shortcheck.cli - Typer CLI entry point.

Provides all subcommands for the Shortcheck pipeline.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from shortcheck import __version__
from shortcheck.config import (
    CONFIG_FILENAME,
    ShortcheckConfig,
    create_default_config,
    find_config,
    load_config,
    write_config,
)
from shortcheck.exceptions import ShortcheckError
from shortcheck.logging import configure_logging
from shortcheck.models import ExtractedContent
from shortcheck.utils import format_duration, format_size

app = typer.Typer(
    name="shortcheck",
    help="Short video compliance toolkit.\n\n"
    "Extracts a transcript and scene-change keyframes from a short video and "
    "asks a multimodal LLM to review them for advertising compliance.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"shortcheck {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Shortcheck - short video compliance toolkit."""
    pass


def resolve_config(config_path: str | None) -> ShortcheckConfig:
    """Load an explicit config file, else the nearest shortcheck.yaml, else defaults."""
    if config_path:
        return load_config(Path(config_path))
    return load_config(find_config())


def run_extraction(video: Path, config: ShortcheckConfig) -> ExtractedContent:
    """Run the extraction pipeline with a live status line."""
    from shortcheck.pipeline import process_video
    from shortcheck.transcribe.engine import SpeechRecognizer

    recognizer = SpeechRecognizer.from_settings(config.transcription)

    with console.status("[cyan]Preparing analysis...[/cyan]") as status:

        def on_progress(message: str) -> None:
            status.update(f"[cyan]{message}[/cyan]")

        return process_video(
            video.read_bytes(),
            recognizer,
            config,
            on_progress=on_progress,
            filename=video.name,
        )


def print_content_summary(content: ExtractedContent) -> None:
    table = Table(title="Extracted Content")
    table.add_column("Keyframe", style="cyan")
    table.add_column("Time", style="green")
    table.add_column("Size", style="yellow")
    for i, keyframe in enumerate(content.keyframes, start=1):
        table.add_row(
            str(i),
            format_duration(keyframe.timestamp_seconds),
            format_size(len(keyframe.image)),
        )
    console.print(table)

    if content.audio_transcript:
        console.print("\n[bold]Transcript[/bold]")
        console.print(content.audio_transcript, markup=False)
    else:
        console.print("\n[dim]No transcript (video only)[/dim]")


@app.command("init")
def init_config(
    path: str = typer.Option(".", "--path", "-d", help="Directory to write shortcheck.yaml in"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a default shortcheck.yaml."""
    config_path = Path(path) / CONFIG_FILENAME
    if config_path.exists() and not force:
        console.print(f"[red]Error: '{config_path}' already exists[/red]")
        raise typer.Exit(1)

    write_config(create_default_config(), config_path)
    console.print(f"[green]✓[/green] Wrote {config_path}")


@app.command("extract")
def extract_cmd(
    video: str = typer.Argument(..., help="Video file to process"),
    config_path: str | None = typer.Option(None, "--config", "-c", help="Path to shortcheck.yaml"),
    output: str | None = typer.Option(None, "--output", "-o", help="Write extracted content JSON"),
    frames_dir: str | None = typer.Option(
        None, "--frames-dir", help="Directory to save keyframe JPEGs in"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Extract transcript and keyframes from a video."""
    configure_logging(verbose)

    video_file = Path(video).expanduser()
    if not video_file.exists():
        console.print(f"[red]Error: '{video_file}' not found[/red]")
        raise typer.Exit(1)

    try:
        config = resolve_config(config_path)
        content = run_extraction(video_file, config)
    except ShortcheckError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    print_content_summary(content)

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(content.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
        )
        console.print(f"\n[dim]  Wrote {output_path}[/dim]")

    if frames_dir:
        out_dir = Path(frames_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        for keyframe in content.keyframes:
            (out_dir / f"keyframe_{keyframe.timestamp_seconds:08.2f}.jpg").write_bytes(keyframe.image)
        console.print(f"[dim]  Saved {len(content.keyframes)} keyframe(s) to {out_dir}[/dim]")

    console.print(
        f"\n[green]✓[/green] Extracted {len(content.keyframes)} keyframe(s), "
        f"transcript {'present' if content.audio_transcript else 'empty'}"
    )


@app.command("analyze")
def analyze_cmd(
    video: str = typer.Argument(..., help="Video file to analyze"),
    config_path: str | None = typer.Option(None, "--config", "-c", help="Path to shortcheck.yaml"),
    instructions: str = typer.Option("", "--instructions", "-i", help="Extra reviewer instructions"),
    output: str | None = typer.Option(None, "--output", "-o", help="Write analysis result JSON"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Extract content from a video and run the compliance analyzer on it."""
    configure_logging(verbose)

    video_file = Path(video).expanduser()
    if not video_file.exists():
        console.print(f"[red]Error: '{video_file}' not found[/red]")
        raise typer.Exit(1)

    from shortcheck.llm.client import create_client_from_settings
    from shortcheck.llm.compliance import analyze_content

    try:
        config = resolve_config(config_path)
        content = run_extraction(video_file, config)
        client = create_client_from_settings(config.analyzer)
        with console.status("[cyan]AI analysis in progress...[/cyan]"):
            result = analyze_content(content, client, instructions=instructions)
    except ShortcheckError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    score_style = "green" if result.overallScore >= 80 else "yellow" if result.overallScore >= 50 else "red"
    console.print(f"\nCompliance score: [{score_style}]{result.overallScore} / 100[/{score_style}]")
    console.print(f"Summary: {result.overallComment}\n", markup=False)

    table = Table(title=f"Issues ({len(result.issues)})")
    table.add_column("Time", style="cyan")
    table.add_column("Expression")
    table.add_column("Problem")
    table.add_column("Suggestion", style="green")
    for issue in result.issues:
        table.add_row(
            format_duration(issue.timestamp),
            issue.originalText,
            issue.problem,
            issue.suggestion,
        )
    console.print(table)

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(result.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"\n[dim]  Wrote {output_path}[/dim]")


@app.command("doctor")
def run_doctor() -> None:
    """Check dependencies and environment setup."""
    console.print("[cyan]Running preflight checks...[/cyan]\n")

    from shortcheck.exceptions import DependencyError
    from shortcheck.media import check_ffmpeg

    table = Table(title="Dependency Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Version/Details")

    all_passed = True

    try:
        versions = check_ffmpeg()
        table.add_row("FFmpeg", "✓ Installed", versions.get("ffmpeg_version", "unknown"))
        table.add_row("FFprobe", "✓ Installed", versions.get("ffprobe_version", "unknown"))
    except DependencyError as e:
        table.add_row(e.dependency, "✗ Missing", e.install_hint or "")
        all_passed = False

    try:
        config = resolve_config(None)
        backend = config.transcription.backend
        module = "faster_whisper" if backend == "faster" else "mlx_whisper"
        try:
            __import__(module)
            table.add_row("Whisper", "✓ Installed", f"{backend} ({config.transcription.model})")
        except ImportError:
            table.add_row("Whisper", "✗ Missing", f"pip install {module.replace('_', '-')}")
            all_passed = False
        table.add_row("Analyzer", "—", config.analyzer.model)
    except ShortcheckError as e:
        table.add_row("Config", "✗ Invalid", str(e))
        all_passed = False

    console.print(table)

    if all_passed:
        console.print("\n[green]✓ All checks passed[/green]")
    else:
        console.print("\n[yellow]⚠ Some checks failed[/yellow]")
        console.print("[dim]Fix the issues above before running the pipeline[/dim]")
        raise typer.Exit(1)
