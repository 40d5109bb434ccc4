"""Tests for shortcheck CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from shortcheck.cli import app
from shortcheck.exceptions import NoContentError
from shortcheck.models import AnalysisResult, ExtractedContent, Issue, Keyframe

runner = CliRunner()

CONTENT = ExtractedContent(
    audio_transcript="(0s-2s): 「テスト」",
    keyframes=(Keyframe(0.0, b"\xff\xd8one"), Keyframe(2.0, b"\xff\xd8two")),
)


class TestVersion:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "shortcheck" in result.output


class TestInitCommand:
    def test_init_writes_config(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["init", "-d", str(tmp_path)])
        assert result.exit_code == 0
        assert (tmp_path / "shortcheck.yaml").exists()
        assert "change_threshold" in (tmp_path / "shortcheck.yaml").read_text()

    def test_init_refuses_overwrite(self, tmp_path: Path) -> None:
        (tmp_path / "shortcheck.yaml").write_text("{}")
        result = runner.invoke(app, ["init", "-d", str(tmp_path)])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_init_force(self, tmp_path: Path) -> None:
        (tmp_path / "shortcheck.yaml").write_text("{}")
        result = runner.invoke(app, ["init", "-d", str(tmp_path), "--force"])
        assert result.exit_code == 0


class TestExtractCommand:
    def test_missing_video(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["extract", str(tmp_path / "missing.mp4")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_writes_json_and_frames(self, tmp_path: Path) -> None:
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"fake")
        output = tmp_path / "out" / "content.json"
        frames = tmp_path / "frames"

        with patch("shortcheck.cli.run_extraction", return_value=CONTENT):
            result = runner.invoke(
                app,
                ["extract", str(video), "-o", str(output), "--frames-dir", str(frames)],
            )

        assert result.exit_code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["audioTranscript"] == "(0s-2s): 「テスト」"
        assert [k["timestamp"] for k in data["keyframes"]] == [0.0, 2.0]
        assert len(list(frames.glob("*.jpg"))) == 2

    def test_no_content_exits_1(self, tmp_path: Path) -> None:
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"fake")
        with patch("shortcheck.cli.run_extraction", side_effect=NoContentError("No content extracted")):
            result = runner.invoke(app, ["extract", str(video)])
        assert result.exit_code == 1
        assert "No content extracted" in result.output

    def test_invalid_config_exits_1(self, tmp_path: Path) -> None:
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"fake")
        config = tmp_path / "bad.yaml"
        config.write_text("transcription:\n  backend: cpp\n")
        result = runner.invoke(app, ["extract", str(video), "-c", str(config)])
        assert result.exit_code == 1


class TestAnalyzeCommand:
    def test_prints_score_and_issues(self, tmp_path: Path) -> None:
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"fake")
        verdict = AnalysisResult(
            overallScore=45,
            overallComment="Revise claims",
            issues=[Issue(timestamp=2.0, originalText="治る", problem="efficacy", suggestion="整える")],
        )
        output = tmp_path / "result.json"

        with (
            patch("shortcheck.cli.run_extraction", return_value=CONTENT),
            patch("shortcheck.llm.compliance.analyze_content", return_value=verdict),
        ):
            result = runner.invoke(app, ["analyze", str(video), "-o", str(output)])

        assert result.exit_code == 0
        assert "45 / 100" in result.output
        assert json.loads(output.read_text(encoding="utf-8"))["overallScore"] == 45
