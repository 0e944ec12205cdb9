"""CLI tests for generate, update, batch, and clear commands."""

from __future__ import annotations

from pathlib import Path

import pytest
from pytest import MonkeyPatch
from typer.testing import CliRunner

from qavideo import cli
from qavideo.cli import app
from qavideo.pipeline import VideoPipeline
from tests.fakes import RecordingEncoder, ToneSynthesizer, write_deck


@pytest.fixture(autouse=True)
def _fake_pipeline(monkeypatch: MonkeyPatch) -> None:
    """Wire CLI commands to the tone synthesizer and recording encoder."""

    def _build_pipeline(command_name: str) -> VideoPipeline:
        progress = cli.BuildProgressIndicator(command_name=command_name)
        return VideoPipeline(
            stage_progress_callback=progress.on_stage_start,
            synthesizer_factory=ToneSynthesizer,
            encoder=RecordingEncoder(),
        )

    monkeypatch.setattr(cli, "_build_pipeline", _build_pipeline)


def _generate_args(deck: Path, tmp_path: Path) -> list[str]:
    return [
        str(deck),
        "--output", str(tmp_path / "out" / f"{deck.stem}.mp4"),
        "--temp-dir", str(tmp_path / "cache"),
        "--tts-workers", "1",
        "--encode-concurrency", "2",
    ]


def test_generate_command_writes_video(deck_path: Path, tmp_path: Path) -> None:
    """Generate should run every stage and print the run summary."""

    result = CliRunner().invoke(app, ["generate", *_generate_args(deck_path, tmp_path)])

    assert result.exit_code == 0, result.output
    assert "[progress] command=generate | 1/4 stage=parse" in result.output
    assert "[progress] command=generate \\ 4/4 stage=assemble" in result.output
    assert "Video:" in result.output
    assert "Cards: 2" in result.output
    assert (tmp_path / "out" / "basics.mp4").is_file()
    assert (tmp_path / "cache" / "run_summary.json").is_file()


def test_update_command_requires_cached_narration(deck_path: Path, tmp_path: Path) -> None:
    """Update should fail at `audio-cache` until generate has run once."""

    runner = CliRunner()
    args = [
        str(deck_path),
        "--output", str(tmp_path / "out" / "basics.mp4"),
        "--temp-dir", str(tmp_path / "cache"),
    ]

    failed = runner.invoke(app, ["update", *args])
    assert failed.exit_code == 1
    assert "update failed at stage `audio-cache`" in failed.output

    assert runner.invoke(app, ["generate", *_generate_args(deck_path, tmp_path)]).exit_code == 0
    updated = runner.invoke(app, ["update", *args, "--answer-delay", "1"])
    assert updated.exit_code == 0, updated.output


def test_generate_command_reports_missing_deck(tmp_path: Path) -> None:
    """A missing deck should fail at the parse stage with exit code 1."""

    result = CliRunner().invoke(app, ["generate", str(tmp_path / "missing.yaml")])

    assert result.exit_code == 1
    assert "generate failed at stage `parse`" in result.output


def test_generate_command_reports_invalid_option(deck_path: Path, tmp_path: Path) -> None:
    """Invalid option values should fail at the config stage."""

    result = CliRunner().invoke(
        app,
        ["generate", *_generate_args(deck_path, tmp_path), "--card-gap", "-1"],
    )

    assert result.exit_code == 1
    assert "generate failed at stage `config`" in result.output


def test_batch_command_isolates_failures_and_skips_existing(tmp_path: Path) -> None:
    """Batch should report each deck, fail overall on errors, and skip done decks."""

    decks = tmp_path / "decks"
    write_deck(decks / "good.yaml", [("What is a pod?", "The smallest unit.")])
    (decks / "bad.yaml").write_text("questions: []\n", encoding="utf-8")
    (decks / "notes.txt").write_text("ignored", encoding="utf-8")
    output_dir = tmp_path / "videos"
    runner = CliRunner()

    first = runner.invoke(app, ["batch", str(decks), "--output-dir", str(output_dir), "--tts-workers", "1"])

    assert first.exit_code == 1
    assert "[FAIL] bad.yaml" in first.output
    assert "[OK] good.yaml" in first.output
    assert "Total: 1 succeeded, 0 skipped, 1 failed" in first.output
    assert (output_dir / "good.mp4").is_file()
    assert (output_dir / ".tmp" / "good").is_dir()

    (decks / "bad.yaml").unlink()
    second = runner.invoke(app, ["batch", str(decks), "--output-dir", str(output_dir)])

    assert second.exit_code == 0, second.output
    assert "[SKIP] good.yaml" in second.output


def test_batch_command_requires_decks(tmp_path: Path) -> None:
    """An empty directory should fail with a parse-stage error."""

    (tmp_path / "empty").mkdir()

    result = CliRunner().invoke(app, ["batch", str(tmp_path / "empty")])

    assert result.exit_code == 1
    assert "No YAML files found" in result.output


def test_clear_command_removes_deck_cache(deck_path: Path, tmp_path: Path) -> None:
    """Clear should delete the deck's cache directory and report it."""

    output_dir = tmp_path / "out"
    cache_dir = output_dir / ".tmp" / "basics"
    cache_dir.mkdir(parents=True)
    (cache_dir / "q_0_abcd1234.wav").write_bytes(b"x")
    runner = CliRunner()

    cleared = runner.invoke(app, ["clear", "--input", str(deck_path), "--output-dir", str(output_dir)])
    assert cleared.exit_code == 0, cleared.output
    assert "Cleared 1 cache(s)." in cleared.output
    assert not cache_dir.exists()

    again = runner.invoke(app, ["clear", "--input", str(deck_path), "--output-dir", str(output_dir)])
    assert "No cached artifacts found." in again.output


def test_clear_command_rejects_conflicting_targets(deck_path: Path, tmp_path: Path) -> None:
    """`--input` and `--dir` are mutually exclusive."""

    result = CliRunner().invoke(app, ["clear", "--input", str(deck_path), "--dir", str(tmp_path)])

    assert result.exit_code == 1
    assert "clear failed at stage `clear`" in result.output


def test_generate_command_reports_non_stage_error(
    deck_path: Path, tmp_path: Path, monkeypatch: MonkeyPatch
) -> None:
    """Unexpected errors should fall back to a stage-less diagnostic."""

    def _failing_run(*_: object, **__: object) -> None:
        """Raise a generic error to verify fallback CLI diagnostics."""

        raise RuntimeError("unexpected cache layout")

    monkeypatch.setattr(VideoPipeline, "run", _failing_run)

    result = CliRunner().invoke(app, ["generate", *_generate_args(deck_path, tmp_path)])

    assert result.exit_code == 1
    assert "generate failed: unexpected cache layout" in result.output
