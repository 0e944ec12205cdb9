"""Command-line interface for qa-video.

Responsibilities:
- Expose user-facing commands for generating, updating, and clearing videos.
- Convert CLI arguments into `ConfigOverrides` and run the pipeline.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from pathlib import Path
import shutil
import time
from typing import Annotated

import typer

from .cli_rendering import (
    BatchResult,
    echo_batch_summary,
    echo_command_error,
    echo_run_summary,
    exit_with_command_error,
)
from .config import CACHE_DIR_NAME, ConfigOverrides, default_cache_dir, default_output_path
from .errors import PipelineStageError
from .pipeline import VideoPipeline
from .telemetry.logger import RunLogger

app = typer.Typer(
    name="qa-video",
    no_args_is_help=True,
    help="Generate narrated flashcard videos from YAML Q&A decks.",
)

DECK_SUFFIXES = (".yaml", ".yml")

VoiceOption = Annotated[str | None, typer.Option("--voice", help="Main narration voice.")]
CodeVoiceOption = Annotated[
    str | None, typer.Option("--code-voice", help="Narration voice for code blocks and inline code.")
]
QuestionDelayOption = Annotated[
    float | None, typer.Option("--question-delay", help="Pause after question speech, seconds.")
]
AnswerDelayOption = Annotated[
    float | None, typer.Option("--answer-delay", help="Pause after answer speech, seconds.")
]
CardGapOption = Annotated[
    float | None, typer.Option("--card-gap", help="Gap slide between cards, seconds; 0 disables it.")
]
FontSizeOption = Annotated[int | None, typer.Option("--font-size", help="Slide text font size in pixels.")]
ForceOption = Annotated[bool, typer.Option("--force", help="Regenerate all artifacts, ignoring cache.")]
TtsWorkersOption = Annotated[
    int | None, typer.Option("--tts-workers", help="Main-voice TTS worker processes.")
]
EncodeConcurrencyOption = Annotated[
    int | None, typer.Option("--encode-concurrency", help="Maximum concurrent clip encodes.")
]
TempDirOption = Annotated[
    Path | None, typer.Option("--temp-dir", help="Directory for cached intermediate files.")
]


class BuildProgressIndicator:
    """Render deterministic per-stage progress lines for long-running commands."""

    _SPINNER_FRAMES = "|/-\\"

    def __init__(self, command_name: str) -> None:
        """Initialize progress indicator metadata for a command invocation."""

        self._command_name = command_name

    def on_stage_start(self, stage_name: str, stage_index: int, stage_total: int) -> None:
        """Print one progress line for a stage start transition."""

        spinner = self._SPINNER_FRAMES[(stage_index - 1) % len(self._SPINNER_FRAMES)]
        typer.echo(
            f"[progress] command={self._command_name} "
            f"{spinner} {stage_index}/{stage_total} stage={stage_name}"
        )


def _build_pipeline(command_name: str) -> VideoPipeline:
    """Create a pipeline wired to the CLI logger and progress indicator."""

    progress = BuildProgressIndicator(command_name=command_name)
    return VideoPipeline(
        run_logger=RunLogger(),
        stage_progress_callback=progress.on_stage_start,
    )


def _require_deck(deck: Path) -> Path:
    """Return the deck path or raise a parse-stage error when it is missing."""

    if not deck.is_file():
        raise PipelineStageError(
            stage="parse",
            detail=f"Deck file not found: `{deck}`.",
            hint="Pass the path of an existing `.yaml` deck.",
        )
    return deck


def _deck_files(directory: Path) -> list[Path]:
    """Return every YAML deck in `directory`, sorted by name."""

    if not directory.is_dir():
        raise PipelineStageError(
            stage="parse",
            detail=f"Directory not found: `{directory}`.",
            hint="Pass a directory containing `.yaml` decks.",
        )
    return sorted(
        path for path in directory.iterdir() if path.is_file() and path.suffix in DECK_SUFFIXES
    )


def _run_single(
    command_name: str,
    deck: Path,
    overrides: ConfigOverrides,
    update: bool,
) -> None:
    try:
        pipeline = _build_pipeline(command_name)
        config = pipeline.load_config(_require_deck(deck), overrides)
        typer.echo(f"Input: {config.input_path}")
        typer.echo(f"Output: {config.output_path}")
        summary = pipeline.run_update(config) if update else pipeline.run(config)
    except Exception as exc:
        exit_with_command_error(command_name, exc)

    echo_run_summary(summary)


@app.command("generate")
def generate_command(
    deck: Annotated[Path, typer.Argument(help="Path to the YAML Q&A deck.")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Output video file path.")
    ] = None,
    temp_dir: TempDirOption = None,
    voice: VoiceOption = None,
    code_voice: CodeVoiceOption = None,
    question_delay: QuestionDelayOption = None,
    answer_delay: AnswerDelayOption = None,
    card_gap: CardGapOption = None,
    font_size: FontSizeOption = None,
    force: ForceOption = False,
    tts_workers: TtsWorkersOption = None,
    encode_concurrency: EncodeConcurrencyOption = None,
) -> None:
    """Generate a video from one deck, reusing every cached artifact."""

    overrides = ConfigOverrides(
        output_path=output,
        cache_dir=temp_dir,
        voice=voice,
        code_voice=code_voice,
        question_delay=question_delay,
        answer_delay=answer_delay,
        card_gap=card_gap,
        font_size=font_size,
        force=force,
        tts_workers=tts_workers,
        encode_concurrency=encode_concurrency,
    )
    _run_single("generate", deck, overrides, update=False)


@app.command("update")
def update_command(
    deck: Annotated[Path, typer.Argument(help="Path to the YAML Q&A deck.")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Output video file path.")
    ] = None,
    temp_dir: TempDirOption = None,
    voice: VoiceOption = None,
    code_voice: CodeVoiceOption = None,
    question_delay: QuestionDelayOption = None,
    answer_delay: AnswerDelayOption = None,
    card_gap: CardGapOption = None,
    font_size: FontSizeOption = None,
    force: Annotated[
        bool, typer.Option("--force", help="Regenerate slides and clips, ignoring their cache.")
    ] = False,
    encode_concurrency: EncodeConcurrencyOption = None,
) -> None:
    """Re-render slides and video using only narration already in cache."""

    overrides = ConfigOverrides(
        output_path=output,
        cache_dir=temp_dir,
        voice=voice,
        code_voice=code_voice,
        question_delay=question_delay,
        answer_delay=answer_delay,
        card_gap=card_gap,
        font_size=font_size,
        force=force,
        encode_concurrency=encode_concurrency,
    )
    _run_single("update", deck, overrides, update=True)


@app.command("batch")
def batch_command(
    directory: Annotated[Path, typer.Argument(help="Directory containing YAML decks.")],
    output_dir: Annotated[
        Path | None, typer.Option("--output-dir", help="Output directory for videos.")
    ] = None,
    voice: VoiceOption = None,
    code_voice: CodeVoiceOption = None,
    question_delay: QuestionDelayOption = None,
    answer_delay: AnswerDelayOption = None,
    card_gap: CardGapOption = None,
    font_size: FontSizeOption = None,
    force: ForceOption = False,
    tts_workers: TtsWorkersOption = None,
    encode_concurrency: EncodeConcurrencyOption = None,
) -> None:
    """Generate videos for every deck in a directory, one after another."""

    try:
        decks = _deck_files(directory)
        if not decks:
            raise PipelineStageError(
                stage="parse",
                detail=f"No YAML files found in `{directory}`.",
                hint="Batch mode reads `*.yaml` and `*.yml` files.",
            )
    except Exception as exc:
        exit_with_command_error("batch", exc)

    typer.echo(f"Directory: {directory}")
    typer.echo(f"Files: {', '.join(deck.name for deck in decks)}")
    batch_started = time.monotonic()
    results: list[BatchResult] = []
    for position, deck in enumerate(decks, start=1):
        typer.echo(f"[batch] file={position}/{len(decks)} deck={deck.name}")
        started = time.monotonic()
        overrides = ConfigOverrides(
            output_path=output_dir / f"{deck.stem}.mp4" if output_dir is not None else None,
            voice=voice,
            code_voice=code_voice,
            question_delay=question_delay,
            answer_delay=answer_delay,
            card_gap=card_gap,
            font_size=font_size,
            force=force,
            tts_workers=tts_workers,
            encode_concurrency=encode_concurrency,
        )
        try:
            pipeline = _build_pipeline("batch")
            config = pipeline.load_config(deck, overrides)
            if not force and config.output_path.exists():
                typer.echo(f"Skipped `{deck.name}`: video already exists, use --force to regenerate.")
                results.append(BatchResult(deck.name, "skipped", 0.0))
                continue
            pipeline.run(config)
        except Exception as exc:
            echo_command_error(f"batch `{deck.name}`", exc)
            results.append(
                BatchResult(deck.name, "failed", time.monotonic() - started, detail=str(exc))
            )
            continue
        results.append(BatchResult(deck.name, "ok", time.monotonic() - started))

    echo_batch_summary(results, time.monotonic() - batch_started)
    if any(result.status == "failed" for result in results):
        raise typer.Exit(code=1)


@app.command("clear")
def clear_command(
    input_deck: Annotated[
        Path | None, typer.Option("--input", "-i", help="Clear the cache of one deck.")
    ] = None,
    directory: Annotated[
        Path | None, typer.Option("--dir", "-d", help="Clear the caches of every deck in a directory.")
    ] = None,
    output_dir: Annotated[
        Path | None, typer.Option("--output-dir", help="Output directory containing the `.tmp` folder.")
    ] = None,
) -> None:
    """Remove cached intermediate artifacts."""

    try:
        if input_deck is not None and directory is not None:
            raise PipelineStageError(
                stage="clear",
                detail="Provide at most one of `--input` and `--dir`.",
                hint="Use `qa-video clear --help` for usage.",
            )
        if input_deck is not None:
            targets = [_cache_dir_for(input_deck, output_dir)]
        elif directory is not None:
            targets = [_cache_dir_for(deck, output_dir) for deck in _deck_files(directory)]
        else:
            targets = [(output_dir or Path.cwd() / "output") / CACHE_DIR_NAME]

        cleared = 0
        for target in targets:
            if target.is_dir():
                shutil.rmtree(target)
                typer.echo(f"Removed: {target}")
                cleared += 1
    except Exception as exc:
        exit_with_command_error("clear", exc)

    if cleared == 0:
        typer.echo("No cached artifacts found.")
    else:
        typer.echo(f"Cleared {cleared} cache(s).")


def _cache_dir_for(deck: Path, output_dir: Path | None) -> Path:
    """Return the default cache directory for a deck and optional output dir."""

    deck = deck.resolve()
    if output_dir is not None:
        return output_dir.resolve() / CACHE_DIR_NAME / deck.stem
    return default_cache_dir(default_output_path(deck), deck)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
