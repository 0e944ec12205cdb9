"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
run summaries, and batch result tables.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, NoReturn

import typer

from .errors import PipelineStageError
from .models.datatypes import RunSummary

BatchStatus = Literal["ok", "skipped", "failed"]


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Outcome of one deck within a batch run."""

    file_name: str
    status: BatchStatus
    elapsed_seconds: float
    detail: str = ""


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    echo_command_error(command_name, exc)
    raise typer.Exit(code=1) from exc


def echo_command_error(command_name: str, exc: Exception) -> None:
    """Print failure diagnostics without exiting."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)


def format_duration(seconds: float) -> str:
    """Return `m:ss` for durations under an hour, `h:mm:ss` otherwise."""

    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def echo_run_summary(summary: RunSummary) -> None:
    """Print the output path, estimated length and cache counters of a run."""

    typer.echo(f"Video: {summary.output_path}")
    typer.echo(f"Cards: {summary.card_count}")
    typer.echo(f"Estimated duration: {format_duration(summary.estimated_duration_seconds)}")
    typer.echo(f"Elapsed: {summary.elapsed_seconds:.1f}s")
    if summary.counters:
        counters = " ".join(f"{key}={value}" for key, value in summary.counters.items())
        typer.echo(f"Counters: {counters}")
    summary_path = summary.extra.get("summary_path")
    if summary_path:
        typer.echo(f"Summary: {summary_path}")


_BATCH_LABELS = {"ok": "OK", "skipped": "SKIP", "failed": "FAIL"}


def echo_batch_summary(results: list[BatchResult], total_seconds: float) -> None:
    """Print one row per deck and a totals line."""

    typer.echo("Batch summary:")
    for result in results:
        line = f"  [{_BATCH_LABELS[result.status]}] {result.file_name} ({result.elapsed_seconds:.1f}s)"
        if result.detail:
            line = f"{line}: {result.detail}"
        typer.echo(line)
    succeeded = sum(1 for result in results if result.status == "ok")
    skipped = sum(1 for result in results if result.status == "skipped")
    failed = sum(1 for result in results if result.status == "failed")
    typer.echo(
        f"Total: {succeeded} succeeded, {skipped} skipped, {failed} failed, "
        f"{total_seconds:.1f}s elapsed"
    )
