"""Run-summary helpers for the qa-video pipeline.

Responsibilities:
- Build the typed `RunSummary` record for a completed run.
- Persist the summary payload next to the cached artifacts.
"""

from __future__ import annotations

from collections.abc import Sequence
from ..cache.store import save_json
from ..config import VideoConfig
from ..errors import PipelineStageError
from ..models.datatypes import RunSummary, Segment

SUMMARY_FILE_NAME = "run_summary.json"


def estimate_duration(segments: Sequence[Segment], card_count: int, card_gap: float) -> float:
    """Return total segment time plus one gap between consecutive cards."""

    total = sum(segment.total_duration for segment in segments)
    if card_gap > 0 and card_count > 1:
        total += (card_count - 1) * card_gap
    return total


def summary_payload(summary: RunSummary) -> dict[str, object]:
    """Serialize a run summary into JSON-compatible values."""

    return {
        "deck_path": str(summary.deck_path),
        "output_path": str(summary.output_path),
        "cache_dir": str(summary.cache_dir),
        "card_count": summary.card_count,
        "estimated_duration_seconds": round(summary.estimated_duration_seconds, 3),
        "elapsed_seconds": round(summary.elapsed_seconds, 3),
        "counters": dict(summary.counters),
        "extra": dict(summary.extra),
    }


class PipelineSummaryMixin:
    """Provide run-summary construction and persistence helpers."""

    def _write_summary(
        self,
        config: VideoConfig,
        segments: Sequence[Segment],
        card_count: int,
        elapsed_seconds: float,
        mode: str,
    ) -> RunSummary:
        """Build and persist a run summary for one finished run."""

        summary_path = config.cache_dir / SUMMARY_FILE_NAME
        extra = {"mode": mode, "summary_path": str(summary_path)}
        if config.title:
            extra["title"] = config.title
        if config.description:
            extra["description"] = config.description
        summary = RunSummary(
            deck_path=config.input_path,
            output_path=config.output_path,
            cache_dir=config.cache_dir,
            card_count=card_count,
            estimated_duration_seconds=estimate_duration(segments, card_count, config.card_gap),
            elapsed_seconds=elapsed_seconds,
            counters=dict(sorted(self._counters.items())),
            extra=extra,
        )
        try:
            save_json(summary_path, summary_payload(summary))
        except (OSError, TypeError, ValueError) as exc:
            raise PipelineStageError(
                stage="summary",
                detail=f"Failed to write run summary `{summary_path}`: {exc}",
                hint="Verify the cache directory is writable.",
            ) from exc
        return summary

