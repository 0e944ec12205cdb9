"""Stage telemetry helper methods for the qa-video pipeline.

Responsibilities:
- Provide stage index/total metadata for progress reporting.
- Emit stage start/complete/failure events.
- Track per-stage cache hit and work counters for the run summary.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

_StageResult = TypeVar("_StageResult")


class PipelineTelemetryMixin:
    """Provide stage-telemetry helper methods."""

    _PHASE_SEQUENCE = (
        "parse",
        "synthesize",
        "slides",
        "assemble",
    )

    def _reset_counters(self) -> None:
        """Reset cache hit/work counters for a new run."""

        self._counters: dict[str, int] = {}

    def _count(self, name: str, amount: int = 1) -> None:
        """Increment one named counter."""

        self._counters[name] = self._counters.get(name, 0) + amount

    def _counter(self, name: str) -> int:
        """Return the current value of one named counter."""

        return self._counters.get(name, 0)

    def _log_event(self, stage: str, event: str, **context: object) -> None:
        """Forward one event to the structured logger when configured."""

        if self._run_logger is not None:
            self._run_logger.log_event(stage, event, **context)

    def _stage_position(self, stage_name: str) -> tuple[int, int] | None:
        """Return 1-based stage index and total stage count for known stages."""

        try:
            index = self._PHASE_SEQUENCE.index(stage_name) + 1
        except ValueError:
            return None
        return index, len(self._PHASE_SEQUENCE)

    def _on_stage_start(self, stage_name: str) -> None:
        """Emit start events to stage progress callback and structured logger."""

        stage_position = self._stage_position(stage_name)
        if stage_position and self._stage_progress_callback is not None:
            self._stage_progress_callback(stage_name, stage_position[0], stage_position[1])
        if self._run_logger is not None:
            self._run_logger.log_stage_start(stage_name)

    def _on_stage_complete(self, stage_name: str) -> None:
        """Emit stage-complete event with the counters recorded for that stage."""

        if self._run_logger is not None:
            prefix = f"{stage_name}_"
            context = {
                name[len(prefix):]: value
                for name, value in self._counters.items()
                if name.startswith(prefix)
            }
            self._run_logger.log_stage_complete(stage_name, **context)

    def _on_stage_failure(self, stage_name: str, exc: Exception) -> None:
        """Emit stage-failure event with sanitized exception metadata."""

        if self._run_logger is not None:
            self._run_logger.log_stage_failure(stage_name, type(exc).__name__)

    def _run_stage(
        self,
        stage_name: str,
        action: Callable[[], _StageResult],
    ) -> _StageResult:
        """Run one named stage and emit start/complete/failure telemetry events."""

        self._on_stage_start(stage_name)
        try:
            result = action()
        except Exception as exc:
            self._on_stage_failure(stage_name, exc)
            raise
        self._on_stage_complete(stage_name)
        return result
