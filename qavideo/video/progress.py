"""Concat progress mapping from encoder time to clip index.

ffmpeg reports `out_time` as it encodes the concatenated stream. The
tracker maps that time onto cumulative clip boundaries and reports once
per boundary crossed, never once per encoder tick.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Callable, Sequence
from itertools import accumulate

ProgressCallback = Callable[[int, int], None]


def parse_timemark(value: str) -> float | None:
    """Parse `HH:MM:SS.ffffff` into seconds; return `None` when malformed."""

    parts = value.strip().split(":")
    if len(parts) != 3:
        return None
    try:
        hours, minutes, seconds = (float(part) for part in parts)
    except ValueError:
        return None
    return hours * 3600 + minutes * 60 + seconds


def parse_progress_line(line: str) -> float | None:
    """Return encoded seconds from one `-progress` key=value line, if present."""

    key, separator, value = line.strip().partition("=")
    if not separator:
        return None
    if key in {"out_time_us", "out_time_ms"}:
        # ffmpeg reports microseconds under both keys.
        try:
            return int(value) / 1_000_000
        except ValueError:
            return None
    if key == "out_time":
        return parse_timemark(value)
    return None


class ConcatProgressTracker:
    """Translate encoder progress lines into completed-clip callbacks."""

    def __init__(self, durations: Sequence[float], on_progress: ProgressCallback | None) -> None:
        self.total = len(durations)
        self._boundaries = list(accumulate(durations))
        self._on_progress = on_progress
        self._completed = 0

    @property
    def completed(self) -> int:
        """Return the number of clips reported as completed."""

        return self._completed

    def clip_index_at(self, seconds: float) -> int:
        """Return how many clip boundaries lie at or before `seconds`."""

        return min(bisect_right(self._boundaries, seconds), self.total)

    def feed_line(self, line: str) -> None:
        """Consume one progress line from the encoder."""

        if line.strip() == "progress=end":
            self.finish()
            return
        seconds = parse_progress_line(line)
        if seconds is None or not self._boundaries:
            return
        self.advance_to(min(self.clip_index_at(seconds), self.total - 1))

    def advance_to(self, completed: int) -> None:
        """Report every boundary between the last report and `completed`."""

        while self._completed < completed:
            self._completed += 1
            if self._on_progress is not None:
                self._on_progress(self._completed, self.total)

    def finish(self) -> None:
        """Report all remaining clips as completed."""

        self.advance_to(self.total)
