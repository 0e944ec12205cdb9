"""ffmpeg-backed clip encoding and ordered concatenation.

Responsibilities:
- Encode one still-image clip with narration padded to the segment length.
- Encode one still-image clip with generated silence.
- Concatenate clips strictly in list order, reporting per-clip progress.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
import subprocess
import tempfile
from typing import Protocol

from ..cache.store import atomic_output
from ..errors import EncoderError
from ..models.datatypes import Segment
from ..parsing import normalize_optional_string
from ..runtime_tools import resolve_executable
from .progress import ConcatProgressTracker, ProgressCallback

_AUDIO_OPTIONS = ("-c:a", "aac", "-b:a", "384k", "-ar", "48000", "-ac", "2")
_STILL_VIDEO_OPTIONS = ("-c:v", "libx264", "-tune", "stillimage", "-pix_fmt", "yuv420p")
_FRAME_RATE = "30"


class VideoEncoder(Protocol):
    """Protocol for clip encoders used by the assembly stage."""

    def create_segment_clip(self, segment: Segment, output_path: Path) -> None:
        """Encode slide + narration held for `segment.total_duration`."""

    def create_silent_clip(self, image_path: Path, duration: float, output_path: Path) -> None:
        """Encode slide + silence held for `duration` seconds."""

    def concatenate_clips(
        self,
        clip_paths: Sequence[Path],
        output_path: Path,
        temp_dir: Path,
        durations: Sequence[float] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Concatenate clips in list order into `output_path`."""


def _format_seconds(value: float) -> str:
    """Render seconds without float noise for ffmpeg arguments."""

    return f"{value:.3f}".rstrip("0").rstrip(".") or "0"


def _escape_concat_path(path: Path) -> str:
    """Escape one file path for ffmpeg concat list format."""

    return str(path).replace("'", "'\\''")


def write_concat_list(clip_paths: Sequence[Path], list_path: Path) -> Path:
    """Write the ordered ffmpeg concat manifest for `clip_paths`."""

    list_path.parent.mkdir(parents=True, exist_ok=True)
    content = "\n".join(f"file '{_escape_concat_path(path.resolve())}'" for path in clip_paths)
    list_path.write_text(content + "\n", encoding="utf-8")
    return list_path


class FfmpegEncoder:
    """Encode clips by invoking the ffmpeg executable."""

    def __init__(self, executable: str | None = None) -> None:
        self.executable = executable or resolve_executable("ffmpeg")

    def create_segment_clip(self, segment: Segment, output_path: Path) -> None:
        """Encode one narrated slide clip.

        Narration is padded with silence to exactly `total_duration`, so the
        audio track never ends before the looped image track.
        """

        if segment.image_path is None:
            raise EncoderError(
                f"Segment {segment.label} has no slide image.",
                output_path=str(output_path),
            )
        duration = _format_seconds(segment.total_duration)
        with atomic_output(output_path) as partial_path:
            self._run(
                [
                    "-loop", "1", "-i", str(segment.image_path),
                    "-i", str(segment.audio_path),
                    "-filter_complex", f"[1:a]apad=whole_dur={duration}[a]",
                    "-map", "0:v", "-map", "[a]",
                    *_STILL_VIDEO_OPTIONS,
                    *_AUDIO_OPTIONS,
                    "-t", duration,
                    "-r", _FRAME_RATE,
                    str(partial_path),
                ],
                output_path,
            )

    def create_silent_clip(self, image_path: Path, duration: float, output_path: Path) -> None:
        """Encode one slide clip with a silent stereo track."""

        with atomic_output(output_path) as partial_path:
            self._run(
                [
                    "-loop", "1", "-i", str(image_path),
                    "-f", "lavfi", "-i", "anullsrc=r=48000:cl=stereo",
                    *_STILL_VIDEO_OPTIONS,
                    *_AUDIO_OPTIONS,
                    "-t", _format_seconds(duration),
                    "-r", _FRAME_RATE,
                    str(partial_path),
                ],
                output_path,
            )

    def concatenate_clips(
        self,
        clip_paths: Sequence[Path],
        output_path: Path,
        temp_dir: Path,
        durations: Sequence[float] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Concatenate clips in the given order and re-encode the final video.

        Progress fires once per clip boundary crossed when `durations` is given.
        """

        if not clip_paths:
            raise EncoderError("No clips to concatenate.", output_path=str(output_path))
        list_path = write_concat_list(clip_paths, temp_dir / "concat_list.txt")
        tracker = ConcatProgressTracker(durations or (), on_progress)
        command = [
            self.executable,
            "-y", "-hide_banner", "-loglevel", "error", "-nostats",
            "-f", "concat", "-safe", "0", "-i", str(list_path),
            "-c:v", "libx264", "-crf", "18", "-preset", "medium",
            "-profile:v", "high", "-level", "4.0", "-tune", "stillimage",
            *_AUDIO_OPTIONS,
            "-pix_fmt", "yuv420p",
            "-movflags", "+faststart",
            "-r", _FRAME_RATE,
            "-progress", "pipe:1",
        ]

        try:
            self._run_concat(command, output_path, progress_tracker=tracker if durations else None)
        finally:
            list_path.unlink(missing_ok=True)
        if durations:
            tracker.finish()

    def _run_concat(
        self,
        command: list[str],
        output_path: Path,
        progress_tracker: ConcatProgressTracker | None,
    ) -> None:
        """Run the concat invocation, feeding `-progress` lines to the tracker."""

        with atomic_output(output_path) as partial_path, tempfile.TemporaryFile(
            mode="w+", encoding="utf-8"
        ) as stderr_file:
            try:
                process = subprocess.Popen(
                    [*command, str(partial_path)],
                    stdout=subprocess.PIPE,
                    stderr=stderr_file,
                    text=True,
                )
            except FileNotFoundError as exc:
                raise EncoderError(
                    f"Encoder `{self.executable}` is not available.",
                    output_path=str(output_path),
                ) from exc
            if process.stdout is None:
                process.kill()
                raise EncoderError("ffmpeg progress pipe is unavailable.", output_path=str(output_path))
            with process.stdout:
                for line in process.stdout:
                    if progress_tracker is not None:
                        progress_tracker.feed_line(line)
            return_code = process.wait()
            if return_code != 0:
                stderr_file.seek(0)
                stderr = normalize_optional_string(stderr_file.read()) or "no stderr output"
                raise EncoderError(
                    f"ffmpeg concat failed for `{output_path.name}`: {stderr}",
                    output_path=str(output_path),
                )

    def _run(self, arguments: list[str], output_path: Path) -> None:
        """Run one ffmpeg invocation and map failures to `EncoderError`."""

        command = [self.executable, "-y", "-hide_banner", "-loglevel", "error", *arguments]
        try:
            subprocess.run(command, check=True, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise EncoderError(
                f"Encoder `{self.executable}` is not available.",
                output_path=str(output_path),
            ) from exc
        except subprocess.CalledProcessError as exc:
            stderr = normalize_optional_string(exc.stderr) or "no stderr output"
            raise EncoderError(
                f"ffmpeg failed for `{output_path.name}`: {stderr}",
                output_path=str(output_path),
            ) from exc
