"""Assembly stage helpers for the qa-video pipeline.

Responsibilities:
- Build the ordered clip list before any encode starts.
- Encode missing clips with bounded concurrency; the shared gap clip once.
- Concatenate clips in list order into a content-addressed final video.
- Copy the final video to the requested output path.

Clip keys hash the file names of their audio and slide, which already
encode every upstream input, plus the clip duration.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
import shutil
import threading

from ..cache.hashing import cached_path
from ..cache.store import atomic_output, is_cached, remove_stale
from ..concurrency import run_bounded
from ..config import VideoConfig
from ..errors import EncoderError, PipelineStageError
from ..models.datatypes import ClipDescriptor, Segment

GAP_CLIP_PREFIX = "gap"
VIDEO_PREFIX = "video"


def clip_prefix(segment: Segment) -> str:
    """Return the clip cache prefix for a segment (`clip_q_0`, `clip_a_0`)."""

    return f"clip_{segment.type[0]}_{segment.card_index}"


def build_clip_descriptors(
    config: VideoConfig,
    segments: Sequence[Segment],
    gap_slide_path: Path,
) -> list[ClipDescriptor]:
    """Return the final concat order: each segment clip, with a gap clip
    between an answer and the next card's question when `card_gap > 0`."""

    gap_path = cached_path(
        config.cache_dir,
        GAP_CLIP_PREFIX,
        ["gap", gap_slide_path.name, config.card_gap],
        "mp4",
    )
    descriptors: list[ClipDescriptor] = []
    for segment in segments:
        if segment.image_path is None:
            raise ValueError(f"Segment {segment.label} has no slide image.")
        identity = [
            "clip",
            segment.audio_path.name,
            segment.image_path.name,
            segment.total_duration,
        ]
        descriptors.append(
            ClipDescriptor(
                kind="segment",
                output_path=cached_path(config.cache_dir, clip_prefix(segment), identity, "mp4"),
                image_path=segment.image_path,
                duration=segment.total_duration,
                label=segment.label,
                segment=segment,
            )
        )
        is_last_card = segment.card_index >= segment.total_cards - 1
        if segment.type == "answer" and not is_last_card and config.card_gap > 0:
            descriptors.append(
                ClipDescriptor(
                    kind="gap",
                    output_path=gap_path,
                    image_path=gap_slide_path,
                    duration=config.card_gap,
                    label=f"gap{segment.card_index + 1}",
                )
            )
    return descriptors


def final_video_path(cache_dir: Path, descriptors: Sequence[ClipDescriptor]) -> Path:
    """Return the content-addressed final video path for an ordered clip list."""

    identity = ["video", *(descriptor.output_path.name for descriptor in descriptors)]
    return cached_path(cache_dir, VIDEO_PREFIX, identity, "mp4")


class PipelineAssemblyMixin:
    """Provide clip-assembly helper methods."""

    def _assemble(
        self,
        config: VideoConfig,
        segments: Sequence[Segment],
        gap_slide_path: Path,
    ) -> Path:
        """Encode clips, concatenate them in order, and publish the output video."""

        descriptors = build_clip_descriptors(config, segments, gap_slide_path)
        self._encode_clips(config, descriptors)
        self._remove_stale_clips(config, descriptors)

        video_path = final_video_path(config.cache_dir, descriptors)
        if is_cached(video_path, config.force):
            self._count("assemble_video_cached")
            self._log_event("assemble", "cache-hit", file=video_path.name)
        else:
            self._concatenate(config, descriptors, video_path)
        # Undeletable stale files only waste disk space.
        _ = remove_stale(config.cache_dir, VIDEO_PREFIX, "mp4", video_path).failed

        self._publish(video_path, config.output_path)
        return config.output_path

    def _encode_clips(self, config: VideoConfig, descriptors: Sequence[ClipDescriptor]) -> None:
        """Encode every distinct missing clip with bounded concurrency."""

        unique: dict[Path, ClipDescriptor] = {}
        for descriptor in descriptors:
            unique.setdefault(descriptor.output_path, descriptor)

        missing: list[ClipDescriptor] = []
        for descriptor in unique.values():
            if is_cached(descriptor.output_path, config.force):
                self._count("assemble_clips_cached")
            else:
                missing.append(descriptor)
        if not missing:
            return

        lock = threading.Lock()
        finished = [0]

        def encode(descriptor: ClipDescriptor) -> Path:
            self._encode_clip(descriptor)
            with lock:
                finished[0] += 1
                progress = f"{finished[0]}/{len(missing)}"
            self._log_event(
                "assemble",
                "clip-done",
                clip=descriptor.label,
                file=descriptor.output_path.name,
                progress=progress,
            )
            return descriptor.output_path

        tasks: list[Callable[[], Path]] = [
            lambda descriptor=descriptor: encode(descriptor) for descriptor in missing
        ]
        try:
            run_bounded(tasks, limit=config.encode_concurrency)
        except EncoderError as exc:
            raise PipelineStageError(
                stage="assemble",
                detail=str(exc),
                hint="Check ffmpeg installation; finished clips are reused on the next run.",
            ) from exc
        self._count("assemble_clips_encoded", len(missing))

    def _encode_clip(self, descriptor: ClipDescriptor) -> None:
        """Encode one clip through the configured encoder."""

        if descriptor.kind == "segment" and descriptor.segment is not None:
            self._encoder.create_segment_clip(descriptor.segment, descriptor.output_path)
        else:
            self._encoder.create_silent_clip(
                descriptor.image_path,
                descriptor.duration,
                descriptor.output_path,
            )

    def _concatenate(
        self,
        config: VideoConfig,
        descriptors: Sequence[ClipDescriptor],
        video_path: Path,
    ) -> None:
        """Concatenate clips in descriptor order into the cached final video."""

        def on_progress(completed: int, total: int) -> None:
            self._log_event("assemble", "concat-progress", progress=f"{completed}/{total}")

        try:
            self._encoder.concatenate_clips(
                [descriptor.output_path for descriptor in descriptors],
                video_path,
                config.cache_dir,
                [descriptor.duration for descriptor in descriptors],
                on_progress,
            )
        except EncoderError as exc:
            raise PipelineStageError(
                stage="concat",
                detail=str(exc),
                hint="Rerun the command; encoded clips are reused from cache.",
            ) from exc
        self._count("assemble_video_encoded")

    def _remove_stale_clips(self, config: VideoConfig, descriptors: Sequence[ClipDescriptor]) -> None:
        """Best-effort cleanup of superseded clips for each prefix in the list."""

        # With gaps disabled no gap descriptor exists, so every gap clip is stale.
        keep_by_prefix: dict[str, Path | None] = {GAP_CLIP_PREFIX: None}
        for descriptor in descriptors:
            if descriptor.segment is not None:
                prefix = clip_prefix(descriptor.segment)
            else:
                prefix = GAP_CLIP_PREFIX
            keep_by_prefix[prefix] = descriptor.output_path
        for prefix, keep_path in keep_by_prefix.items():
            report = remove_stale(config.cache_dir, prefix, "mp4", keep_path)
            self._count("assemble_stale_removed", len(report.removed))
            # Undeletable stale files only waste disk space.
            _ = report.failed

    def _publish(self, video_path: Path, output_path: Path) -> None:
        """Copy the cached final video to the requested output path."""

        try:
            with atomic_output(output_path) as partial_path:
                shutil.copyfile(video_path, partial_path)
        except OSError as exc:
            raise PipelineStageError(
                stage="assemble",
                detail=f"Failed to write output video `{output_path}`: {exc}",
                hint="Verify the output directory is writable.",
            ) from exc
        self._log_event("assemble", "published", output=output_path)
