"""Slide stage helpers for the qa-video pipeline.

Responsibilities:
- Compute slide cache keys from text, position, and every style parameter.
- Render missing slides and the shared gap slide.
- Remove stale slides scoped to each segment's prefix.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import replace
from pathlib import Path

from ..cache.hashing import cached_path
from ..cache.store import is_cached, remove_stale
from ..config import VideoConfig
from ..errors import PipelineStageError
from ..models.datatypes import Segment
from ..render.slides import SlideStyle

GAP_SLIDE_PREFIX = "slide_gap"


def slide_prefix(segment: Segment) -> str:
    """Return the slide cache prefix for a segment (`slide_q_0`, `slide_a_0`)."""

    return f"slide_{segment.type[0]}_{segment.card_index}"


def _style_identity(style: SlideStyle) -> list[object]:
    return [
        style.font_size,
        style.background_color,
        style.question_color,
        style.answer_color,
        style.text_color,
        style.width,
        style.height,
    ]


def slide_path(cache_dir: Path, segment: Segment, style: SlideStyle) -> Path:
    """Return the content-addressed slide path for one segment."""

    identity = [
        "slide",
        segment.text,
        segment.type,
        segment.card_index,
        segment.total_cards,
        *_style_identity(style),
    ]
    return cached_path(cache_dir, slide_prefix(segment), identity, "png")


def gap_slide_path(cache_dir: Path, style: SlideStyle, total_cards: int) -> Path:
    """Return the content-addressed path of the shared gap slide."""

    identity = [
        "slide-gap",
        style.background_color,
        style.font_size,
        total_cards,
        style.width,
        style.height,
    ]
    return cached_path(cache_dir, GAP_SLIDE_PREFIX, identity, "png")


class PipelineSlidesMixin:
    """Provide slide-stage helper methods."""

    def _render_slides(
        self,
        config: VideoConfig,
        segments: Sequence[Segment],
        total_cards: int,
    ) -> tuple[list[Segment], Path]:
        """Render every slide and return segments with `image_path` filled in."""

        style = config.slide_style()
        rendered: list[Segment] = []
        for segment in segments:
            image_path = slide_path(config.cache_dir, segment, style)
            if is_cached(image_path, config.force):
                self._count("slides_cached")
            else:
                self._render_one(
                    image_path,
                    lambda segment=segment, image_path=image_path: self._slide_renderer.render_slide(
                        image_path,
                        text=segment.text,
                        segment_type=segment.type,
                        card_index=segment.card_index,
                        total_cards=segment.total_cards,
                        style=style,
                    ),
                )
            rendered.append(replace(segment, image_path=image_path))
            # Undeletable stale files only waste disk space.
            _ = remove_stale(config.cache_dir, slide_prefix(segment), "png", image_path).failed

        gap_path = gap_slide_path(config.cache_dir, style, total_cards)
        if is_cached(gap_path, config.force):
            self._count("slides_cached")
        else:
            self._render_one(
                gap_path,
                lambda: self._slide_renderer.render_gap_slide(gap_path, style=style),
            )
        _ = remove_stale(config.cache_dir, GAP_SLIDE_PREFIX, "png", gap_path).failed
        return rendered, gap_path

    def _render_one(self, image_path: Path, render: Callable[[], object]) -> None:
        """Run one render call, mapping failures to the `slides` stage."""

        try:
            render()
        except (OSError, ValueError) as exc:
            raise PipelineStageError(
                stage="slides",
                detail=f"Failed to render `{image_path.name}`: {exc}",
                hint="Check the configured colors and that the cache directory is writable.",
            ) from exc
        self._count("slides_rendered")
        self._log_event("slides", "rendered", file=image_path.name)
