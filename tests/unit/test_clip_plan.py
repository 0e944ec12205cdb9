"""Unit tests for the ordered clip list and clip cache keys."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from qavideo.config import VideoConfig
from qavideo.models.datatypes import Segment
from qavideo.pipeline.assembly import build_clip_descriptors, final_video_path


def _config(tmp_path: Path, card_gap: float = 1.0) -> VideoConfig:
    return VideoConfig(
        input_path=tmp_path / "deck.yaml",
        output_path=tmp_path / "deck.mp4",
        cache_dir=tmp_path / "cache",
        card_gap=card_gap,
    )


def _segments(tmp_path: Path, cards: int) -> list[Segment]:
    segments: list[Segment] = []
    for index in range(cards):
        for segment_type, prefix in (("question", "q"), ("answer", "a")):
            segments.append(
                Segment(
                    type=segment_type,
                    text=f"{segment_type} {index}",
                    card_index=index,
                    total_cards=cards,
                    audio_path=tmp_path / f"{prefix}_{index}_aaaaaaaa.wav",
                    audio_duration=1.0,
                    total_duration=3.0,
                    image_path=tmp_path / f"slide_{prefix}_{index}_bbbbbbbb.png",
                )
            )
    return segments


def test_gap_clips_sit_between_cards_only(tmp_path: Path) -> None:
    """Gaps follow every answer except the last one."""

    descriptors = build_clip_descriptors(_config(tmp_path), _segments(tmp_path, 3), tmp_path / "slide_gap_x.png")

    assert [descriptor.label for descriptor in descriptors] == [
        "q1", "a1", "gap1", "q2", "a2", "gap2", "q3", "a3",
    ]
    gap_paths = {descriptor.output_path for descriptor in descriptors if descriptor.kind == "gap"}
    assert len(gap_paths) == 1
    assert next(iter(gap_paths)).name.startswith("gap_")


def test_zero_card_gap_disables_gap_clips(tmp_path: Path) -> None:
    """A card gap of zero should produce only segment clips."""

    descriptors = build_clip_descriptors(
        _config(tmp_path, card_gap=0.0), _segments(tmp_path, 2), tmp_path / "slide_gap_x.png"
    )

    assert [descriptor.kind for descriptor in descriptors] == ["segment"] * 4


def test_clip_key_tracks_audio_slide_and_duration(tmp_path: Path) -> None:
    """Clip paths change with their audio file, slide file, or duration."""

    config = _config(tmp_path)
    segments = _segments(tmp_path, 1)
    base = build_clip_descriptors(config, segments, tmp_path / "gap.png")[0].output_path

    def _first_path(segment: Segment) -> Path:
        return build_clip_descriptors(config, [segment, segments[1]], tmp_path / "gap.png")[0].output_path

    assert base.name.startswith("clip_q_0_")
    assert _first_path(replace(segments[0], audio_path=tmp_path / "q_0_cccccccc.wav")) != base
    assert _first_path(replace(segments[0], image_path=tmp_path / "slide_q_0_dddddddd.png")) != base
    assert _first_path(replace(segments[0], total_duration=3.5)) != base
    assert _first_path(replace(segments[0], text="edited")) == base


def test_final_video_key_tracks_clip_order(tmp_path: Path) -> None:
    """Reordering or changing any clip should change the final video path."""

    descriptors = build_clip_descriptors(_config(tmp_path), _segments(tmp_path, 2), tmp_path / "gap.png")
    base = final_video_path(tmp_path, descriptors)

    assert base.name.startswith("video_")
    assert final_video_path(tmp_path, list(reversed(descriptors))) != base
    assert final_video_path(tmp_path, descriptors[:-1]) != base


def test_segments_without_slides_are_rejected(tmp_path: Path) -> None:
    """Clips cannot be planned before slides are rendered."""

    segments = [replace(segment, image_path=None) for segment in _segments(tmp_path, 1)]

    with pytest.raises(ValueError, match="no slide image"):
        build_clip_descriptors(_config(tmp_path), segments, tmp_path / "gap.png")
