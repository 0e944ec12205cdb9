"""Unit tests for cache-hit checks, atomic publishing, and stale cleanup."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from qavideo.cache.store import (
    atomic_output,
    is_cached,
    partial_path_for,
    remove_stale,
    save_json,
)


def _touch(path: Path) -> Path:
    path.write_bytes(b"data")
    return path


def test_is_cached_requires_file_and_honors_force(tmp_path: Path) -> None:
    """Existing files are hits unless force is set; missing files never are."""

    artifact = _touch(tmp_path / "q_0_abcd1234.wav")

    assert is_cached(artifact, force=False) is True
    assert is_cached(artifact, force=True) is False
    assert is_cached(tmp_path / "missing.wav", force=False) is False


def test_atomic_output_publishes_on_success(tmp_path: Path) -> None:
    """Written partial files should be renamed onto the final path."""

    target = tmp_path / "nested" / "clip_q_0_abcd1234.mp4"

    with atomic_output(target) as partial:
        assert partial == partial_path_for(target)
        assert not is_cached(target, force=False)
        partial.write_bytes(b"video")

    assert target.read_bytes() == b"video"
    assert not partial_path_for(target).exists()


def test_atomic_output_discards_partial_on_failure(tmp_path: Path) -> None:
    """An interrupted producer must not leave a file that looks cached."""

    target = tmp_path / "slide_a_1_abcd1234.png"

    with pytest.raises(RuntimeError, match="encoder crashed"):
        with atomic_output(target) as partial:
            partial.write_bytes(b"half")
            raise RuntimeError("encoder crashed")

    assert not target.exists()
    assert not partial_path_for(target).exists()


def test_atomic_output_rejects_producer_that_wrote_nothing(tmp_path: Path) -> None:
    """A producer that reports success without writing should fail loudly."""

    with pytest.raises(FileNotFoundError):
        with atomic_output(tmp_path / "video_abcd1234.mp4"):
            pass


def test_remove_stale_is_scoped_to_prefix_and_extension(tmp_path: Path) -> None:
    """Cleanup for `a_3` must not touch `a_30`, other extensions, or kept paths."""

    keep = _touch(tmp_path / "a_3_11111111.wav")
    part = _touch(tmp_path / "a_3_t0_22222222.wav")
    stale = _touch(tmp_path / "a_3_33333333.wav")
    neighbour = _touch(tmp_path / "a_30_44444444.wav")
    other_ext = _touch(tmp_path / "a_3_55555555.png")

    report = remove_stale(tmp_path, "a_3", "wav", keep, extra_keep=[part])

    assert report.removed == (stale,)
    assert report.failed == ()
    assert keep.exists() and part.exists() and neighbour.exists() and other_ext.exists()
    assert not stale.exists()


def test_remove_stale_removes_superseded_parts(tmp_path: Path) -> None:
    """Part files absent from the keep set are stale like any other file."""

    keep = _touch(tmp_path / "a_0_11111111.wav")
    old_part = _touch(tmp_path / "a_0_c1_22222222.wav")

    report = remove_stale(tmp_path, "a_0", "wav", keep)

    assert report.removed == (old_part,)


def test_remove_stale_records_undeletable_candidates(tmp_path: Path) -> None:
    """A candidate that cannot be unlinked is reported, not raised."""

    keep = _touch(tmp_path / "a_1_11111111.wav")
    stale = _touch(tmp_path / "a_1_cafe0000.wav")
    undeletable = tmp_path / "a_1_deadbeef.wav"
    undeletable.mkdir()

    report = remove_stale(tmp_path, "a_1", "wav", keep)

    assert report.removed == (stale,)
    assert report.failed == (undeletable,)
    assert keep.exists() and undeletable.is_dir()
    assert not stale.exists()


def test_remove_stale_without_keep_path_removes_every_match(tmp_path: Path) -> None:
    """With nothing to keep, all files under the prefix are stale."""

    old_gap = _touch(tmp_path / "gap_11111111.mp4")
    clip = _touch(tmp_path / "clip_a_0_22222222.mp4")

    report = remove_stale(tmp_path, "gap", "mp4", None)

    assert report.removed == (old_gap,)
    assert clip.exists()


def test_remove_stale_tolerates_missing_directory(tmp_path: Path) -> None:
    """A missing cache directory yields an empty report."""

    report = remove_stale(tmp_path / "absent", "q_0", "wav", tmp_path / "absent" / "q_0_x.wav")

    assert report.removed == ()
    assert report.failed == ()


def test_save_json_writes_sorted_payload(tmp_path: Path) -> None:
    """JSON payloads should be persisted atomically with sorted keys."""

    path = save_json(tmp_path / "run_summary.json", {"b": 2, "a": 1})

    assert json.loads(path.read_text(encoding="utf-8")) == {"a": 1, "b": 2}
    assert path.read_text(encoding="utf-8").index('"a"') < path.read_text(encoding="utf-8").index('"b"')
