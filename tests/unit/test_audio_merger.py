"""Unit tests for ordered WAV stitching."""

from __future__ import annotations

from pathlib import Path
import wave

import pytest

from qavideo.audio.merger import AudioMerger
from tests.fakes import SAMPLE_RATE, write_tone


def _frames(path: Path) -> int:
    with wave.open(str(path), "rb") as wav_file:
        return wav_file.getnframes()


def test_merge_concatenates_parts_in_order(tmp_path: Path) -> None:
    """Merged output should hold every part's frames."""

    first = write_tone(tmp_path / "a_0_t0_x.wav", 0.5)
    second = write_tone(tmp_path / "a_0_c1_x.wav", 0.25)

    output = AudioMerger().merge([first, second], tmp_path / "a_0_final.wav")

    assert _frames(output) == _frames(first) + _frames(second)
    assert _frames(output) == int(0.75 * SAMPLE_RATE)


def test_merge_rejects_mismatched_parameters(tmp_path: Path) -> None:
    """Parts with different sample rates must not be stitched."""

    first = write_tone(tmp_path / "a_0_t0_x.wav", 0.1)
    second = write_tone(tmp_path / "a_0_c1_x.wav", 0.1, sample_rate=16000)

    with pytest.raises(ValueError, match="Incompatible WAV parameters"):
        AudioMerger().merge([first, second], tmp_path / "a_0_final.wav")
    assert not (tmp_path / "a_0_final.wav").exists()


def test_merge_requires_parts(tmp_path: Path) -> None:
    """An empty part list is a caller error."""

    with pytest.raises(ValueError):
        AudioMerger().merge([], tmp_path / "a_0_final.wav")
