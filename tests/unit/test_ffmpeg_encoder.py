"""Unit tests for ffmpeg command construction and failure mapping."""

from __future__ import annotations

from pathlib import Path
import subprocess
import sys

import pytest
from pytest import MonkeyPatch

from qavideo.errors import EncoderError
from qavideo.models.datatypes import Segment
from qavideo.video import encoder as encoder_module
from qavideo.video.encoder import FfmpegEncoder, write_concat_list


def _segment(tmp_path: Path) -> Segment:
    return Segment(
        type="answer",
        text="Lists files.",
        card_index=0,
        total_cards=1,
        audio_path=tmp_path / "a_0_x.wav",
        audio_duration=1.25,
        total_duration=4.25,
        image_path=tmp_path / "slide_a_0_x.png",
    )


def test_segment_clip_pads_audio_to_total_duration(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    """Segment clips should pad narration and cap output at the total duration."""

    commands: list[list[str]] = []

    def _fake_run(command: list[str], **_: object) -> subprocess.CompletedProcess[str]:
        commands.append(command)
        Path(command[-1]).write_bytes(b"mp4")
        return subprocess.CompletedProcess(command, 0, "", "")

    monkeypatch.setattr(encoder_module.subprocess, "run", _fake_run)
    output = tmp_path / "clip_a_0_x.mp4"

    FfmpegEncoder(executable="ffmpeg").create_segment_clip(_segment(tmp_path), output)

    command = commands[0]
    assert command[0] == "ffmpeg"
    assert "[1:a]apad=whole_dur=4.25[a]" in command
    assert command[command.index("-t") + 1] == "4.25"
    assert command[-1].endswith("clip_a_0_x.partial.mp4")
    assert output.read_bytes() == b"mp4"


def test_silent_clip_uses_generated_silence(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    """Gap clips should pair the slide with a null audio source."""

    commands: list[list[str]] = []

    def _fake_run(command: list[str], **_: object) -> subprocess.CompletedProcess[str]:
        commands.append(command)
        Path(command[-1]).write_bytes(b"mp4")
        return subprocess.CompletedProcess(command, 0, "", "")

    monkeypatch.setattr(encoder_module.subprocess, "run", _fake_run)

    FfmpegEncoder(executable="ffmpeg").create_silent_clip(tmp_path / "gap.png", 1.0, tmp_path / "gap_x.mp4")

    assert "anullsrc=r=48000:cl=stereo" in commands[0]
    assert commands[0][commands[0].index("-t") + 1] == "1"


def test_failed_invocation_raises_encoder_error_without_output(
    monkeypatch: MonkeyPatch, tmp_path: Path
) -> None:
    """Non-zero ffmpeg exits should surface stderr and leave no cached file."""

    def _failing_run(command: list[str], **_: object) -> subprocess.CompletedProcess[str]:
        Path(command[-1]).write_bytes(b"half")
        raise subprocess.CalledProcessError(1, command, output="", stderr="Invalid data found\n")

    monkeypatch.setattr(encoder_module.subprocess, "run", _failing_run)
    output = tmp_path / "gap_x.mp4"

    with pytest.raises(EncoderError, match="Invalid data found") as exc_info:
        FfmpegEncoder(executable="ffmpeg").create_silent_clip(tmp_path / "gap.png", 1.0, output)

    assert exc_info.value.output_path == str(output)
    assert list(tmp_path.iterdir()) == []


def test_missing_executable_raises_encoder_error(tmp_path: Path) -> None:
    """A missing ffmpeg binary should map to `EncoderError`."""

    encoder = FfmpegEncoder(executable=str(tmp_path / "no-such-ffmpeg"))

    with pytest.raises(EncoderError, match="not available"):
        encoder.create_silent_clip(tmp_path / "gap.png", 1.0, tmp_path / "gap_x.mp4")


def test_concat_list_preserves_order_and_escapes_quotes(tmp_path: Path) -> None:
    """Concat manifests should list clips in order with quotes escaped."""

    clips = [tmp_path / "clip_q_0_x.mp4", tmp_path / "gap_x.mp4", tmp_path / "it's.mp4"]

    list_path = write_concat_list(clips, tmp_path / "concat_list.txt")

    lines = list_path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == f"file '{clips[0].resolve()}'"
    assert lines[1] == f"file '{clips[1].resolve()}'"
    assert lines[2].endswith("it'\\''s.mp4'")


def _fake_ffmpeg(tmp_path: Path, body: str) -> str:
    """Write an executable stand-in for ffmpeg; `$last` is the output path."""

    script = tmp_path / "fake-ffmpeg"
    script.write_text(
        "#!/bin/sh\n"
        'for last in "$@"; do :; done\n'
        f"{body}\n",
        encoding="utf-8",
    )
    script.chmod(0o755)
    return str(script)


@pytest.mark.skipif(sys.platform == "win32", reason="requires a POSIX shell")
def test_concatenate_reports_each_clip_boundary_once(tmp_path: Path) -> None:
    """Progress lines should map onto clip boundaries and publish the video."""

    executable = _fake_ffmpeg(
        tmp_path,
        "printf 'frame=1\\nout_time=00:00:00.500000\\nprogress=continue\\n'\n"
        "printf 'out_time=00:00:01.200000\\nout_time=00:00:01.300000\\n'\n"
        "printf 'out_time=00:00:03.100000\\nprogress=end\\n'\n"
        "printf 'video' > \"$last\"",
    )
    cache_dir = tmp_path / "cache"
    clips = [cache_dir / "clip_q_0_x.mp4", cache_dir / "clip_a_0_x.mp4", cache_dir / "gap_x.mp4"]
    output = cache_dir / "video_x.mp4"
    events: list[tuple[int, int]] = []

    FfmpegEncoder(executable=executable).concatenate_clips(
        clips,
        output,
        cache_dir,
        durations=[1.0, 1.0, 1.5],
        on_progress=lambda completed, total: events.append((completed, total)),
    )

    assert events == [(1, 3), (2, 3), (3, 3)]
    assert output.read_bytes() == b"video"
    assert not (cache_dir / "concat_list.txt").exists()
    assert not (cache_dir / "video_x.partial.mp4").exists()


@pytest.mark.skipif(sys.platform == "win32", reason="requires a POSIX shell")
def test_concatenate_failure_raises_encoder_error_without_output(tmp_path: Path) -> None:
    """A non-zero concat exit should surface stderr and leave nothing behind."""

    executable = _fake_ffmpeg(
        tmp_path,
        "printf 'half' > \"$last\"\n"
        "echo 'Impossible to open clip_a_0_x.mp4' >&2\n"
        "exit 1",
    )
    cache_dir = tmp_path / "cache"
    output = cache_dir / "video_x.mp4"

    with pytest.raises(EncoderError, match="Impossible to open") as exc_info:
        FfmpegEncoder(executable=executable).concatenate_clips(
            [cache_dir / "clip_q_0_x.mp4", cache_dir / "clip_a_0_x.mp4"],
            output,
            cache_dir,
            durations=[1.0, 1.0],
        )

    assert exc_info.value.output_path == str(output)
    assert list(cache_dir.iterdir()) == []
