"""Deterministic test doubles for synthesis and encoding.

Synthesizer classes are module-level so spawned worker processes can
unpickle them by reference.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
import random
import threading
import time
import wave

import yaml

from qavideo.cache.store import atomic_output
from qavideo.errors import EncoderError
from qavideo.models.datatypes import Segment
from qavideo.video.progress import ProgressCallback

SAMPLE_RATE = 8000
FAILING_MARKER = "kaboom"


def write_tone(path: Path, seconds: float, sample_rate: int = SAMPLE_RATE, channels: int = 1) -> Path:
    """Write a silent 16-bit PCM WAV of the requested length."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(2)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(b"\x00\x00" * channels * int(seconds * sample_rate))
    return path


def tone_seconds(text: str) -> float:
    """Return the fake narration length for `text`."""

    return round(0.1 + 0.01 * len(text), 3)


def write_deck(
    path: Path,
    cards: Sequence[tuple[str, str]],
    config: dict[str, object] | None = None,
) -> Path:
    """Write a YAML deck with `question`/`answer` cards."""

    payload: dict[str, object] = {
        "questions": [{"question": question, "answer": answer} for question, answer in cards]
    }
    if config is not None:
        payload["config"] = config
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return path


class ToneSynthesizer:
    """Write silent WAV files whose length depends on the text.

    Text containing `kaboom` fails, which lets tests exercise one failing
    job among successful ones.
    """

    def __init__(self, voice: str) -> None:
        self.voice = voice

    def synthesize(self, text: str, output_path: Path) -> None:
        if FAILING_MARKER in text:
            raise RuntimeError(f"cannot pronounce {FAILING_MARKER}")
        write_tone(output_path, tone_seconds(text))


class SlowToneSynthesizer(ToneSynthesizer):
    """Tone synthesizer that holds each job long enough to overlap."""

    def synthesize(self, text: str, output_path: Path) -> None:
        time.sleep(0.3)
        super().synthesize(text, output_path)


class BrokenModelSynthesizer:
    """Synthesizer whose model never loads."""

    def __init__(self, voice: str) -> None:
        raise RuntimeError(f"model weights for `{voice}` are missing")

    def synthesize(self, text: str, output_path: Path) -> None:
        raise AssertionError("unreachable")


class RecordingEncoder:
    """Encoder double that writes text placeholders instead of MP4 data.

    Each clip file holds one line naming its content, and the concatenated
    video holds the clip lines in concat order. Optional random delays
    shuffle completion order under concurrency.
    """

    def __init__(self, max_delay: float = 0.0, seed: int = 7, fail_label: str | None = None) -> None:
        self.max_delay = max_delay
        self.fail_label = fail_label
        self.encoded: list[tuple[str, str]] = []
        self.concatenations: list[list[str]] = []
        self.peak_active = 0
        self._active = 0
        self._random = random.Random(seed)
        self._lock = threading.Lock()

    def create_segment_clip(self, segment: Segment, output_path: Path) -> None:
        self._encode(segment.label, f"clip {segment.label} {segment.total_duration:.3f}", output_path)

    def create_silent_clip(self, image_path: Path, duration: float, output_path: Path) -> None:
        self._encode("gap", f"gap {duration:.3f}", output_path)

    def concatenate_clips(
        self,
        clip_paths: Sequence[Path],
        output_path: Path,
        temp_dir: Path,
        durations: Sequence[float] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        with atomic_output(output_path) as partial_path:
            partial_path.write_text(
                "".join(path.read_text(encoding="utf-8") for path in clip_paths),
                encoding="utf-8",
            )
        self.concatenations.append([path.name for path in clip_paths])
        if on_progress is not None:
            for completed in range(1, len(clip_paths) + 1):
                on_progress(completed, len(clip_paths))

    @property
    def encoded_labels(self) -> list[str]:
        """Return labels of encoded clips in completion order."""

        return [label for label, _ in self.encoded]

    def _encode(self, label: str, payload: str, output_path: Path) -> None:
        with self._lock:
            self._active += 1
            self.peak_active = max(self.peak_active, self._active)
            delay = self._random.uniform(0, self.max_delay)
        try:
            if delay:
                time.sleep(delay)
            if label == self.fail_label:
                raise EncoderError(f"ffmpeg exited with status 1 for `{output_path.name}`")
            with atomic_output(output_path) as partial_path:
                partial_path.write_text(payload + "\n", encoding="utf-8")
        finally:
            with self._lock:
                self._active -= 1
        with self._lock:
            self.encoded.append((label, output_path.name))
