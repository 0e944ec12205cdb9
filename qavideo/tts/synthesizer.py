"""TTS synthesizer interfaces and Kokoro-backed implementation.

Responsibilities:
- Define the protocol workers use for single-voice speech synthesis.
- Provide the Kokoro neural backend, loaded lazily inside worker processes.
- Probe WAV durations for cached narration files.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Protocol
import wave

from ..errors import SynthesisError

KOKORO_SAMPLE_RATE = 24000


class Synthesizer(Protocol):
    """Protocol for one-voice TTS backends living inside a worker process."""

    def synthesize(self, text: str, output_path: Path) -> None:
        """Write narration for `text` as a WAV file at `output_path`."""


SynthesizerFactory = Callable[[str], Synthesizer]


class KokoroSynthesizer:
    """Kokoro-82M synthesizer bound to one voice.

    Constructing the instance loads the model, so it only happens in worker
    processes. The class itself is the picklable factory handed to the pool.
    """

    def __init__(self, voice: str, repo_id: str = "hexgrad/Kokoro-82M") -> None:
        """Load the Kokoro pipeline for the voice's language code."""

        from kokoro import KPipeline

        self.voice = voice
        self.lang_code = voice[:1] or "a"
        self._pipeline = KPipeline(lang_code=self.lang_code, repo_id=repo_id)

    def synthesize(self, text: str, output_path: Path) -> None:
        """Synthesize `text` and write 16-bit PCM WAV audio."""

        import numpy as np
        import soundfile as sf

        chunks = [
            audio
            for _, _, audio in self._pipeline(text, voice=self.voice, speed=1, split_pattern=r"\n+")
            if audio is not None
        ]
        if not chunks:
            raise SynthesisError(f"Kokoro produced no audio for voice `{self.voice}`.")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        sf.write(
            str(output_path),
            np.concatenate(chunks),
            KOKORO_SAMPLE_RATE,
            subtype="PCM_16",
            format="WAV",
        )


def wav_duration_seconds(path: Path) -> float:
    """Return the duration of a PCM WAV file in seconds.

    Raises:
        SynthesisError: If the file is missing, unreadable, or has an invalid rate.
    """

    try:
        with wave.open(str(path), "rb") as wav_file:
            frame_count = wav_file.getnframes()
            sample_rate = wav_file.getframerate()
    except (OSError, EOFError, wave.Error) as exc:
        raise SynthesisError(f"Audio file `{path}` is not a readable WAV payload.") from exc
    if sample_rate <= 0:
        raise SynthesisError(f"Audio file `{path}` has invalid WAV sample rate.")
    return frame_count / float(sample_rate)
