"""Ordered WAV stitching for multi-part narration.

Responsibilities:
- Concatenate part WAV files into one final narration file in plan order.
- Reject parts whose channel layout, sample width, or rate disagree.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
import wave

from ..cache.store import atomic_output


class AudioMerger:
    """Merge WAV parts into one WAV output by frame concatenation."""

    def merge(self, part_paths: Sequence[Path], output_path: Path) -> Path:
        """Merge `part_paths` in the given order into `output_path`.

        Raises:
            ValueError: If no parts are given or their WAV parameters differ.
        """

        if not part_paths:
            raise ValueError(f"No audio parts to merge into `{output_path.name}`.")

        with wave.open(str(part_paths[0]), "rb") as first:
            channels = first.getnchannels()
            sample_width = first.getsampwidth()
            framerate = first.getframerate()

        with atomic_output(output_path) as partial_path:
            with wave.open(str(partial_path), "wb") as merged:
                merged.setnchannels(channels)
                merged.setsampwidth(sample_width)
                merged.setframerate(framerate)

                for part_path in part_paths:
                    with wave.open(str(part_path), "rb") as part:
                        if (
                            part.getnchannels() != channels
                            or part.getsampwidth() != sample_width
                            or part.getframerate() != framerate
                        ):
                            raise ValueError(f"Incompatible WAV parameters for part: {part_path}")
                        merged.writeframes(part.readframes(part.getnframes()))

        return output_path
