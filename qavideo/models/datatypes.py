"""Core datatypes shared across qa-video modules.

Responsibilities:
- Represent immutable records exchanged between pipeline stages.
- Provide explicit typing for the content-addressed cache chain.

Key types:
- `Card`, `Deck`, `DeckSettings`, `SynthPart`, `AudioPlan`, `Segment`,
  `ClipDescriptor`, and `RunSummary`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Mapping

SegmentType = Literal["question", "answer"]
ClipKind = Literal["segment", "gap"]


@dataclass(frozen=True, slots=True)
class Card:
    """One question/answer pair; its list index is its identity within a run."""

    question: str
    answer: str


@dataclass(frozen=True, slots=True)
class DeckSettings:
    """Per-file overrides read from a deck's `config:` mapping.

    Every field is optional; `None` means the deck does not override it.

    Attributes:
        name: Optional video title.
        description: Optional video description.
        question_delay: Seconds of silence after question speech.
        answer_delay: Seconds of silence after answer speech.
        card_gap: Seconds of gap slide between cards.
        voice: Main narration voice.
        code_voice: Voice used for code blocks and inline code.
        font_size: Slide body font size in pixels.
        background_color: Gap slide color.
        question_color: Question slide background color.
        answer_color: Answer slide background color.
        text_color: Slide text color.
    """

    name: str | None = None
    description: str | None = None
    question_delay: float | None = None
    answer_delay: float | None = None
    card_gap: float | None = None
    voice: str | None = None
    code_voice: str | None = None
    font_size: int | None = None
    background_color: str | None = None
    question_color: str | None = None
    answer_color: str | None = None
    text_color: str | None = None


@dataclass(frozen=True, slots=True)
class Deck:
    """Parsed deck file: ordered cards plus file-level settings."""

    source: Path
    cards: tuple[Card, ...]
    settings: DeckSettings = field(default_factory=DeckSettings)


@dataclass(frozen=True, slots=True)
class SynthPart:
    """One single-voice TTS call unit.

    Attributes:
        audio_path: Content-addressed WAV path this part synthesizes into.
        tts_text: Normalized text sent to the synthesizer.
        voice: Voice identifier used for this part.
    """

    audio_path: Path
    tts_text: str
    voice: str


@dataclass(frozen=True, slots=True)
class AudioPlan:
    """Recipe for producing one segment's narration.

    For single-part plans `final_audio_path` is the only part's path. For
    multi-part plans it is a distinct file stitched from `parts` in order.
    """

    final_audio_path: Path
    parts: tuple[SynthPart, ...]
    is_multi_part: bool

    def __post_init__(self) -> None:
        """Validate the single-part/multi-part path invariant."""

        if not self.parts:
            raise ValueError("Audio plan requires at least one part.")
        if not self.is_multi_part and self.final_audio_path != self.parts[0].audio_path:
            raise ValueError("Single-part plan must reuse its part audio path.")
        if self.is_multi_part and any(
            part.audio_path == self.final_audio_path for part in self.parts
        ):
            raise ValueError("Multi-part plan final path must differ from part paths.")

    @property
    def audio_paths(self) -> tuple[Path, ...]:
        """Return every path this plan owns: parts first, then the final file."""

        paths = tuple(part.audio_path for part in self.parts)
        if self.is_multi_part:
            return paths + (self.final_audio_path,)
        return paths


@dataclass(frozen=True, slots=True)
class Segment:
    """One question or answer side of a card, narrated and displayed.

    Attributes:
        type: `question` or `answer`.
        text: Raw card text (may contain Markdown).
        card_index: 0-based card index.
        total_cards: Number of cards in the deck.
        audio_path: Final narration WAV.
        audio_duration: Measured narration duration in seconds.
        total_duration: Narration plus post-speech pause in seconds.
        image_path: Slide PNG, filled in by the slide stage.
    """

    type: SegmentType
    text: str
    card_index: int
    total_cards: int
    audio_path: Path
    audio_duration: float
    total_duration: float
    image_path: Path | None = None

    def __post_init__(self) -> None:
        """Validate duration invariant."""

        if self.total_duration < self.audio_duration:
            raise ValueError("Segment total duration cannot be shorter than its audio.")

    @property
    def label(self) -> str:
        """Return compact `q3`/`a3` style label for logs (1-based card number)."""

        return f"{self.type[0]}{self.card_index + 1}"


@dataclass(frozen=True, slots=True)
class ClipDescriptor:
    """One entry in the ordered concat list.

    Attributes:
        kind: `segment` for image+narration, `gap` for image+silence.
        output_path: Content-addressed MP4 path.
        image_path: Slide PNG shown for the whole clip.
        duration: Clip length in seconds.
        label: Human-readable label for progress output.
        segment: Narrated segment for segment clips, `None` for gaps.
    """

    kind: ClipKind
    output_path: Path
    image_path: Path
    duration: float
    label: str = ""
    segment: Segment | None = None


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Summary record of one pipeline run.

    Attributes:
        deck_path: Source deck file.
        output_path: Final video path.
        cache_dir: Cache directory used for intermediate artifacts.
        card_count: Number of cards rendered.
        estimated_duration_seconds: Sum of segment durations plus card gaps.
        elapsed_seconds: Wall-clock time for the run.
        counters: Per-stage cache hit/total counters.
        extra: Additional implementation-specific metadata.
    """

    deck_path: Path
    output_path: Path
    cache_dir: Path
    card_count: int
    estimated_duration_seconds: float
    elapsed_seconds: float
    counters: Mapping[str, int] = field(default_factory=dict)
    extra: Mapping[str, str] = field(default_factory=dict)
