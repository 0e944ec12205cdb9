"""Audio plan construction for card narration.

Responsibilities:
- Decide whether a question or answer needs one TTS call or several.
- Compute content-addressed paths for every part and the stitched result.

A multi-part final path is keyed on the ordered per-part hashes, never on
raw answer text, so editing one part invalidates that part and the final
file while untouched parts stay cached.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..cache.hashing import cached_path, content_hash
from ..models.datatypes import AudioPlan, SynthPart
from ..text.markdown import code_to_speech, split_voice_segments
from ..text.normalizer import normalize_for_speech


@dataclass(frozen=True, slots=True)
class SpeechPart:
    """Normalized narration fragment tagged with its voice role."""

    text: str
    is_code: bool


@dataclass(frozen=True, slots=True)
class CardAudioPlans:
    """Question and answer audio plans for one card."""

    card_index: int
    question: AudioPlan
    answer: AudioPlan

    @property
    def question_prefix(self) -> str:
        """Return cache prefix for question narration files."""

        return question_prefix(self.card_index)

    @property
    def answer_prefix(self) -> str:
        """Return cache prefix for answer narration files."""

        return answer_prefix(self.card_index)


def question_prefix(card_index: int) -> str:
    """Return the question audio prefix for a 0-based card index."""

    return f"q_{card_index}"


def answer_prefix(card_index: int) -> str:
    """Return the answer audio prefix for a 0-based card index."""

    return f"a_{card_index}"


def audio_identity(tts_text: str, voice: str) -> list[str]:
    """Return the cache identity of one single-part narration file."""

    return ["audio", tts_text, voice]


def part_hash(tts_text: str, voice: str) -> str:
    """Return the hash contributed by one part to a multi-part final identity."""

    return content_hash(["part", tts_text, voice])


def split_speech_parts(text: str) -> list[SpeechPart]:
    """Split raw text into normalized, voice-tagged narration fragments.

    Fragments that normalize to whitespace are dropped. When every fragment
    drops, the whole text is returned as a single prose fragment.
    """

    parts: list[SpeechPart] = []
    for segment in split_voice_segments(text):
        is_code = segment.kind == "code"
        raw = code_to_speech(segment) if is_code else segment.content
        spoken = normalize_for_speech(raw)
        if spoken.strip():
            parts.append(SpeechPart(text=spoken, is_code=is_code))

    if not parts:
        return [SpeechPart(text=normalize_for_speech(text), is_code=False)]
    return parts


def build_single_plan(cache_dir: Path, prefix: str, tts_text: str, voice: str) -> AudioPlan:
    """Build a single-part plan whose final path is its only part."""

    audio_path = cached_path(cache_dir, prefix, audio_identity(tts_text, voice), "wav")
    return AudioPlan(
        final_audio_path=audio_path,
        parts=(SynthPart(audio_path=audio_path, tts_text=tts_text, voice=voice),),
        is_multi_part=False,
    )


def build_audio_plan(
    text: str,
    cache_dir: Path,
    prefix: str,
    voice: str,
    code_voice: str,
) -> AudioPlan:
    """Build the narration plan for one answer-style text.

    Args:
        text: Raw card text, possibly containing Markdown code.
        cache_dir: Directory holding narration artifacts.
        prefix: Segment prefix such as `a_3`.
        voice: Main narration voice for prose.
        code_voice: Voice for fenced and inline code.

    Returns:
        Single-part plan when no code is present, else a multi-part plan with
        parts prefixed `<prefix>_t<j>` (prose) and `<prefix>_c<j>` (code).
    """

    speech_parts = split_speech_parts(text)
    if not any(part.is_code for part in speech_parts):
        tts_text = " ".join(part.text for part in speech_parts)
        return build_single_plan(cache_dir, prefix, tts_text, voice)

    parts: list[SynthPart] = []
    for position, speech_part in enumerate(speech_parts):
        part_voice = code_voice if speech_part.is_code else voice
        tag = "c" if speech_part.is_code else "t"
        part_path = cached_path(
            cache_dir,
            f"{prefix}_{tag}{position}",
            audio_identity(speech_part.text, part_voice),
            "wav",
        )
        parts.append(SynthPart(audio_path=part_path, tts_text=speech_part.text, voice=part_voice))

    final_identity = ["audio-concat", *(part_hash(part.tts_text, part.voice) for part in parts)]
    return AudioPlan(
        final_audio_path=cached_path(cache_dir, prefix, final_identity, "wav"),
        parts=tuple(parts),
        is_multi_part=True,
    )


def build_card_audio_plans(
    card_index: int,
    question: str,
    answer: str,
    cache_dir: Path,
    voice: str,
    code_voice: str,
) -> CardAudioPlans:
    """Build question and answer plans for one card.

    Questions are always narrated with the main voice in a single part.
    """

    question_plan = build_single_plan(
        cache_dir,
        question_prefix(card_index),
        normalize_for_speech(question),
        voice,
    )
    answer_plan = build_audio_plan(
        answer,
        cache_dir,
        answer_prefix(card_index),
        voice,
        code_voice,
    )
    return CardAudioPlans(card_index=card_index, question=question_plan, answer=answer_plan)
