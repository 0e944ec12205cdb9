"""Markdown segmentation for card answers.

Responsibilities:
- Split text into prose and fenced-code blocks with a line state machine.
- Split prose further by inline backtick spans into voice-tagged segments.
- Parse inline emphasis/code into styled runs for slide rendering.

Both the audio planner and the slide renderer treat backtick spans and
fenced blocks as code, so narration voice and slide styling always agree.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Literal

BlockKind = Literal["prose", "code"]

_FENCE_OPEN_PATTERN = re.compile(r"^```(\w*)$")
_FENCE_CLOSE = "```"
_INLINE_CODE_PATTERN = re.compile(r"`([^`]+)`")


@dataclass(frozen=True, slots=True)
class MarkdownBlock:
    """Block-level piece of card text."""

    kind: BlockKind
    content: str
    lang: str = ""


@dataclass(frozen=True, slots=True)
class VoiceSegment:
    """Voice-tagged fragment of raw card text.

    Attributes:
        kind: `prose` for main-voice text, `code` for code-voice text.
        content: Raw fragment text, markers removed for inline code.
        fenced: Whether a code fragment came from a fenced block.
    """

    kind: BlockKind
    content: str
    fenced: bool = False


@dataclass(frozen=True, slots=True)
class InlineStyle:
    """Inline emphasis flags for one styled run."""

    bold: bool = False
    italic: bool = False
    code: bool = False


@dataclass(frozen=True, slots=True)
class InlineRun:
    """Contiguous text sharing one inline style."""

    text: str
    style: InlineStyle


PLAIN_STYLE = InlineStyle()


def parse_markdown(text: str) -> list[MarkdownBlock]:
    """Split `text` into alternating prose and fenced-code blocks.

    An unclosed fence is folded back into prose. The result always holds
    at least one block.
    """

    blocks: list[MarkdownBlock] = []
    prose_lines: list[str] = []
    code_lines: list[str] = []
    in_code = False
    lang = ""

    for line in text.split("\n"):
        if not in_code:
            fence_match = _FENCE_OPEN_PATTERN.match(line)
            if fence_match is None:
                prose_lines.append(line)
                continue
            prose = "\n".join(prose_lines).strip()
            if prose:
                blocks.append(MarkdownBlock(kind="prose", content=prose))
            prose_lines = []
            in_code = True
            lang = fence_match.group(1)
            code_lines = []
            continue

        if line == _FENCE_CLOSE:
            blocks.append(MarkdownBlock(kind="code", content="\n".join(code_lines), lang=lang))
            in_code = False
            lang = ""
            code_lines = []
        else:
            code_lines.append(line)

    if in_code:
        prose_lines.append(f"{_FENCE_CLOSE}{lang}")
        prose_lines.extend(code_lines)
    remaining = "\n".join(prose_lines).strip()
    if remaining:
        blocks.append(MarkdownBlock(kind="prose", content=remaining))

    if not blocks:
        blocks.append(MarkdownBlock(kind="prose", content=text))
    return blocks


def split_inline_code(text: str) -> list[VoiceSegment]:
    """Split one prose fragment by inline backtick spans."""

    segments: list[VoiceSegment] = []
    last_index = 0
    for match in _INLINE_CODE_PATTERN.finditer(text):
        if match.start() > last_index:
            segments.append(VoiceSegment(kind="prose", content=text[last_index : match.start()]))
        segments.append(VoiceSegment(kind="code", content=match.group(1)))
        last_index = match.end()
    if last_index < len(text):
        segments.append(VoiceSegment(kind="prose", content=text[last_index:]))
    if not segments:
        segments.append(VoiceSegment(kind="prose", content=text))
    return segments


def split_voice_segments(text: str) -> list[VoiceSegment]:
    """Return ordered prose/code segments for multi-voice narration."""

    segments: list[VoiceSegment] = []
    for block in parse_markdown(text):
        if block.kind == "code":
            segments.append(VoiceSegment(kind="code", content=block.content, fenced=True))
        else:
            segments.extend(split_inline_code(block.content))
    return segments


def code_to_speech(segment: VoiceSegment) -> str:
    """Return spoken form of a code fragment; fenced blocks get a `Code:` lead-in."""

    if segment.fenced:
        return f"Code: {segment.content}"
    return segment.content


def parse_inline_markdown(text: str) -> list[InlineRun]:
    """Parse backtick code and `*`/`_` emphasis into styled runs.

    Backticks take priority and disable emphasis parsing inside them.
    Runs with identical styles are collapsed.
    """

    runs: list[InlineRun] = []
    buffer: list[str] = []
    bold = False
    italic = False
    index = 0

    def flush() -> None:
        if buffer:
            runs.append(InlineRun(text="".join(buffer), style=InlineStyle(bold=bold, italic=italic)))
            buffer.clear()

    while index < len(text):
        char = text[index]
        if char == "`":
            flush()
            end = text.find("`", index + 1)
            if end == -1:
                end = len(text)
            code = text[index + 1 : end]
            if code:
                runs.append(InlineRun(text=code, style=InlineStyle(code=True)))
            index = end + 1
            continue

        if char in "*_":
            count = 0
            while index + count < len(text) and text[index + count] == char:
                count += 1
            flush()
            if count >= 3:
                bold = not bold
                italic = not italic
                index += 3
            elif count == 2:
                bold = not bold
                index += 2
            else:
                italic = not italic
                index += 1
            continue

        buffer.append(char)
        index += 1

    flush()

    collapsed: list[InlineRun] = []
    for run in runs:
        if collapsed and collapsed[-1].style == run.style:
            collapsed[-1] = InlineRun(text=collapsed[-1].text + run.text, style=run.style)
        else:
            collapsed.append(run)
    if not collapsed:
        return [InlineRun(text=text, style=PLAIN_STYLE)]
    return collapsed


def strip_inline_markdown(text: str) -> str:
    """Remove inline code and emphasis markers, keeping their content."""

    result = re.sub(r"`([^`]*)`", r"\1", text)
    result = re.sub(r"\*{1,3}(.*?)\*{1,3}", r"\1", result)
    return re.sub(r"_{1,3}(.*?)_{1,3}", r"\1", result)
