"""Slide rendering with Pillow.

Responsibilities:
- Render question/answer slides: header bar, type badge, wrapped body text.
- Render fenced code as monospace boxes and inline code in code color.
- Shrink the body font until all content fits the slide.
- Render the constant gap slide shown between cards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
import re
from typing import Literal

from PIL import Image, ImageDraw, ImageFont

from ..cache.store import atomic_output
from ..models.datatypes import SegmentType
from ..text.markdown import InlineStyle, MarkdownBlock, parse_inline_markdown, parse_markdown

HEADER_HEIGHT = 80
CONTENT_MARGIN = 100
CODE_BOX_MARGIN = 60
MIN_FONT_SIZE = 16
FONT_STEP = 2
BULLET = "\u2022 "

BADGE_COLORS = {"question": "#e94560", "answer": "#0cca4a"}
CODE_BACKGROUND = "#161b22"
CODE_BORDER = "#30363d"
CODE_TEXT = "#7ee787"
HEADER_SHADE = (0, 0, 0, 77)
FOOTER_SHADE = (255, 255, 255, 38)

_FONT_CANDIDATES = {
    "regular": (
        "/System/Library/Fonts/Supplemental/Arial.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "C:/Windows/Fonts/arial.ttf",
        "DejaVuSans.ttf",
    ),
    "bold": (
        "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "C:/Windows/Fonts/arialbd.ttf",
        "DejaVuSans-Bold.ttf",
    ),
    "mono": (
        "/System/Library/Fonts/Supplemental/Courier New.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
        "C:/Windows/Fonts/consola.ttf",
        "DejaVuSansMono.ttf",
    ),
}

FontKind = Literal["regular", "bold", "mono"]
LineKind = Literal["prose", "bullet", "continuation"]


@dataclass(frozen=True, slots=True)
class SlideStyle:
    """Visual parameters shared by every slide of one run."""

    width: int
    height: int
    font_size: int
    background_color: str
    question_color: str
    answer_color: str
    text_color: str


@lru_cache(maxsize=64)
def load_font(kind: FontKind, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a TrueType font of the given kind, falling back to Pillow's default."""

    for path in _FONT_CANDIDATES[kind]:
        try:
            return ImageFont.truetype(path, size=size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


@dataclass(frozen=True, slots=True)
class _Piece:
    text: str
    style: InlineStyle


Word = tuple[_Piece, ...]


@dataclass(slots=True)
class _TextLine:
    kind: LineKind
    words: list[Word] = field(default_factory=list)


@dataclass(slots=True)
class _BlockLayout:
    kind: Literal["prose", "code"]
    line_height: float
    total_height: float
    text_lines: list[_TextLine] = field(default_factory=list)
    code_lines: list[str] = field(default_factory=list)
    code_padding: int = 0
    has_list: bool = False


def _code_font_size(font_size: int) -> int:
    return max(14, round(font_size * 0.78))


def _split_words(text: str) -> list[Word]:
    """Split inline-styled text into words made of styled pieces."""

    words: list[Word] = []
    current: list[_Piece] = []
    for run in parse_inline_markdown(text):
        for token in re.split(r"(\s+)", run.text):
            if not token:
                continue
            if token.isspace():
                if current:
                    words.append(tuple(current))
                    current = []
                continue
            current.append(_Piece(text=token, style=run.style))
    if current:
        words.append(tuple(current))
    return words


class SlideRenderer:
    """Render PNG slides for narrated card segments."""

    def render_slide(
        self,
        output_path: Path,
        *,
        text: str,
        segment_type: SegmentType,
        card_index: int,
        total_cards: int,
        style: SlideStyle,
    ) -> Path:
        """Render one question or answer slide to `output_path`."""

        background = style.question_color if segment_type == "question" else style.answer_color
        image = Image.new("RGB", (style.width, style.height), background)
        draw = ImageDraw.Draw(image, "RGBA")

        self._draw_header(draw, style, segment_type, card_index, total_cards)
        self._draw_body(draw, style, text)
        draw.rectangle((0, style.height - 4, style.width, style.height), fill=FOOTER_SHADE)
        return self._save(image, output_path)

    def render_gap_slide(self, output_path: Path, *, style: SlideStyle) -> Path:
        """Render the blank interstitial slide shown between cards."""

        image = Image.new("RGB", (style.width, style.height), style.background_color)
        draw = ImageDraw.Draw(image, "RGBA")
        draw.rectangle((0, 0, style.width, HEADER_HEIGHT), fill=HEADER_SHADE)
        draw.rectangle((0, style.height - 4, style.width, style.height), fill=FOOTER_SHADE)
        return self._save(image, output_path)

    def _save(self, image: Image.Image, output_path: Path) -> Path:
        with atomic_output(output_path) as partial_path:
            image.save(partial_path, format="PNG")
        return output_path

    def _draw_header(
        self,
        draw: ImageDraw.ImageDraw,
        style: SlideStyle,
        segment_type: SegmentType,
        card_index: int,
        total_cards: int,
    ) -> None:
        draw.rectangle((0, 0, style.width, HEADER_HEIGHT), fill=HEADER_SHADE)
        label = "QUESTION" if segment_type == "question" else "ANSWER"
        draw.text(
            (40, 50),
            f"{label} {card_index + 1} of {total_cards}",
            fill=style.text_color,
            font=load_font("bold", 28),
            anchor="ls",
        )

        badge_size = 60
        badge_x = style.width - 100
        badge_y = 10
        draw.rounded_rectangle(
            (badge_x, badge_y, badge_x + badge_size, badge_y + badge_size),
            radius=12,
            fill=BADGE_COLORS[segment_type],
        )
        draw.text(
            (badge_x + badge_size / 2, badge_y + badge_size / 2),
            "Q" if segment_type == "question" else "A",
            fill="#ffffff",
            font=load_font("bold", 36),
            anchor="mm",
        )

    def _draw_body(self, draw: ImageDraw.ImageDraw, style: SlideStyle, text: str) -> None:
        content_width = style.width - 2 * CONTENT_MARGIN
        area_top = HEADER_HEIGHT
        area_height = style.height - area_top - 20
        blocks = parse_markdown(text)

        font_size = style.font_size
        while font_size > MIN_FONT_SIZE:
            layouts = self._layout(draw, blocks, font_size, content_width)
            if self._total_height(layouts, font_size) <= area_height:
                break
            font_size -= FONT_STEP
        layouts = self._layout(draw, blocks, font_size, content_width)
        total_height = self._total_height(layouts, font_size)

        y = max(area_top + (area_height - total_height) / 2, area_top + 10)
        block_gap = round(font_size * 0.6)
        for position, layout in enumerate(layouts):
            if layout.kind == "prose":
                self._draw_prose(draw, style, layout, font_size, y)
            else:
                self._draw_code(draw, style, layout, font_size, y)
            y += layout.total_height
            if position < len(layouts) - 1:
                y += block_gap

    def _total_height(self, layouts: list[_BlockLayout], font_size: int) -> float:
        block_gap = round(font_size * 0.6)
        return sum(layout.total_height for layout in layouts) + max(0, len(layouts) - 1) * block_gap

    def _piece_font(self, piece: _Piece, font_size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        if piece.style.code:
            return load_font("mono", font_size)
        if piece.style.bold:
            return load_font("bold", font_size)
        return load_font("regular", font_size)

    def _word_width(self, draw: ImageDraw.ImageDraw, word: Word, font_size: int) -> float:
        return sum(
            draw.textlength(piece.text, font=self._piece_font(piece, font_size)) for piece in word
        )

    def _line_width(self, draw: ImageDraw.ImageDraw, words: list[Word], font_size: int) -> float:
        if not words:
            return 0.0
        space = draw.textlength(" ", font=load_font("regular", font_size))
        return sum(self._word_width(draw, word, font_size) for word in words) + space * (len(words) - 1)

    def _wrap_words(
        self,
        draw: ImageDraw.ImageDraw,
        words: list[Word],
        font_size: int,
        max_width: float,
    ) -> list[list[Word]]:
        lines: list[list[Word]] = []
        current: list[Word] = []
        for word in words:
            candidate = [*current, word]
            if current and self._line_width(draw, candidate, font_size) > max_width:
                lines.append(current)
                current = [word]
            else:
                current = candidate
        if current:
            lines.append(current)
        return lines

    def _layout(
        self,
        draw: ImageDraw.ImageDraw,
        blocks: list[MarkdownBlock],
        font_size: int,
        content_width: int,
    ) -> list[_BlockLayout]:
        layouts: list[_BlockLayout] = []
        for block in blocks:
            if block.kind == "prose":
                layouts.append(self._layout_prose(draw, block.content, font_size, content_width))
            else:
                layouts.append(self._layout_code(draw, block.content, font_size, content_width))
        return layouts

    def _layout_prose(
        self,
        draw: ImageDraw.ImageDraw,
        text: str,
        font_size: int,
        content_width: int,
    ) -> _BlockLayout:
        bullet_width = draw.textlength(BULLET, font=load_font("regular", font_size))
        lines: list[_TextLine] = []
        has_list = False
        for paragraph in text.split("\n"):
            stripped = paragraph.strip()
            if not stripped:
                lines.append(_TextLine(kind="prose"))
                continue
            list_match = re.match(r"^[-*\u2022]\s+(.*)", stripped, flags=re.DOTALL)
            if list_match is None:
                for words in self._wrap_words(draw, _split_words(stripped), font_size, content_width):
                    lines.append(_TextLine(kind="prose", words=words))
                continue
            has_list = True
            wrapped = self._wrap_words(
                draw,
                _split_words(list_match.group(1)),
                font_size,
                content_width - bullet_width,
            )
            for position, words in enumerate(wrapped):
                lines.append(_TextLine(kind="bullet" if position == 0 else "continuation", words=words))

        line_height = font_size * 1.4
        return _BlockLayout(
            kind="prose",
            line_height=line_height,
            total_height=len(lines) * line_height,
            text_lines=lines,
            has_list=has_list,
        )

    def _layout_code(
        self,
        draw: ImageDraw.ImageDraw,
        text: str,
        font_size: int,
        content_width: int,
    ) -> _BlockLayout:
        code_size = _code_font_size(font_size)
        padding = max(10, round(font_size * 0.32))
        font = load_font("mono", code_size)
        max_width = content_width - 2 * padding
        lines: list[str] = []
        for raw_line in text.split("\n"):
            if not raw_line or draw.textlength(raw_line, font=font) <= max_width:
                lines.append(raw_line)
                continue
            current = ""
            for char in raw_line:
                if current and draw.textlength(current + char, font=font) > max_width:
                    lines.append(current)
                    current = char
                else:
                    current += char
            if current:
                lines.append(current)

        line_height = code_size * 1.35
        return _BlockLayout(
            kind="code",
            line_height=line_height,
            total_height=len(lines) * line_height + 2 * padding,
            code_lines=lines,
            code_padding=padding,
        )

    def _draw_prose(
        self,
        draw: ImageDraw.ImageDraw,
        style: SlideStyle,
        layout: _BlockLayout,
        font_size: int,
        top: float,
    ) -> None:
        regular = load_font("regular", font_size)
        space = draw.textlength(" ", font=regular)
        bullet_width = draw.textlength(BULLET, font=regular) if layout.has_list else 0.0
        baseline = top + font_size
        for line in layout.text_lines:
            if not line.words:
                baseline += layout.line_height
                continue
            if line.kind == "prose":
                x = (style.width - self._line_width(draw, line.words, font_size)) / 2
            elif line.kind == "bullet":
                draw.text((CONTENT_MARGIN, baseline), BULLET, fill=style.text_color, font=regular, anchor="ls")
                x = CONTENT_MARGIN + bullet_width
            else:
                x = CONTENT_MARGIN + bullet_width

            for word in line.words:
                for piece in word:
                    font = self._piece_font(piece, font_size)
                    color = CODE_TEXT if piece.style.code else style.text_color
                    draw.text((x, baseline), piece.text, fill=color, font=font, anchor="ls")
                    x += draw.textlength(piece.text, font=font)
                x += space
            baseline += layout.line_height

    def _draw_code(
        self,
        draw: ImageDraw.ImageDraw,
        style: SlideStyle,
        layout: _BlockLayout,
        font_size: int,
        top: float,
    ) -> None:
        draw.rounded_rectangle(
            (CODE_BOX_MARGIN, top, style.width - CODE_BOX_MARGIN, top + layout.total_height),
            radius=8,
            fill=CODE_BACKGROUND,
            outline=CODE_BORDER,
            width=1,
        )
        code_size = _code_font_size(font_size)
        font = load_font("mono", code_size)
        baseline = top + layout.code_padding + code_size
        for line in layout.code_lines:
            draw.text(
                (CODE_BOX_MARGIN + layout.code_padding, baseline),
                line,
                fill=CODE_TEXT,
                font=font,
                anchor="ls",
            )
            baseline += layout.line_height
