"""Text segmentation and speech normalization.

This package provides the pure functions shared by audio planning and
slide rendering.
"""

from .markdown import (
    InlineRun,
    InlineStyle,
    MarkdownBlock,
    VoiceSegment,
    code_to_speech,
    parse_inline_markdown,
    parse_markdown,
    split_voice_segments,
)
from .normalizer import normalize_for_speech

__all__ = [
    "InlineRun",
    "InlineStyle",
    "MarkdownBlock",
    "VoiceSegment",
    "code_to_speech",
    "normalize_for_speech",
    "parse_inline_markdown",
    "parse_markdown",
    "split_voice_segments",
]
