"""Configuration model and resolution for qa-video runs.

Responsibilities:
- Define per-run video settings as a typed dataclass with validation.
- Resolve settings with precedence CLI override > deck setting > default.
- Derive default output and cache paths from the deck location.

Key types:
- `VideoConfig`: normalized settings for one pipeline run.
- `ConfigOverrides`: values explicitly given on the command line.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from PIL import ImageColor

from .concurrency import default_concurrency
from .models.datatypes import DeckSettings
from .render.slides import SlideStyle
from .tts.pool import CODE_POOL_SIZE, default_pool_size

DEFAULT_VOICE = "af_heart"
DEFAULT_CODE_VOICE = "am_adam"
DEFAULT_QUESTION_DELAY = 2.0
DEFAULT_ANSWER_DELAY = 3.0
DEFAULT_CARD_GAP = 1.0
DEFAULT_FONT_SIZE = 52
DEFAULT_BACKGROUND_COLOR = "#1a1a2e"
DEFAULT_QUESTION_COLOR = "#16213e"
DEFAULT_ANSWER_COLOR = "#0f3460"
DEFAULT_TEXT_COLOR = "#ffffff"
DEFAULT_WIDTH = 1920
DEFAULT_HEIGHT = 1080
CACHE_DIR_NAME = ".tmp"


@dataclass(frozen=True, slots=True)
class ConfigOverrides:
    """Values given explicitly on the command line; `None` means not given."""

    output_path: Path | None = None
    cache_dir: Path | None = None
    voice: str | None = None
    code_voice: str | None = None
    question_delay: float | None = None
    answer_delay: float | None = None
    card_gap: float | None = None
    font_size: int | None = None
    force: bool = False
    tts_workers: int | None = None
    encode_concurrency: int | None = None


@dataclass(slots=True)
class VideoConfig:
    """Runtime configuration for one pipeline run.

    Attributes:
        input_path: Source deck YAML file.
        output_path: Final MP4 path.
        cache_dir: Directory holding content-addressed intermediate artifacts.
        voice: Main narration voice.
        code_voice: Narration voice for code.
        question_delay: Pause after question narration, seconds.
        answer_delay: Pause after answer narration, seconds.
        card_gap: Gap slide duration between cards, seconds; `0` disables gaps.
        font_size: Slide body font size in pixels.
        background_color: Gap slide color.
        question_color: Question slide color.
        answer_color: Answer slide color.
        text_color: Slide text color.
        width: Video width in pixels.
        height: Video height in pixels.
        force: Bypass every cache check and regenerate all artifacts.
        tts_workers: Main-voice TTS pool size.
        code_tts_workers: Code-voice TTS pool size.
        encode_concurrency: Maximum concurrent clip encodes.
        title: Optional deck title.
        description: Optional deck description.
    """

    input_path: Path
    output_path: Path
    cache_dir: Path
    voice: str = DEFAULT_VOICE
    code_voice: str = DEFAULT_CODE_VOICE
    question_delay: float = DEFAULT_QUESTION_DELAY
    answer_delay: float = DEFAULT_ANSWER_DELAY
    card_gap: float = DEFAULT_CARD_GAP
    font_size: int = DEFAULT_FONT_SIZE
    background_color: str = DEFAULT_BACKGROUND_COLOR
    question_color: str = DEFAULT_QUESTION_COLOR
    answer_color: str = DEFAULT_ANSWER_COLOR
    text_color: str = DEFAULT_TEXT_COLOR
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    force: bool = False
    tts_workers: int = 0
    code_tts_workers: int = CODE_POOL_SIZE
    encode_concurrency: int = 0
    title: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        """Fill CPU-derived defaults left at zero."""

        if self.tts_workers == 0:
            self.tts_workers = default_pool_size()
        if self.encode_concurrency == 0:
            self.encode_concurrency = default_concurrency()

    def validate(self) -> None:
        """Validate configuration values before pipeline execution."""

        self._require_non_empty(self.voice, "voice")
        self._require_non_empty(self.code_voice, "code_voice")
        for field_name in ("question_delay", "answer_delay", "card_gap"):
            value = getattr(self, field_name)
            if value < 0:
                raise ValueError(f"`{field_name}` must be a non-negative number of seconds.")
        for field_name in ("font_size", "width", "height", "tts_workers", "code_tts_workers", "encode_concurrency"):
            if getattr(self, field_name) <= 0:
                raise ValueError(f"`{field_name}` must be a positive integer.")
        for field_name in ("background_color", "question_color", "answer_color", "text_color"):
            self._validate_color(getattr(self, field_name), field_name)

    def slide_style(self) -> SlideStyle:
        """Return the visual parameters shared by every slide."""

        return SlideStyle(
            width=self.width,
            height=self.height,
            font_size=self.font_size,
            background_color=self.background_color,
            question_color=self.question_color,
            answer_color=self.answer_color,
            text_color=self.text_color,
        )

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        """Validate that string fields are not empty."""

        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"`{field_name}` must be a non-empty string.")

    @staticmethod
    def _validate_color(value: str, field_name: str) -> None:
        """Validate a color string Pillow can render."""

        try:
            ImageColor.getrgb(value)
        except ValueError as exc:
            raise ValueError(f"`{field_name}` is not a valid color: `{value}`.") from exc


def default_output_path(deck_path: Path) -> Path:
    """Return `<deck dir>/../output/<deck stem>.mp4`."""

    return deck_path.parent.parent / "output" / f"{deck_path.stem}.mp4"


def default_cache_dir(output_path: Path, deck_path: Path) -> Path:
    """Return `<output dir>/.tmp/<deck stem>`."""

    return output_path.parent / CACHE_DIR_NAME / deck_path.stem


def resolve_video_config(
    deck_path: Path,
    settings: DeckSettings,
    overrides: ConfigOverrides | None = None,
) -> VideoConfig:
    """Resolve one run's configuration field by field.

    Each value comes from the CLI override when given, else the deck's
    `config:` mapping, else the built-in default.
    """

    cli = overrides or ConfigOverrides()
    deck_path = deck_path.resolve()
    output_path = (cli.output_path or default_output_path(deck_path)).resolve()
    cache_dir = (cli.cache_dir or default_cache_dir(output_path, deck_path)).resolve()

    layered: dict[str, object] = {}
    for field_name in (
        "voice",
        "code_voice",
        "question_delay",
        "answer_delay",
        "card_gap",
        "font_size",
    ):
        value = _first_given(getattr(cli, field_name), getattr(settings, field_name))
        if value is not None:
            layered[field_name] = value
    for field_name in ("background_color", "question_color", "answer_color", "text_color"):
        value = getattr(settings, field_name)
        if value is not None:
            layered[field_name] = value

    config = VideoConfig(
        input_path=deck_path,
        output_path=output_path,
        cache_dir=cache_dir,
        force=cli.force,
        tts_workers=cli.tts_workers or 0,
        encode_concurrency=cli.encode_concurrency or 0,
        title=settings.name,
        description=settings.description,
        **layered,
    )
    config.validate()
    return config


def _first_given(*values: object) -> object:
    for value in values:
        if value is not None:
            return value
    return None

