"""Pipeline orchestration for qa-video.

Responsibilities:
- Define the stage order: parse, synthesize, slides, assemble.
- Chain content-addressed cache keys from narration through the final video.
- Aggregate per-stage counters into a persisted run summary.

Key types:
- `VideoPipeline`: orchestration facade.
"""

from __future__ import annotations

from collections.abc import Callable
import time

from ..audio.merger import AudioMerger
from ..config import VideoConfig
from ..models.datatypes import RunSummary
from ..render.slides import SlideRenderer
from ..telemetry.logger import RunLogger
from ..tts.synthesizer import KokoroSynthesizer, SynthesizerFactory
from ..video.encoder import FfmpegEncoder, VideoEncoder
from .assembly import PipelineAssemblyMixin
from .runtime import PipelineRuntimeMixin
from .slides import PipelineSlidesMixin
from .summary import PipelineSummaryMixin
from .synthesis import PipelineSynthesisMixin
from .telemetry import PipelineTelemetryMixin


class VideoPipeline(
    PipelineRuntimeMixin,
    PipelineSynthesisMixin,
    PipelineSlidesMixin,
    PipelineAssemblyMixin,
    PipelineSummaryMixin,
    PipelineTelemetryMixin,
):
    """Coordinate all stages for a single deck-to-video run."""

    def __init__(
        self,
        run_logger: RunLogger | None = None,
        stage_progress_callback: Callable[[str, int, int], None] | None = None,
        synthesizer_factory: SynthesizerFactory = KokoroSynthesizer,
        encoder: VideoEncoder | None = None,
        slide_renderer: SlideRenderer | None = None,
        audio_merger: AudioMerger | None = None,
    ) -> None:
        """Initialize logging hooks and the stage collaborators.

        `synthesizer_factory` is sent to spawned worker processes, so it must
        be picklable (a module-level class or function).
        """

        self._run_logger = run_logger
        self._stage_progress_callback = stage_progress_callback
        self._synthesizer_factory = synthesizer_factory
        self._encoder = encoder or FfmpegEncoder()
        self._slide_renderer = slide_renderer or SlideRenderer()
        self._audio_merger = audio_merger or AudioMerger()
        self._reset_counters()

    def run(self, config: VideoConfig) -> RunSummary:
        """Run the full pipeline, synthesizing any narration missing from cache."""

        return self._execute(config, require_cached_audio=False)

    def run_update(self, config: VideoConfig) -> RunSummary:
        """Re-render slides and video while reusing cached narration only.

        Raises `PipelineStageError(stage="audio-cache")` before any synthesis
        when a narration file is missing.
        """

        return self._execute(config, require_cached_audio=True)

    def _execute(self, config: VideoConfig, require_cached_audio: bool) -> RunSummary:
        self._validate_config(config)
        self._reset_counters()
        started = time.monotonic()

        deck = self._run_stage("parse", lambda: self._load_deck(config.input_path))
        self._count("parse_cards", len(deck.cards))

        segments = self._run_stage(
            "synthesize",
            lambda: self._synthesize(config, deck.cards, require_cached=require_cached_audio),
        )
        segments, gap_slide = self._run_stage(
            "slides",
            lambda: self._render_slides(config, segments, len(deck.cards)),
        )
        self._run_stage("assemble", lambda: self._assemble(config, segments, gap_slide))

        return self._write_summary(
            config,
            segments,
            card_count=len(deck.cards),
            elapsed_seconds=time.monotonic() - started,
            mode="update" if require_cached_audio else "generate",
        )
