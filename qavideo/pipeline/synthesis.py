"""Narration stage helpers for the qa-video pipeline.

Responsibilities:
- Build audio plans and split cache misses across main and code voice pools.
- Run both pools concurrently; spawn a pool only when it has work.
- Stitch multi-part answers and measure every final narration file.
- Remove stale narration files scoped to each card's prefixes.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import as_completed
from dataclasses import dataclass
import wave

from ..cache.store import is_cached, remove_stale
from ..concurrency import run_bounded
from ..config import VideoConfig
from ..errors import PipelineStageError, SynthesisError, WorkerInitError
from ..models.datatypes import AudioPlan, Card, Segment, SegmentType, SynthPart
from ..tts.plan import CardAudioPlans, build_card_audio_plans
from ..tts.pool import TTSWorkerPool
from ..tts.synthesizer import wav_duration_seconds


@dataclass(frozen=True, slots=True)
class _PoolWork:
    """Cache-missing parts assigned to one voice pool."""

    name: str
    voice: str
    size: int
    parts: tuple[SynthPart, ...]


class PipelineSynthesisMixin:
    """Provide narration-stage helper methods."""

    def _synthesize(
        self,
        config: VideoConfig,
        cards: Sequence[Card],
        *,
        require_cached: bool = False,
    ) -> list[Segment]:
        """Produce one measured `Segment` per question and answer, in card order."""

        config.cache_dir.mkdir(parents=True, exist_ok=True)
        card_plans = [
            build_card_audio_plans(
                index,
                card.question,
                card.answer,
                config.cache_dir,
                config.voice,
                config.code_voice,
            )
            for index, card in enumerate(cards)
        ]
        force = config.force and not require_cached
        plans = [plan for card_plan in card_plans for plan in (card_plan.question, card_plan.answer)]

        pending: list[SynthPart] = []
        for plan in plans:
            if is_cached(plan.final_audio_path, force):
                self._count("synthesize_cached")
                self._log_event("synthesize", "cache-hit", file=plan.final_audio_path.name)
                continue
            pending.extend(part for part in plan.parts if not is_cached(part.audio_path, force))

        if require_cached and pending:
            raise PipelineStageError(
                stage="audio-cache",
                detail=(
                    f"{len(pending)} narration file(s) are missing from cache "
                    f"`{config.cache_dir}`; update mode does not synthesize speech."
                ),
                hint="Run `qa-video generate` for this deck first, then rerun `update`.",
            )

        self._run_synthesis_jobs(config, pending)
        for plan in plans:
            if plan.is_multi_part and not is_cached(plan.final_audio_path, force):
                self._merge_plan(plan)

        segments: list[Segment] = []
        for card_plan, card in zip(card_plans, cards):
            segments.append(
                self._measure_segment(config, card_plan, "question", card.question, len(cards))
            )
            segments.append(
                self._measure_segment(config, card_plan, "answer", card.answer, len(cards))
            )

        for card_plan in card_plans:
            self._remove_stale_audio(config, card_plan)
        return segments

    def _pool_work(self, config: VideoConfig, pending: Sequence[SynthPart]) -> list[_PoolWork]:
        """Partition pending parts by voice into at most two pool assignments."""

        main_parts = tuple(part for part in pending if part.voice == config.voice)
        code_parts = tuple(part for part in pending if part.voice != config.voice)
        work: list[_PoolWork] = []
        if main_parts:
            work.append(_PoolWork("main", config.voice, config.tts_workers, main_parts))
        if code_parts:
            work.append(_PoolWork("code", config.code_voice, config.code_tts_workers, code_parts))
        return work

    def _run_synthesis_jobs(self, config: VideoConfig, pending: Sequence[SynthPart]) -> None:
        """Synthesize all pending parts, one pool per voice, pools in parallel."""

        work = self._pool_work(config, pending)
        if not work:
            return
        self._count("synthesize_jobs", len(pending))
        tasks: list[Callable[[], None]] = [
            lambda item=item: self._drain_pool(item) for item in work
        ]
        run_bounded(tasks, limit=len(tasks))

    def _drain_pool(self, work: _PoolWork) -> None:
        """Start one pool, run its jobs to completion, and shut it down."""

        pool = TTSWorkerPool(
            size=min(work.size, len(work.parts)),
            synthesizer_factory=self._synthesizer_factory,
            name=work.name,
        )
        self._log_event(
            "synthesize",
            "pool-start",
            pool=work.name,
            voice=work.voice,
            workers=pool.size,
            jobs=len(work.parts),
        )
        try:
            try:
                pool.init(work.voice)
            except WorkerInitError as exc:
                raise PipelineStageError(
                    stage="tts",
                    detail=str(exc),
                    hint="Install the TTS backend with `pip install qa-video[kokoro]` and check the voice name.",
                ) from exc

            futures = {pool.synthesize(part.tts_text, part.audio_path): part for part in work.parts}
            first_failure: SynthesisError | None = None
            for completed, future in enumerate(as_completed(futures), start=1):
                part = futures[future]
                try:
                    duration = future.result()
                except SynthesisError as exc:
                    first_failure = first_failure or exc
                    self._log_event(
                        "synthesize",
                        "job-failed",
                        pool=work.name,
                        file=part.audio_path.name,
                    )
                    continue
                self._log_event(
                    "synthesize",
                    "job-done",
                    pool=work.name,
                    file=part.audio_path.name,
                    progress=f"{completed}/{len(futures)}",
                    seconds=duration,
                )
            if first_failure is not None:
                raise PipelineStageError(
                    stage="tts",
                    detail=str(first_failure),
                    hint="Rerun the command; finished narration files are reused from cache.",
                ) from first_failure
        finally:
            pool.terminate()
            self._count(f"synthesize_peak_busy_{work.name}", pool.peak_busy)

    def _merge_plan(self, plan: AudioPlan) -> None:
        """Stitch a multi-part plan's parts, in order, into its final file."""

        try:
            self._audio_merger.merge([part.audio_path for part in plan.parts], plan.final_audio_path)
        except (OSError, EOFError, ValueError, wave.Error) as exc:
            raise PipelineStageError(
                stage="merge",
                detail=f"Failed to stitch `{plan.final_audio_path.name}`: {exc}",
                hint="Rerun with `--force` to regenerate the narration parts.",
            ) from exc
        self._count("synthesize_merged")
        self._log_event("synthesize", "merged", file=plan.final_audio_path.name, parts=len(plan.parts))

    def _measure_segment(
        self,
        config: VideoConfig,
        card_plan: CardAudioPlans,
        segment_type: SegmentType,
        text: str,
        total_cards: int,
    ) -> Segment:
        """Probe a final narration file and build its `Segment`."""

        if segment_type == "question":
            plan, delay = card_plan.question, config.question_delay
        else:
            plan, delay = card_plan.answer, config.answer_delay
        try:
            audio_duration = wav_duration_seconds(plan.final_audio_path)
        except SynthesisError as exc:
            raise PipelineStageError(
                stage="audio-cache",
                detail=str(exc),
                hint="Rerun with `--force` to regenerate narration.",
            ) from exc
        return Segment(
            type=segment_type,
            text=text,
            card_index=card_plan.card_index,
            total_cards=total_cards,
            audio_path=plan.final_audio_path,
            audio_duration=audio_duration,
            total_duration=audio_duration + delay,
        )

    def _remove_stale_audio(self, config: VideoConfig, card_plan: CardAudioPlans) -> None:
        """Best-effort cleanup of superseded narration files for one card."""

        for prefix, plan in (
            (card_plan.question_prefix, card_plan.question),
            (card_plan.answer_prefix, card_plan.answer),
        ):
            report = remove_stale(
                config.cache_dir,
                prefix,
                "wav",
                plan.final_audio_path,
                extra_keep=plan.audio_paths,
            )
            self._count("synthesize_stale_removed", len(report.removed))
            # Undeletable stale files only waste disk space.
            _ = report.failed
