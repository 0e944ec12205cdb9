"""Text-to-speech planning, worker pool, and synthesizer backends."""

from .plan import CardAudioPlans, build_audio_plan, build_card_audio_plans
from .pool import CODE_POOL_SIZE, TTSWorkerPool, WorkerState, default_pool_size
from .synthesizer import KokoroSynthesizer, Synthesizer, SynthesizerFactory, wav_duration_seconds

__all__ = [
    "CODE_POOL_SIZE",
    "CardAudioPlans",
    "KokoroSynthesizer",
    "Synthesizer",
    "SynthesizerFactory",
    "TTSWorkerPool",
    "WorkerState",
    "build_audio_plan",
    "build_card_audio_plans",
    "default_pool_size",
    "wav_duration_seconds",
]
