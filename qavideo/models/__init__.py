"""Shared typed data models for qa-video.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    AudioPlan,
    Card,
    ClipDescriptor,
    Deck,
    DeckSettings,
    RunSummary,
    Segment,
    SynthPart,
)

__all__ = [
    "AudioPlan",
    "Card",
    "ClipDescriptor",
    "Deck",
    "DeckSettings",
    "RunSummary",
    "Segment",
    "SynthPart",
]
