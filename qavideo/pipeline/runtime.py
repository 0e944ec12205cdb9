"""Runtime configuration and deck-loading helpers for the qa-video pipeline.

Responsibilities:
- Resolve and validate run configuration from deck settings and CLI overrides.
- Load deck cards and map failures to stage-aware errors.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from ..config import ConfigOverrides, VideoConfig, resolve_video_config
from ..errors import PipelineStageError
from ..io.deck_loader import load_deck
from ..models.datatypes import Deck


class PipelineRuntimeMixin:
    """Provide runtime/config helper methods for pipeline orchestration."""

    def load_config(self, deck_path: Path, overrides: ConfigOverrides | None = None) -> VideoConfig:
        """Resolve a validated run configuration for one deck file."""

        deck = self._load_deck(deck_path)
        try:
            return resolve_video_config(deck_path, deck.settings, overrides)
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=str(exc),
                hint="Fix the option value or the deck `config:` mapping and rerun.",
            ) from exc

    def _validate_config(self, config: VideoConfig) -> None:
        """Validate configuration and map failures to stage-aware error."""

        try:
            config.validate()
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=str(exc),
                hint="Fix the option value or the deck `config:` mapping and rerun.",
            ) from exc

    def _load_deck(self, deck_path: Path) -> Deck:
        """Load one deck and map read/parse failures to the `parse` stage."""

        try:
            return load_deck(deck_path)
        except FileNotFoundError as exc:
            raise PipelineStageError(
                stage="parse",
                detail=f"Deck file not found: `{deck_path}`.",
                hint="Check the input path and rerun.",
            ) from exc
        except yaml.YAMLError as exc:
            raise PipelineStageError(
                stage="parse",
                detail=f"Deck file `{deck_path}` is not valid YAML: {exc}",
                hint="Fix the YAML syntax and rerun.",
            ) from exc
        except (OSError, ValueError) as exc:
            raise PipelineStageError(
                stage="parse",
                detail=str(exc),
                hint="Each card needs a non-empty `question` and `answer`.",
            ) from exc
