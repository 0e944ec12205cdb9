"""Shared pytest fixtures for the full qa-video test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.fakes import write_deck


@pytest.fixture
def deck_path(tmp_path: Path) -> Path:
    """Provide a two-card deck inside a `decks/` directory."""

    return write_deck(
        tmp_path / "decks" / "basics.yaml",
        [
            ("What is a container?", "An isolated process with its own filesystem."),
            ("What does `ls` do?", "It lists directory contents."),
        ],
    )
