"""Input loading components."""

from .deck_loader import load_deck, parse_deck_settings

__all__ = ["load_deck", "parse_deck_settings"]
