"""Deck file loading.

Responsibilities:
- Parse a YAML deck into ordered cards and file-level settings.
- Accept `questions:`/`cards:` lists and `question`/`answer` or `q`/`a` keys.
- Validate the `config:` mapping, accepting camelCase keys and snake_case aliases.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml

from ..models.datatypes import Card, Deck, DeckSettings
from ..parsing import normalize_optional_string, parse_non_negative_seconds, parse_positive_int

_SETTING_ALIASES = {
    "name": "name",
    "description": "description",
    "questionDelay": "question_delay",
    "question_delay": "question_delay",
    "answerDelay": "answer_delay",
    "answer_delay": "answer_delay",
    "cardGap": "card_gap",
    "card_gap": "card_gap",
    "voice": "voice",
    "codeVoice": "code_voice",
    "code_voice": "code_voice",
    "fontSize": "font_size",
    "font_size": "font_size",
    "backgroundColor": "background_color",
    "background_color": "background_color",
    "questionColor": "question_color",
    "question_color": "question_color",
    "answerColor": "answer_color",
    "answer_color": "answer_color",
    "textColor": "text_color",
    "text_color": "text_color",
}
# Publishing metadata carried by deck files; not consumed by rendering.
_INFORMATIONAL_KEYS = frozenset({"youtube"})
_SECONDS_FIELDS = frozenset({"question_delay", "answer_delay", "card_gap"})


def load_deck(path: Path) -> Deck:
    """Load and validate a YAML deck file.

    Raises:
        ValueError: If the file is not a mapping, has no cards, a card lacks
            a question or answer, or `config:` holds invalid values.
    """

    payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(payload, Mapping):
        raise ValueError(f"Invalid deck file `{path}`: expected a top-level mapping.")

    raw_cards = payload.get("questions") or payload.get("cards") or []
    if not isinstance(raw_cards, list) or not raw_cards:
        raise ValueError(f"No questions found in `{path}`.")

    cards = tuple(_parse_card(raw_card, position) for position, raw_card in enumerate(raw_cards, start=1))
    settings = parse_deck_settings(payload.get("config"), source_label=f"Deck `{path}`")
    return Deck(source=path, cards=cards, settings=settings)


def _parse_card(raw_card: Any, position: int) -> Card:
    """Normalize one card entry; `position` is 1-based for messages."""

    if not isinstance(raw_card, Mapping):
        raise ValueError(f"Card {position} must be a mapping with question and answer.")
    question = normalize_optional_string(_first_present(raw_card, "question", "q"))
    answer = normalize_optional_string(_first_present(raw_card, "answer", "a"))
    if question is None or answer is None:
        raise ValueError(f"Card {position} is missing question or answer.")
    return Card(question=question, answer=answer)


def _first_present(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value is not None and value != "":
            return value
    return None


def parse_deck_settings(raw: Any, source_label: str) -> DeckSettings:
    """Parse a deck `config:` mapping into `DeckSettings`."""

    if raw is None:
        return DeckSettings()
    if not isinstance(raw, Mapping):
        raise ValueError(f"{source_label} `config` must be a mapping.")

    unknown = sorted(
        str(key)
        for key in raw
        if key not in _SETTING_ALIASES and key not in _INFORMATIONAL_KEYS
    )
    if unknown:
        raise ValueError(f"{source_label} config includes unsupported key(s): {', '.join(unknown)}.")

    values: dict[str, Any] = {}
    for key, raw_value in raw.items():
        field_name = _SETTING_ALIASES.get(key)
        if field_name is None or raw_value is None:
            continue
        if field_name in values:
            raise ValueError(f"{source_label} config sets `{field_name}` more than once.")
        values[field_name] = _parse_setting(field_name, key, raw_value, source_label)
    return DeckSettings(**values)


def _parse_setting(field_name: str, key: str, raw_value: Any, source_label: str) -> Any:
    """Validate one setting value according to its field type."""

    try:
        if field_name in _SECONDS_FIELDS:
            return parse_non_negative_seconds(raw_value, key)
        if field_name == "font_size":
            return parse_positive_int(raw_value, key)
    except ValueError as exc:
        raise ValueError(f"{source_label} config: {exc}") from exc
    value = normalize_optional_string(raw_value)
    if value is None:
        raise ValueError(f"{source_label} config: `{key}` must be a non-empty string.")
    return value
