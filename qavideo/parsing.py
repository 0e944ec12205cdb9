"""Shared parsing helpers for deck settings and CLI value normalization."""

from __future__ import annotations


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_non_negative_seconds(value: object, field_name: str) -> float:
    """Parse a non-negative duration in seconds from a number or numeric string.

    Raises:
        ValueError: If the value is boolean, non-numeric, negative, or not finite.
    """

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a non-negative number of seconds.")
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        normalized = normalize_optional_string(value)
        if normalized is None:
            raise ValueError(f"`{field_name}` must be a non-negative number of seconds.")
        try:
            parsed = float(normalized)
        except ValueError as exc:
            raise ValueError(
                f"`{field_name}` must be a non-negative number of seconds."
            ) from exc

    if parsed != parsed or parsed in (float("inf"), float("-inf")) or parsed < 0:
        raise ValueError(f"`{field_name}` must be a non-negative number of seconds.")
    return parsed


def parse_positive_int(value: object, field_name: str) -> int:
    """Parse a strictly positive integer from an int or numeric string."""

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a positive integer.")
    if isinstance(value, int):
        parsed = value
    else:
        normalized = normalize_optional_string(value)
        if normalized is None:
            raise ValueError(f"`{field_name}` must be a positive integer.")
        try:
            parsed = int(normalized)
        except ValueError as exc:
            raise ValueError(f"`{field_name}` must be a positive integer.") from exc
    if parsed <= 0:
        raise ValueError(f"`{field_name}` must be a positive integer.")
    return parsed
