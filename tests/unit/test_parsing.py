"""Unit tests for shared value parsing helpers."""

import pytest

from qavideo.parsing import normalize_optional_string, parse_non_negative_seconds, parse_positive_int


def test_normalize_optional_string_handles_blank_values() -> None:
    """Normalization should return `None` for `None` and blank textual values."""

    assert normalize_optional_string(None) is None
    assert normalize_optional_string("") is None
    assert normalize_optional_string("   ") is None


def test_normalize_optional_string_strips_non_blank_values() -> None:
    """Normalization should return stripped content for non-empty values."""

    assert normalize_optional_string("  value  ") == "value"
    assert normalize_optional_string(42) == "42"


@pytest.mark.parametrize(("value", "expected"), [(0, 0.0), (2, 2.0), ("1.5", 1.5), (" 3 ", 3.0)])
def test_parse_non_negative_seconds_accepts_numbers(value: object, expected: float) -> None:
    """Numbers and numeric strings should parse to float seconds."""

    assert parse_non_negative_seconds(value, "cardGap") == expected


@pytest.mark.parametrize("value", [-1, "-0.5", "soon", "", True, float("inf"), float("nan")])
def test_parse_non_negative_seconds_rejects_invalid_values(value: object) -> None:
    """Negative, non-numeric, boolean, and non-finite values should be rejected."""

    with pytest.raises(ValueError, match="`cardGap` must be a non-negative number of seconds"):
        parse_non_negative_seconds(value, "cardGap")


def test_parse_positive_int_accepts_integers_and_strings() -> None:
    """Positive integers may be given as numbers or strings."""

    assert parse_positive_int(52, "fontSize") == 52
    assert parse_positive_int(" 40 ", "fontSize") == 40


@pytest.mark.parametrize("value", [0, -3, "1.5", "big", False])
def test_parse_positive_int_rejects_invalid_values(value: object) -> None:
    """Zero, negatives, fractions, text, and booleans should be rejected."""

    with pytest.raises(ValueError, match="`fontSize` must be a positive integer"):
        parse_positive_int(value, "fontSize")
