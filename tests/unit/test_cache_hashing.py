"""Unit tests for content hashing and cache path composition."""

from __future__ import annotations

from pathlib import Path

from qavideo.cache.hashing import SHORT_HASH_LENGTH, cached_path, canonical_json, content_hash


def test_content_hash_is_stable_short_hex() -> None:
    """Equal identities should hash equally to an 8-character hex digest."""

    first = content_hash(["audio", "What is DNS?", "af_heart"])
    second = content_hash(["audio", "What is DNS?", "af_heart"])

    assert first == second
    assert len(first) == SHORT_HASH_LENGTH
    assert all(character in "0123456789abcdef" for character in first)


def test_content_hash_changes_with_any_identity_field() -> None:
    """Every identity element should contribute to the digest."""

    base = content_hash(["audio", "text", "af_heart"])

    assert content_hash(["audio", "text", "am_adam"]) != base
    assert content_hash(["audio", "text ", "af_heart"]) != base
    assert content_hash(["audio-concat", "text", "af_heart"]) != base


def test_canonical_json_ignores_mapping_key_order() -> None:
    """Mapping identities should serialize independently of insertion order."""

    assert canonical_json({"b": 1, "a": [Path("x/y")]}) == canonical_json({"a": ["x/y"], "b": 1})


def test_numeric_identity_keeps_float_precision() -> None:
    """Durations differing in the third decimal must produce different keys."""

    assert content_hash(["clip", 3.125]) != content_hash(["clip", 3.126])


def test_cached_path_uses_prefix_hash_and_extension(tmp_path: Path) -> None:
    """Composed paths should follow `<prefix>_<hash>.<ext>` inside the directory."""

    identity = ["slide", "text"]
    path = cached_path(tmp_path, "slide_q_0", identity, ".png")

    assert path.parent == tmp_path
    assert path.name == f"slide_q_0_{content_hash(identity)}.png"
