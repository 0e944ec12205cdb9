"""Content hashing for the content-addressed artifact cache.

Responsibilities:
- Derive short stable identifiers from canonical identity payloads.
- Compose `<prefix>_<hash>.<ext>` artifact paths inside a cache directory.
"""

from __future__ import annotations

from hashlib import sha256
import json
from pathlib import Path
from typing import Any

SHORT_HASH_LENGTH = 8


def _canonical_identity(value: Any) -> Any:
    """Normalize identity payload values into JSON-stable structures."""

    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, list | tuple):
        return [_canonical_identity(item) for item in value]
    if isinstance(value, dict):
        return {
            str(key): _canonical_identity(value[key])
            for key in sorted(value.keys(), key=str)
        }
    return value


def canonical_json(identity: Any) -> str:
    """Serialize an identity payload to its canonical compact JSON form."""

    return json.dumps(
        _canonical_identity(identity),
        sort_keys=True,
        ensure_ascii=True,
        separators=(",", ":"),
    )


def content_hash(identity: Any) -> str:
    """Return the truncated SHA-256 hex digest of an identity payload.

    Strings are hashed as their JSON encoding, so `content_hash("x")` and
    `content_hash(["x"])` differ.
    """

    digest = sha256(canonical_json(identity).encode("utf-8")).hexdigest()
    return digest[:SHORT_HASH_LENGTH]


def cached_path(directory: Path, prefix: str, identity: Any, ext: str) -> Path:
    """Compose the content-addressed artifact path for one identity.

    Args:
        directory: Cache directory that holds the artifact.
        prefix: Artifact family prefix such as `q_0` or `slide_a_3`.
        identity: Every semantic input that affects the artifact's bytes.
        ext: File extension without leading dot.

    Returns:
        Path named `<prefix>_<hash>.<ext>` under `directory`.
    """

    return directory / f"{prefix}_{content_hash(identity)}.{ext.lstrip('.')}"
