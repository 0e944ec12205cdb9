"""Content-addressed cache primitives."""

from .hashing import cached_path, canonical_json, content_hash
from .store import CleanupReport, atomic_output, is_cached, remove_stale, save_json

__all__ = [
    "CleanupReport",
    "atomic_output",
    "cached_path",
    "canonical_json",
    "content_hash",
    "is_cached",
    "remove_stale",
    "save_json",
]
