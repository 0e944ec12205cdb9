"""Filesystem cache store for content-addressed artifacts.

Responsibilities:
- Answer cache-hit checks honoring the global force flag.
- Remove stale artifacts scoped to one prefix, best-effort.
- Publish artifacts atomically so interrupted writes never look cached.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
import json
import os
from pathlib import Path


@dataclass(frozen=True, slots=True)
class CleanupReport:
    """Outcome of one stale-cleanup sweep.

    Attributes:
        removed: Paths deleted by the sweep.
        failed: Paths that matched but could not be deleted.
    """

    removed: tuple[Path, ...] = field(default_factory=tuple)
    failed: tuple[Path, ...] = field(default_factory=tuple)


def is_cached(path: Path, force: bool) -> bool:
    """Return whether `path` exists and caching is not disabled by `force`."""

    if force:
        return False
    return path.is_file()


def partial_path_for(path: Path) -> Path:
    """Return the in-progress sibling path used while `path` is being written."""

    return path.with_name(f"{path.stem}.partial{path.suffix}")


@contextmanager
def atomic_output(path: Path) -> Iterator[Path]:
    """Yield a temporary sibling path and publish it onto `path` on success.

    The temporary file is removed when the body raises; the error propagates.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    partial = partial_path_for(path)
    try:
        yield partial
    except BaseException:
        partial.unlink(missing_ok=True)
        raise
    if not partial.is_file():
        raise FileNotFoundError(f"Producer did not write expected artifact: {partial}")
    os.replace(partial, path)


def remove_stale(
    directory: Path,
    prefix: str,
    ext: str,
    keep_path: Path | None,
    extra_keep: Iterable[Path] = (),
) -> CleanupReport:
    """Delete files named `<prefix>_*.<ext>` except the kept paths.

    A `keep_path` of `None` treats every matching file as stale.

    Only names starting with `prefix + "_"` are candidates, so `a_3` never
    touches `a_30_*`. Deletion failures are collected instead of raised.
    """

    keep_names = {path.name for path in extra_keep}
    if keep_path is not None:
        keep_names.add(keep_path.name)
    name_prefix = f"{prefix}_"
    suffix = f".{ext.lstrip('.')}"
    removed: list[Path] = []
    failed: list[Path] = []
    try:
        candidates = sorted(directory.iterdir())
    except OSError:
        return CleanupReport()

    for candidate in candidates:
        name = candidate.name
        if not name.startswith(name_prefix) or not name.endswith(suffix):
            continue
        if name in keep_names:
            continue
        try:
            candidate.unlink()
        except OSError:
            failed.append(candidate)
            continue
        removed.append(candidate)
    return CleanupReport(removed=tuple(removed), failed=tuple(failed))


def save_json(path: Path, payload: dict[str, object]) -> Path:
    """Save JSON-serializable payload atomically and return final path."""

    with atomic_output(path) as partial:
        partial.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True),
            encoding="utf-8",
        )
    return path
