"""Runtime executable resolution helpers.

Responsibilities:
- Resolve external executable paths with bundled-first precedence.
- Honor `<TOOL>_PATH` environment overrides such as `FFMPEG_PATH`.
- Support frozen app layouts (for example PyInstaller) and local development runs.
"""

from __future__ import annotations

import os
from pathlib import Path
import shutil
import sys


def resolve_executable(command_name: str) -> str:
    """Resolve an executable path.

    Resolution order:
    1. Bundled app directories (`./bin/<tool>` then `./<tool>` from app root).
    2. `<TOOL>_PATH` environment variable, e.g. `FFMPEG_PATH`.
    3. System `PATH`.
    4. Raw command name (letting subprocess raise a native missing-binary error).
    """

    normalized = command_name.strip()
    if not normalized:
        return command_name

    for candidate in _bundled_candidates(normalized):
        if candidate.is_file():
            return str(candidate)

    override = os.environ.get(_env_var_name(normalized), "").strip()
    if override:
        return override

    resolved_path = shutil.which(normalized)
    if resolved_path is not None:
        return resolved_path

    return normalized


def _env_var_name(command_name: str) -> str:
    """Return environment override name for a tool (`ffmpeg` -> `FFMPEG_PATH`)."""

    stem = command_name[:-4] if command_name.lower().endswith(".exe") else command_name
    return f"{stem.upper().replace('-', '_')}_PATH"


def _bundled_candidates(command_name: str) -> list[Path]:
    """Return bundled candidate paths for one executable name."""

    app_root = _app_root()
    candidates: list[Path] = []
    for name in _candidate_names(command_name):
        candidates.append(app_root / "bin" / name)
        candidates.append(app_root / name)
    return candidates


def _candidate_names(command_name: str) -> tuple[str, ...]:
    """Return command name variants including Windows `.exe` fallback."""

    if command_name.lower().endswith(".exe"):
        return (command_name,)
    return (command_name, f"{command_name}.exe")


def _app_root() -> Path:
    """Resolve runtime application root for frozen and non-frozen execution."""

    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]
