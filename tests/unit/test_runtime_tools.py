"""Unit tests for deterministic runtime executable resolution."""

from __future__ import annotations

from pathlib import Path

from pytest import MonkeyPatch

from qavideo import runtime_tools


def test_resolve_executable_prefers_bundled_bin_over_path(
    monkeypatch: MonkeyPatch,
    tmp_path: Path,
) -> None:
    """Bundled `bin` executable should take precedence over PATH discovery."""

    bundled_bin = tmp_path / "bin"
    bundled_bin.mkdir(parents=True, exist_ok=True)
    bundled_tool = bundled_bin / "ffmpeg"
    bundled_tool.write_text("stub", encoding="utf-8")
    monkeypatch.setattr(runtime_tools, "_app_root", lambda: tmp_path)
    monkeypatch.setenv("FFMPEG_PATH", "/opt/ffmpeg/bin/ffmpeg")
    monkeypatch.setattr(runtime_tools.shutil, "which", lambda _: "/usr/bin/ffmpeg")

    resolved = runtime_tools.resolve_executable("ffmpeg")

    assert resolved == str(bundled_tool)


def test_resolve_executable_honors_environment_override(
    monkeypatch: MonkeyPatch,
    tmp_path: Path,
) -> None:
    """`FFMPEG_PATH` should win over PATH lookup when nothing is bundled."""

    monkeypatch.setattr(runtime_tools, "_app_root", lambda: tmp_path)
    monkeypatch.setenv("FFMPEG_PATH", "/opt/ffmpeg/bin/ffmpeg")
    monkeypatch.setattr(runtime_tools.shutil, "which", lambda _: "/usr/bin/ffmpeg")

    assert runtime_tools.resolve_executable("ffmpeg") == "/opt/ffmpeg/bin/ffmpeg"


def test_resolve_executable_falls_back_to_path_then_name(
    monkeypatch: MonkeyPatch,
    tmp_path: Path,
) -> None:
    """PATH lookup is used next, and the raw name when nothing is found."""

    monkeypatch.setattr(runtime_tools, "_app_root", lambda: tmp_path)
    monkeypatch.delenv("FFMPEG_PATH", raising=False)
    monkeypatch.setattr(runtime_tools.shutil, "which", lambda _: "/usr/bin/ffmpeg")
    assert runtime_tools.resolve_executable("ffmpeg") == "/usr/bin/ffmpeg"

    monkeypatch.setattr(runtime_tools.shutil, "which", lambda _: None)
    assert runtime_tools.resolve_executable("ffmpeg") == "ffmpeg"
