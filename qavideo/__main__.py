"""Module entrypoint for running qa-video as ``python -m qavideo``."""

from __future__ import annotations

from qavideo.cli import main


if __name__ == "__main__":
    main()
