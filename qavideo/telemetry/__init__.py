"""Run logging for CLI-observable pipeline activity."""

from .logger import RunLogger

__all__ = ["RunLogger"]
