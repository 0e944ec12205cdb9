"""Audio stitching components."""

from .merger import AudioMerger

__all__ = ["AudioMerger"]
