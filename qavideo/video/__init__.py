"""Clip encoding and ordered concatenation."""

from .encoder import FfmpegEncoder, VideoEncoder, write_concat_list
from .progress import ConcatProgressTracker

__all__ = ["ConcatProgressTracker", "FfmpegEncoder", "VideoEncoder", "write_concat_list"]
