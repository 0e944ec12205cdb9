"""Top-level package for qa-video.

This package turns YAML question/answer decks into narrated slide videos,
caching every intermediate artifact by content. The main orchestration entry
point is `VideoPipeline`.
"""

from .pipeline import VideoPipeline

__all__ = ["VideoPipeline", "__version__"]

__version__ = "0.1.0"
