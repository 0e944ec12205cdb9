"""qa-video pipeline package.

This package contains the orchestrator and its stage mixins: narration,
slides, clip assembly, telemetry and the run summary.
"""

from .orchestrator import VideoPipeline

__all__ = ["VideoPipeline"]
