"""Domain exceptions for pipeline and CLI diagnostics."""

from __future__ import annotations


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class SynthesisError(RuntimeError):
    """Raised for one failed TTS job; other jobs in the pool are unaffected."""


class WorkerInitError(RuntimeError):
    """Raised when a TTS worker fails to load its model during pool startup."""


class PoolClosedError(RuntimeError):
    """Raised for jobs still queued or in flight when their pool terminates."""


class ProtocolError(ValueError):
    """Raised when a worker IPC message is not part of the closed protocol."""


class EncoderError(RuntimeError):
    """Raised when an ffmpeg invocation exits unsuccessfully."""

    def __init__(self, message: str, *, output_path: str | None = None) -> None:
        """Initialize encoder failure with the artifact it was producing."""

        super().__init__(message)
        self.output_path = output_path
