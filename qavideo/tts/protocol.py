"""Closed message protocol between the TTS pool and its worker processes.

Requests flow pool -> worker, replies flow worker -> pool. Messages are
frozen dataclasses pickled over a `multiprocessing` pipe; both ends pass
every received object through `decode_request`/`decode_reply`, which reject
anything outside the protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
import math

from ..errors import ProtocolError


@dataclass(frozen=True, slots=True)
class SynthesisRequest:
    """Ask a worker to synthesize `text` into `output_path`."""

    job_id: int
    text: str
    output_path: str


@dataclass(frozen=True, slots=True)
class Shutdown:
    """Ask a worker to exit after its current job."""


@dataclass(frozen=True, slots=True)
class Ready:
    """Worker finished loading its model."""


@dataclass(frozen=True, slots=True)
class InitFailed:
    """Worker could not load its model."""

    message: str


@dataclass(frozen=True, slots=True)
class Done:
    """Job finished; the audio file exists at the requested path."""

    job_id: int
    duration_seconds: float


@dataclass(frozen=True, slots=True)
class Failed:
    """Job failed; other jobs are unaffected."""

    job_id: int
    message: str


Request = SynthesisRequest | Shutdown
Reply = Ready | InitFailed | Done | Failed


def _require_job_id(message: object, job_id: object) -> None:
    if isinstance(job_id, bool) or not isinstance(job_id, int) or job_id < 0:
        raise ProtocolError(f"Invalid job id in {type(message).__name__}: {job_id!r}")


def _require_text(message: object, field_name: str, value: object) -> None:
    if not isinstance(value, str):
        raise ProtocolError(f"`{field_name}` of {type(message).__name__} must be a string.")


def decode_request(message: object) -> Request:
    """Validate an object received by a worker and return it as a request."""

    if isinstance(message, Shutdown):
        return message
    if isinstance(message, SynthesisRequest):
        _require_job_id(message, message.job_id)
        _require_text(message, "text", message.text)
        _require_text(message, "output_path", message.output_path)
        if not message.output_path:
            raise ProtocolError("SynthesisRequest requires a non-empty output path.")
        return message
    raise ProtocolError(f"Unexpected request message: {message!r}")


def decode_reply(message: object) -> Reply:
    """Validate an object received by the pool and return it as a reply."""

    if isinstance(message, Ready):
        return message
    if isinstance(message, InitFailed):
        _require_text(message, "message", message.message)
        return message
    if isinstance(message, Done):
        _require_job_id(message, message.job_id)
        duration = message.duration_seconds
        if (
            isinstance(duration, bool)
            or not isinstance(duration, int | float)
            or not math.isfinite(duration)
            or duration < 0
        ):
            raise ProtocolError(f"Invalid duration in Done reply: {duration!r}")
        return message
    if isinstance(message, Failed):
        _require_job_id(message, message.job_id)
        _require_text(message, "message", message.message)
        return message
    raise ProtocolError(f"Unexpected reply message: {message!r}")
