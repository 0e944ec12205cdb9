"""TTS worker process entry point.

Each worker loads one synthesizer for one voice, announces `Ready`, then
serves `SynthesisRequest` messages one at a time until `Shutdown` or until
the pool side of the pipe closes.
"""

from __future__ import annotations

from multiprocessing.connection import Connection
from pathlib import Path

from ..cache.store import atomic_output
from ..errors import ProtocolError
from .protocol import Done, Failed, InitFailed, Ready, Shutdown, decode_request
from .synthesizer import SynthesizerFactory, wav_duration_seconds


def _describe(exc: BaseException) -> str:
    """Render an exception as a one-line message for the pool."""

    return f"{type(exc).__name__}: {exc}"


def worker_main(connection: Connection, synthesizer_factory: SynthesizerFactory, voice: str) -> None:
    """Run the worker loop inside a spawned process."""

    try:
        synthesizer = synthesizer_factory(voice)
    except Exception as exc:
        connection.send(InitFailed(message=_describe(exc)))
        connection.close()
        return

    connection.send(Ready())
    try:
        while True:
            try:
                message = connection.recv()
            except EOFError:
                return
            try:
                request = decode_request(message)
            except ProtocolError:
                return
            if isinstance(request, Shutdown):
                return

            output_path = Path(request.output_path)
            try:
                with atomic_output(output_path) as partial_path:
                    synthesizer.synthesize(request.text, partial_path)
                duration = wav_duration_seconds(output_path)
            except Exception as exc:
                connection.send(Failed(job_id=request.job_id, message=_describe(exc)))
                continue
            connection.send(Done(job_id=request.job_id, duration_seconds=duration))
    finally:
        connection.close()
