"""Fixed-size pool of out-of-process TTS workers.

Responsibilities:
- Spawn workers for one voice and wait until every worker reports ready.
- Multiplex a FIFO job queue onto idle workers, at most one job per worker.
- Resolve per-job futures independently; one failed job never fails others.
- Shut workers down and fail any job left queued or in flight.

Worker lifecycle: `starting -> ready -> busy -> ready -> ... -> terminated`.
"""

from __future__ import annotations

from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
import itertools
import math
import multiprocessing
from multiprocessing.connection import Connection
from multiprocessing.context import BaseContext
from multiprocessing.process import BaseProcess
import os
from pathlib import Path
import threading

from ..errors import PoolClosedError, ProtocolError, SynthesisError, WorkerInitError
from .protocol import Done, Failed, InitFailed, Ready, Shutdown, SynthesisRequest, decode_reply
from .synthesizer import KokoroSynthesizer, SynthesizerFactory
from .worker import worker_main

MAIN_POOL_CPU_FRACTION = 0.8
CODE_POOL_SIZE = 1


def default_pool_size(cpu_count: int | None = None) -> int:
    """Return main-voice pool size: 80% of available cores, at least one."""

    cores = cpu_count if cpu_count is not None else (os.cpu_count() or 1)
    return max(1, math.floor(cores * MAIN_POOL_CPU_FRACTION))


class WorkerState(Enum):
    """Lifecycle state of one pool worker."""

    STARTING = "starting"
    READY = "ready"
    BUSY = "busy"
    TERMINATED = "terminated"


@dataclass(slots=True)
class _Job:
    job_id: int
    text: str
    output_path: Path
    future: Future[float] = field(default_factory=Future)


@dataclass(slots=True)
class _WorkerHandle:
    index: int
    process: BaseProcess
    connection: Connection
    state: WorkerState = WorkerState.STARTING
    current_job: _Job | None = None
    listener: threading.Thread | None = None


_Resolution = tuple[Future[float], float | BaseException]


def _resolve(resolutions: list[_Resolution]) -> None:
    """Complete futures outside the pool lock so callbacks may re-enter the pool."""

    for future, outcome in resolutions:
        if future.done():
            continue
        if isinstance(outcome, BaseException):
            future.set_exception(outcome)
        else:
            future.set_result(outcome)


class TTSWorkerPool:
    """Pool of spawned TTS worker processes bound to a single voice.

    `synthesize` never blocks: it enqueues a job and returns a future that
    resolves with the audio duration in seconds.
    """

    def __init__(
        self,
        size: int | None = None,
        synthesizer_factory: SynthesizerFactory = KokoroSynthesizer,
        mp_context: BaseContext | None = None,
        name: str = "main",
        shutdown_timeout: float = 10.0,
    ) -> None:
        """Configure the pool; no process is started until `init`."""

        resolved_size = default_pool_size() if size is None else size
        if resolved_size < 1:
            raise ValueError("TTS pool size must be at least 1.")
        self.size = resolved_size
        self.name = name
        self.voice: str | None = None
        self.peak_busy = 0
        self._synthesizer_factory = synthesizer_factory
        self._context = mp_context or multiprocessing.get_context("spawn")
        self._shutdown_timeout = shutdown_timeout
        self._lock = threading.Lock()
        self._queue: deque[_Job] = deque()
        self._workers: list[_WorkerHandle] = []
        self._job_ids = itertools.count()
        self._busy = 0
        self._started = False
        self._closed = False

    def __enter__(self) -> TTSWorkerPool:
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.terminate()

    @property
    def worker_states(self) -> tuple[WorkerState, ...]:
        """Return a snapshot of every worker's lifecycle state."""

        with self._lock:
            return tuple(worker.state for worker in self._workers)

    @property
    def busy_count(self) -> int:
        """Return number of jobs currently dispatched and unresolved."""

        with self._lock:
            return self._busy

    def init(self, voice: str) -> None:
        """Spawn all workers and block until each reports ready.

        Raises:
            WorkerInitError: If any worker fails to load its model or exits early.
        """

        if self._started:
            raise RuntimeError(f"TTS pool `{self.name}` is already initialized.")
        self._started = True
        self.voice = voice

        for index in range(self.size):
            parent_end, child_end = self._context.Pipe(duplex=True)
            process = self._context.Process(
                target=worker_main,
                args=(child_end, self._synthesizer_factory, voice),
                name=f"tts-{self.name}-{index}",
                daemon=True,
            )
            process.start()
            child_end.close()
            self._workers.append(
                _WorkerHandle(index=index, process=process, connection=parent_end)
            )

        failures: list[str] = []
        for worker in self._workers:
            failure = self._await_ready(worker)
            if failure is not None:
                failures.append(f"worker {worker.index}: {failure}")

        if failures:
            self.terminate()
            raise WorkerInitError(
                f"TTS pool `{self.name}` failed to start for voice `{voice}`: "
                + "; ".join(failures)
            )

        for worker in self._workers:
            worker.listener = threading.Thread(
                target=self._listen,
                args=(worker,),
                name=f"tts-{self.name}-listener-{worker.index}",
                daemon=True,
            )
            worker.listener.start()

    def _await_ready(self, worker: _WorkerHandle) -> str | None:
        """Wait for the startup reply of one worker; return failure text or `None`."""

        try:
            reply = decode_reply(worker.connection.recv())
        except EOFError:
            worker.state = WorkerState.TERMINATED
            return "exited before reporting ready"
        except ProtocolError as exc:
            worker.state = WorkerState.TERMINATED
            return str(exc)
        if isinstance(reply, InitFailed):
            worker.state = WorkerState.TERMINATED
            return reply.message
        if not isinstance(reply, Ready):
            worker.state = WorkerState.TERMINATED
            return f"unexpected startup reply {type(reply).__name__}"
        worker.state = WorkerState.READY
        return None

    def synthesize(self, text: str, output_path: Path) -> Future[float]:
        """Enqueue one synthesis job and return its duration future."""

        with self._lock:
            if self._closed:
                raise PoolClosedError(f"TTS pool `{self.name}` is terminated.")
            if not self._started:
                raise RuntimeError(f"TTS pool `{self.name}` is not initialized.")
            job = _Job(job_id=next(self._job_ids), text=text, output_path=output_path)
            self._queue.append(job)
        self._dispatch()
        return job.future

    def _dispatch(self) -> None:
        """Hand queued jobs to idle workers in FIFO order."""

        resolutions: list[_Resolution] = []
        with self._lock:
            while self._queue and not self._closed:
                worker = next(
                    (item for item in self._workers if item.state is WorkerState.READY),
                    None,
                )
                if worker is None:
                    if all(item.state is WorkerState.TERMINATED for item in self._workers):
                        while self._queue:
                            job = self._queue.popleft()
                            resolutions.append(
                                (job.future, SynthesisError(f"TTS pool `{self.name}` has no live workers."))
                            )
                    break

                job = self._queue.popleft()
                if not job.future.set_running_or_notify_cancel():
                    continue
                request = SynthesisRequest(
                    job_id=job.job_id,
                    text=job.text,
                    output_path=str(job.output_path),
                )
                try:
                    worker.connection.send(request)
                except (OSError, ValueError) as exc:
                    worker.state = WorkerState.TERMINATED
                    resolutions.append(
                        (job.future, SynthesisError(f"TTS worker {worker.index} unreachable: {exc}"))
                    )
                    continue
                worker.state = WorkerState.BUSY
                worker.current_job = job
                self._busy += 1
                self.peak_busy = max(self.peak_busy, self._busy)
        _resolve(resolutions)

    def _listen(self, worker: _WorkerHandle) -> None:
        """Receive replies from one worker until its pipe closes."""

        while True:
            try:
                message = worker.connection.recv()
            except (EOFError, OSError):
                self._on_worker_exit(worker)
                return
            try:
                reply = decode_reply(message)
                resolution = self._complete_job(worker, reply)
            except ProtocolError as exc:
                self._on_protocol_error(worker, exc)
                return
            _resolve([resolution])
            self._dispatch()

    def _complete_job(self, worker: _WorkerHandle, reply: object) -> _Resolution:
        """Release the worker's current job matching a `Done`/`Failed` reply."""

        with self._lock:
            job = worker.current_job
            if not isinstance(reply, Done | Failed):
                raise ProtocolError(
                    f"TTS worker {worker.index} sent {type(reply).__name__} after startup."
                )
            if job is None or job.job_id != reply.job_id:
                raise ProtocolError(
                    f"TTS worker {worker.index} replied for unknown job {reply.job_id}."
                )
            worker.current_job = None
            worker.state = WorkerState.READY
            self._busy -= 1

        if isinstance(reply, Done):
            return job.future, reply.duration_seconds
        return job.future, SynthesisError(
            f"TTS job for `{job.output_path.name}` failed: {reply.message}"
        )

    def _release_worker(self, worker: _WorkerHandle) -> _Job | None:
        """Mark a worker terminated and detach its in-flight job. Caller holds the lock."""

        worker.state = WorkerState.TERMINATED
        job = worker.current_job
        worker.current_job = None
        if job is not None:
            self._busy -= 1
        return job

    def _on_worker_exit(self, worker: _WorkerHandle) -> None:
        """Fail the job of a worker whose pipe closed."""

        with self._lock:
            job = self._release_worker(worker)
            closing = self._closed
        if job is not None:
            if closing:
                error: BaseException = PoolClosedError(
                    f"TTS pool `{self.name}` terminated while synthesizing `{job.output_path.name}`."
                )
            else:
                error = SynthesisError(
                    f"TTS worker {worker.index} exited while synthesizing `{job.output_path.name}`."
                )
            _resolve([(job.future, error)])
        self._dispatch()

    def _on_protocol_error(self, worker: _WorkerHandle, exc: ProtocolError) -> None:
        """Retire a worker that broke the message protocol."""

        with self._lock:
            job = self._release_worker(worker)
        if job is not None:
            error = SynthesisError(f"TTS worker {worker.index} broke the message protocol: {exc}")
            _resolve([(job.future, error)])
        if worker.process.is_alive():
            worker.process.kill()
        self._dispatch()

    def terminate(self) -> None:
        """Stop every worker and fail jobs still queued or in flight."""

        with self._lock:
            if self._closed:
                return
            self._closed = True
            pending = list(self._queue)
            self._queue.clear()
        _resolve(
            [
                (job.future, PoolClosedError(f"TTS pool `{self.name}` terminated before dispatch."))
                for job in pending
            ]
        )

        for worker in self._workers:
            if worker.state is WorkerState.TERMINATED:
                continue
            try:
                worker.connection.send(Shutdown())
            except (OSError, ValueError):
                # Pipe already closed; the join below reaps the process.
                continue

        for worker in self._workers:
            worker.process.join(self._shutdown_timeout)
            if worker.process.is_alive():
                worker.process.kill()
                worker.process.join()

        for worker in self._workers:
            if worker.listener is not None:
                worker.listener.join()
            else:
                self._on_worker_exit(worker)
            worker.connection.close()
