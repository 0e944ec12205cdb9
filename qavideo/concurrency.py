"""Bounded fan-out runner for CPU-heavy external work.

Responsibilities:
- Run zero-argument tasks with at most `limit` in flight.
- Return results in task order regardless of completion order.
- Propagate the first failure and cancel tasks that have not started.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
import os
from typing import TypeVar

T = TypeVar("T")


def default_concurrency(cpu_count: int | None = None) -> int:
    """Return the default encode concurrency: half the cores, at least one."""

    cores = cpu_count if cpu_count is not None else (os.cpu_count() or 1)
    return max(1, cores // 2)


def run_bounded(tasks: Sequence[Callable[[], T]], limit: int) -> list[T]:
    """Run tasks with bounded concurrency and return results in input order.

    Args:
        tasks: Zero-argument callables, each run exactly once unless cancelled.
        limit: Maximum number of tasks executing at the same time.

    Raises:
        ValueError: If `limit` is lower than one.
        Exception: The first task failure, after running tasks have finished.
    """

    if limit < 1:
        raise ValueError("Concurrency limit must be at least 1.")
    if not tasks:
        return []

    with ThreadPoolExecutor(max_workers=min(limit, len(tasks)), thread_name_prefix="bounded") as executor:
        futures: list[Future[T]] = [executor.submit(task) for task in tasks]
        done, not_done = wait(futures, return_when=FIRST_EXCEPTION)
        failed = next(
            (future for future in futures if future in done and future.exception() is not None),
            None,
        )
        if failed is not None:
            for future in not_done:
                future.cancel()
            wait(not_done)
            failed.result()
    return [future.result() for future in futures]
