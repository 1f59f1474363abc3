"""Execution helpers bridging synchronous checks into the async request loop."""

from __future__ import annotations

import asyncio
import functools
import os
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

T = TypeVar("T")


class PoolSaturatedError(RuntimeError):
    """Raised when the pool already holds its maximum number of pending calls."""


class WorkerTimeoutError(RuntimeError):
    """Raised when a call does not finish within the pool's request timeout."""


def default_pool_size() -> int:
    return max(1, os.cpu_count() or 1)


class WorkerPool:
    """Bounded thread pool for blocking work.

    ``max_pending`` caps calls that are running or waiting for a thread
    (``0`` means unbounded). ``timeout_s`` limits how long a caller waits
    (``0`` means no limit); a timed out call keeps its thread until the work
    returns.
    """

    def __init__(self, size: int = 0, *, max_pending: int = 0, timeout_s: float = 0.0) -> None:
        self._size = size if size > 0 else default_pool_size()
        self._max_pending = max(0, max_pending)
        self._timeout_s = timeout_s if timeout_s > 0 else None
        self._executor = ThreadPoolExecutor(max_workers=self._size, thread_name_prefix="check-worker")
        self._pending = 0
        self._lock = threading.Lock()

    @property
    def size(self) -> int:
        return self._size

    @property
    def max_pending(self) -> int:
        return self._max_pending

    @property
    def timeout_s(self) -> float | None:
        return self._timeout_s

    @property
    def pending(self) -> int:
        with self._lock:
            return self._pending

    def _acquire(self) -> None:
        with self._lock:
            if self._max_pending and self._pending >= self._max_pending:
                raise PoolSaturatedError(f"{self._pending} calls pending, limit is {self._max_pending}")
            self._pending += 1

    def _release(self, _future: object = None) -> None:
        with self._lock:
            self._pending -= 1

    async def run(self, func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
        """Execute *func* on a pool thread and return its result."""

        self._acquire()
        loop = asyncio.get_running_loop()
        try:
            future = loop.run_in_executor(self._executor, functools.partial(func, *args, **kwargs))
        except BaseException:
            self._release()
            raise
        future.add_done_callback(self._release)
        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout=self._timeout_s)
        except asyncio.TimeoutError as exc:
            raise WorkerTimeoutError(f"Call did not finish within {self._timeout_s}s") from exc

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)


__all__ = ["PoolSaturatedError", "WorkerPool", "WorkerTimeoutError", "default_pool_size"]
