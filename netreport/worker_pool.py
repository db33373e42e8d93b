"""Small thread-pool wrapper for CPU-bound report work.

Chart rasterisation is independent per chart kind, so the three charts
of a report are rendered side by side on this pool.  The pool is created
once per application and shared by every request.

Usage::

    pool = WorkerPool(max_workers=3)
    png = await pool.run(renderer.render, "bar", stats.alert_stats)
    pool.shutdown()
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, TypeVar

R = TypeVar("R")

DEFAULT_MAX_WORKERS = 3


class WorkerPool:
    """Fixed-size thread pool with lightweight metrics.

    Parameters
    ----------
    max_workers:
        Number of worker threads.  Defaults to 3 (one per chart kind).
    thread_name_prefix:
        Prefix for worker-thread names (aids debugging / profiling).
    """

    def __init__(
        self,
        max_workers: int = DEFAULT_MAX_WORKERS,
        thread_name_prefix: str = "netreport-worker",
    ) -> None:
        self._max_workers = max(1, int(max_workers))
        self._executor = ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix=thread_name_prefix,
        )
        self._total_tasks: int = 0
        self._total_busy_s: float = 0.0
        self._metrics_lock = threading.Lock()
        self._alive = True

    # -- Public API -----------------------------------------------------------

    def submit(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> Future[R]:
        """Submit a single callable; returns a ``Future``."""
        if not self._alive:
            raise RuntimeError("WorkerPool is shut down")
        with self._metrics_lock:
            self._total_tasks += 1

        def _timed() -> R:
            t0 = time.monotonic()
            try:
                return fn(*args, **kwargs)
            finally:
                with self._metrics_lock:
                    self._total_busy_s += time.monotonic() - t0

        return self._executor.submit(_timed)

    async def run(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        """Await *fn* on the pool from the event loop; exceptions propagate."""
        return await asyncio.wrap_future(self.submit(fn, *args, **kwargs))

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the pool.  Safe to call multiple times."""
        self._alive = False
        self._executor.shutdown(wait=wait)

    # -- Observability --------------------------------------------------------

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def stats(self) -> dict[str, Any]:
        return {
            "max_workers": self._max_workers,
            "total_tasks": self._total_tasks,
            "total_busy_s": round(self._total_busy_s, 4),
            "alive": self._alive,
        }
