from __future__ import annotations

"""
DatasetAffinityPool: bounded worker threads, one raster handle per worker.

A raster handle is not thread-safe and is expensive to open, so each worker
opens its own handle lazily on its first task and keeps it. Tasks run
synchronously on a worker with exclusive use of that worker's handle; handles
of different workers (same file) are read in parallel. When every worker is
busy, submissions wait in the queue.

Cancellation is not propagated: once submitted, a task runs to completion
even if the caller stops waiting for it.
"""

import asyncio
import logging
import os
import queue
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from common.utils import RunningStats
from tile_engine.backend import RasterHandle, open_raster
from tile_engine.errors import BackendError


log = logging.getLogger(__name__)

Opener = Callable[[str], RasterHandle]


def default_workers() -> int:
    return max(1, os.cpu_count() or 1)


@dataclass
class _Task:
    fn: Callable[..., Any]
    args: Tuple[Any, ...]
    kwargs: Dict[str, Any]
    future: Future = field(default_factory=Future)


class _Worker:
    """
    One thread and the handle it owns. The handle is only touched from this
    worker's thread.
    """

    def __init__(self, pool: "DatasetAffinityPool", index: int):
        self.pool = pool
        self.index = index
        self.handle: Optional[RasterHandle] = None
        self.opens = 0
        self.thread = threading.Thread(
            target=self._run, name=f"{pool.name}-worker-{index}", daemon=True
        )

    # -------- thread body --------

    def _run(self) -> None:
        log.info("worker starting")
        try:
            while True:
                task = self.pool._tasks.get()
                try:
                    if task is None:
                        break
                    self._execute(task)
                finally:
                    self.pool._tasks.task_done()
        finally:
            self._drop_handle()
            log.info("worker stopping")

    def _execute(self, task: _Task) -> None:
        if not task.future.set_running_or_notify_cancel():
            return
        t0 = time.perf_counter()
        result: Any = None
        error: Optional[BaseException] = None
        try:
            handle = self._ensure_handle()
            result = task.fn(handle, *task.args, **task.kwargs)
        except BackendError as e:
            # the handle may be unusable; reopen on the next task
            self._drop_handle()
            error = e
        except Exception as e:  # noqa: BLE001 - delivered to the caller via the future
            error = e
        self.pool._record(time.perf_counter() - t0)
        if error is not None:
            task.future.set_exception(error)
        else:
            task.future.set_result(result)

    # -------- handle lifecycle --------

    def _ensure_handle(self) -> RasterHandle:
        if self.handle is None:
            # a failed open leaves handle None so the next task retries
            self.handle = self.pool._opener(self.pool.path)
            self.opens += 1
            if self.opens > 1:
                log.warning("reopened raster handle", extra={"extra": {"path": self.pool.path, "opens": self.opens}})
        return self.handle

    def _drop_handle(self) -> None:
        handle, self.handle = self.handle, None
        if handle is None:
            return
        try:
            handle.close()
        except Exception:  # noqa: BLE001
            log.exception("error closing raster handle")


class DatasetAffinityPool:
    """
    Usage:
        pool = DatasetAffinityPool("world.tif", workers=4)
        fut = pool.submit(lambda handle, x: handle.band_count + x, 1)   # concurrent.futures.Future
        value = await pool.run(fn, *args)                                # from the event loop
        pool.shutdown()
    """

    def __init__(
        self,
        path: str,
        workers: Optional[int] = None,
        *,
        opener: Opener = open_raster,
        name: str = "raster",
    ):
        n = int(workers) if workers else default_workers()
        if n < 1:
            raise ValueError("workers must be >= 1")
        self.path = str(path)
        self.name = name
        self._opener = opener
        self._tasks: "queue.Queue[Optional[_Task]]" = queue.Queue()
        self._lock = threading.Lock()
        self._latency = RunningStats()
        self._completed = 0
        self._closed = False
        self._workers: List[_Worker] = [_Worker(self, i) for i in range(n)]
        for w in self._workers:
            w.thread.start()

    # -------- public API --------

    @property
    def size(self) -> int:
        return len(self._workers)

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """
        Queue fn(handle, *args, **kwargs) for the next free worker.

        Returns a concurrent.futures.Future carrying the result or the exception.
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("pool is shut down")
            task = _Task(fn=fn, args=args, kwargs=kwargs)
            self._tasks.put(task)
        return task.future

    async def run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Await fn(handle, ...) on a worker without blocking the event loop.

        The wait is shielded: if the awaiting request goes away, the task still
        runs to completion on its worker.
        """
        fut = asyncio.wrap_future(self.submit(fn, *args, **kwargs))
        return await asyncio.shield(fut)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "workers": self.size,
                "queued": self._tasks.qsize(),
                "open_handles": sum(1 for w in self._workers if w.handle is not None),
                "completed": self._completed,
                "latency_ms": {
                    "mean": round(self._latency.mean * 1e3, 3),
                    "std": round(self._latency.std * 1e3, 3),
                },
            }

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work, let queued tasks finish, close every handle."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for _ in self._workers:
            self._tasks.put(None)
        if wait:
            for w in self._workers:
                w.thread.join()

    def __enter__(self) -> "DatasetAffinityPool":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()

    # -------- internals --------

    def _record(self, seconds: float) -> None:
        with self._lock:
            self._completed += 1
            self._latency.add(seconds)
