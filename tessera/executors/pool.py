"""Shared thread pool used to overlap task submissions.

When its queue is full the pool runs new work on the submitting thread.
Throughput degrades under bursts, but no work is dropped and the queue
never grows without bound.
"""

import itertools
import os
import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any

import structlog

logger = structlog.get_logger("tessera.pool")


class _WorkItem:
    def __init__(self, future: Future, fn: Callable[..., Any], args: tuple, kwargs: dict):
        self.future = future
        self.fn = fn
        self.args = args
        self.kwargs = kwargs

    def run(self) -> None:
        if not self.future.set_running_or_notify_cancel():
            return
        try:
            result = self.fn(*self.args, **self.kwargs)
        except BaseException as exc:
            self.future.set_exception(exc)
        else:
            self.future.set_result(result)


class CallerRunsThreadPool:
    """Bounded thread pool with a caller-runs saturation policy."""

    _counter = itertools.count()

    def __init__(self, min_threads: int, max_threads: int, max_queue: int, name: str | None = None):
        if min_threads < 0 or max_threads < 1 or min_threads > max_threads:
            raise ValueError("Need 0 <= min_threads <= max_threads and max_threads >= 1")
        if max_queue < 1:
            raise ValueError("max_queue must be at least 1")

        self.min_threads = min_threads
        self.max_threads = max_threads
        self.max_queue = max_queue
        self.name = name or f"tessera-pool-{next(self._counter)}"

        self._queue: queue.Queue[_WorkItem | None] = queue.Queue(maxsize=max_queue)
        self._threads: set[threading.Thread] = set()
        self._idle = threading.Semaphore(0)
        self._lock = threading.Lock()
        self._shutdown = False

        with self._lock:
            for _ in range(min_threads):
                self._spawn()
                self._idle.release()

    @classmethod
    def for_cpu_count(cls, cpu_count: int | None = None) -> "CallerRunsThreadPool":
        """Size a pool relative to the available parallelism."""
        parallelism = max(2, cpu_count or os.cpu_count() or 1)
        return cls(min_threads=2, max_threads=parallelism * 4, max_queue=parallelism * 10)

    @property
    def thread_count(self) -> int:
        with self._lock:
            return len(self._threads)

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Schedule `fn`, or run it right here if the queue is full."""
        future: Future = Future()
        item = _WorkItem(future, fn, args, kwargs)

        with self._lock:
            if self._shutdown:
                raise RuntimeError("Cannot submit work to a pool that has been shut down")
            try:
                self._queue.put_nowait(item)
            except queue.Full:
                queued = False
            else:
                queued = True
                self._adjust_thread_count()

        if not queued:
            logger.debug("pool_saturated", pool=self.name, policy="caller_runs")
            item.run()

        return future

    def _adjust_thread_count(self) -> None:
        # An idle worker will pick the item up
        if self._idle.acquire(timeout=0):
            return
        if len(self._threads) < self.max_threads:
            self._spawn()

    def _spawn(self) -> None:
        thread = threading.Thread(
            target=self._worker,
            name=f"{self.name}_{len(self._threads)}",
            daemon=True,
        )
        self._threads.add(thread)
        thread.start()

    def _worker(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                return
            item.run()
            del item
            self._idle.release()

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; queued items still run before threads exit."""
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            threads = list(self._threads)

        for _ in threads:
            self._queue.put(None)
        if wait:
            for thread in threads:
                thread.join()
        logger.debug("pool_shutdown", pool=self.name, threads=len(threads))


_executor_lock = threading.Lock()
_executor: CallerRunsThreadPool | None = None


def get_executor() -> CallerRunsThreadPool:
    """Get the process-wide pool, creating it on first use."""
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = CallerRunsThreadPool.for_cpu_count()
            logger.debug(
                "pool_created",
                min_threads=_executor.min_threads,
                max_threads=_executor.max_threads,
                max_queue=_executor.max_queue,
            )
        return _executor


def shutdown_executor(wait: bool = True) -> None:
    """Shut down the process-wide pool; the next use creates a new one."""
    global _executor
    with _executor_lock:
        executor, _executor = _executor, None
    if executor is not None:
        executor.shutdown(wait=wait)
