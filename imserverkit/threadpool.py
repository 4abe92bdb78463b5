"""Fixed-size worker thread pool with an optional bounded queue."""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from imserverkit.blocking_queue import BlockingQueue

_log = logging.getLogger(__name__)

_POLL_MS = 1000


class QueueFullError(RuntimeError):
    """Raised by :meth:`ThreadPool.submit` when the task queue is at its limit."""


@dataclass
class _Task:
    fn: Callable[..., Any]
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)
    future: Future = field(default_factory=Future)

    def run(self) -> None:
        if not self.future.set_running_or_notify_cancel():
            return
        try:
            result = self.fn(*self.args, **self.kwargs)
        except BaseException as exc:  # handed to the caller through the future
            self.future.set_exception(exc)
        else:
            self.future.set_result(result)


class ThreadPool:
    """A fixed number of worker threads fed from one FIFO task queue.

    ``max_queue_size`` of 0 means the queue is unbounded. When the limit is
    reached, ``reject_callback`` (if any) is called and :class:`QueueFullError`
    is raised.
    """

    def __init__(
        self,
        thread_count: int = 4,
        max_queue_size: int = 0,
        reject_callback: Optional[Callable[[], None]] = None,
    ) -> None:
        self._thread_count = thread_count
        self.max_queue_size = max_queue_size
        self.reject_callback = reject_callback
        self._workers: list[threading.Thread] = []
        self._queue: BlockingQueue[Optional[_Task]] = BlockingQueue()
        self._running = False
        self._state_lock = threading.Lock()

    def __enter__(self) -> "ThreadPool":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    def start(self) -> None:
        """Start the worker threads; does nothing if already running."""
        with self._state_lock:
            if self._running:
                return
            self._running = True
            self._workers = [
                threading.Thread(target=self._worker, name=f"pool-worker-{i}", daemon=True)
                for i in range(self._thread_count)
            ]
        for worker in self._workers:
            worker.start()
        _log.info("ThreadPool started with %d threads", self._thread_count)

    def stop(self, drain: bool = True) -> None:
        """Stop the pool and wait for the workers to exit.

        With ``drain`` the queued tasks still run first; without it they are
        dropped and their futures cancelled.
        """
        with self._state_lock:
            if not self._running:
                return
            self._running = False
        if not drain:
            self._discard_pending()
        for _ in self._workers:
            self._queue.put(None)
        for worker in self._workers:
            worker.join()
        self._workers = []
        _log.info("ThreadPool stopped")

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Queue ``fn(*args, **kwargs)`` and return a future for its result.

        If the pool is not running the task is not queued and the returned
        future is already cancelled.
        """
        task = _Task(fn, args, kwargs)
        if not self.is_running():
            task.future.cancel()
            return task.future
        if self.max_queue_size > 0 and len(self._queue) >= self.max_queue_size:
            if self.reject_callback is not None:
                self.reject_callback()
            raise QueueFullError("thread pool queue is full")
        self._queue.put(task)
        return task.future

    def size(self) -> int:
        """Number of worker threads currently owned by the pool."""
        return len(self._workers)

    def queue_size(self) -> int:
        """Number of tasks waiting in the queue."""
        return len(self._queue)

    def is_running(self) -> bool:
        """Whether the pool has been started and not yet stopped."""
        with self._state_lock:
            return self._running

    def _discard_pending(self) -> None:
        while True:
            try:
                task = self._queue.take(0)
            except queue.Empty:
                return
            if task is not None:
                task.future.cancel()

    def _worker(self) -> None:
        while self.is_running() or not self._queue.empty():
            try:
                task = self._queue.take(_POLL_MS)
            except queue.Empty:
                continue
            if task is None:
                continue
            try:
                task.run()
            except Exception:
                _log.exception("ThreadPool task exception")