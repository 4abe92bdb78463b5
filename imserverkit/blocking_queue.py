"""Thread-safe FIFO queue with blocking and timed take."""

from __future__ import annotations

import queue
import threading
from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class BlockingQueue(Generic[T]):
    """Unbounded FIFO queue for producer/consumer hand-off between threads."""

    def __init__(self) -> None:
        self._items: deque[T] = deque()
        self._not_empty = threading.Condition(threading.Lock())

    def put(self, item: T) -> None:
        """Append an item and wake one waiting consumer."""
        with self._not_empty:
            self._items.append(item)
            self._not_empty.notify()

    def take(self, timeout_ms: int | None = None) -> T:
        """Remove and return the oldest item.

        Blocks until an item is available, or for at most ``timeout_ms``
        milliseconds; raises ``queue.Empty`` when the wait times out.
        """
        timeout = None if timeout_ms is None else max(timeout_ms, 0) / 1000.0
        with self._not_empty:
            if not self._not_empty.wait_for(lambda: bool(self._items), timeout):
                raise queue.Empty
            return self._items.popleft()

    def empty(self) -> bool:
        """Whether the queue holds no items."""
        with self._not_empty:
            return not self._items

    def clear(self) -> None:
        """Drop every queued item."""
        with self._not_empty:
            self._items.clear()

    def __len__(self) -> int:
        with self._not_empty:
            return len(self._items)