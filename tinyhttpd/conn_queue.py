"""A thread-safe FIFO of client socket descriptors."""

from __future__ import annotations

import threading
from collections import deque


class ConnectionQueue:
    """Blocking first-in first-out queue of file descriptors."""

    def __init__(self) -> None:
        self._items: deque[int] = deque()
        self._ready = threading.Condition()

    def enqueue(self, fd: int) -> None:
        """Append ``fd`` and wake one waiting consumer."""
        with self._ready:
            self._items.append(fd)
            self._ready.notify()

    def dequeue(self, timeout: float | None = None) -> int:
        """Remove and return the oldest descriptor, waiting for one if needed.

        Raises ``TimeoutError`` if nothing arrives within ``timeout`` seconds.
        """
        with self._ready:
            if not self._ready.wait_for(lambda: self._items, timeout):
                raise TimeoutError("no connection queued")
            return self._items.popleft()

    def __len__(self) -> int:
        with self._ready:
            return len(self._items)