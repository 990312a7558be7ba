"""FIFO queue of accepted connections waiting for a worker."""

from __future__ import annotations

from collections import deque


class TaskQueue:
    """First-in first-out queue of pending connections.

    It does no locking of its own; the pool guards it.
    """

    def __init__(self):
        self._items = deque()

    def push(self, conn):
        """Append a connection at the rear."""
        self._items.append(conn)

    def pop(self):
        """Remove and return the connection at the front."""
        if not self._items:
            raise IndexError("pop from an empty task queue")
        return self._items.popleft()

    def __len__(self):
        return len(self._items)