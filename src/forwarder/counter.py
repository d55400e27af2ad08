"""Process-wide forwarding id allocation."""

from __future__ import annotations

import threading


class ForwardingIdCounter:
    """Monotonic id source shared by all request handlers.

    Ids start at ``start`` and are never handed out twice.
    """

    def __init__(self, start: int = 1) -> None:
        self._next = start
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            value = self._next
            self._next += 1
        return value

    @property
    def peek(self) -> int:
        """The id the next call to :meth:`next` will return."""
        with self._lock:
            return self._next
