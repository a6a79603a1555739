"""Fixed-window request limiter keyed by client identity.

Timestamps live in a plain dict of deques; stale entries are evicted
lazily whenever a key is checked, and empty keys are dropped then too.
"""

from __future__ import annotations
import threading
import time
from collections import deque
from typing import Callable


class FixedWindowRateLimiter:
    """Allow at most ``limit`` requests per ``window`` seconds per key."""

    __slots__ = ("limit", "window", "_clock", "_hits", "_lock")

    def __init__(
        self,
        limit: int = 20,
        window: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1 or window <= 0:
            raise ValueError("limit must be >= 1 and window > 0")
        self.limit = limit
        self.window = window
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            self._evict(now)
            hits = self._hits.setdefault(key, deque())
            if len(hits) >= self.limit:
                return False
            hits.append(now)
            return True

    def remaining(self, key: str) -> int:
        now = self._clock()
        with self._lock:
            self._evict(now)
            return self.limit - len(self._hits.get(key, ()))

    @property
    def tracked_keys(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()

    def _evict(self, now: float) -> None:
        cutoff = now - self.window
        for key in list(self._hits):
            hits = self._hits[key]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if not hits:
                del self._hits[key]
