from __future__ import annotations

import time
from typing import Optional

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter

from healthrelay.core.errors import RateLimitError


class RateLimiter:
    """
    Per-client fixed window backed by `limits`: `points` requests every
    `duration` seconds. The default MemoryStorage is per process and expires
    idle keys on its own.
    """

    def __init__(self, points: int = 10, duration: int = 60, storage: Optional[Storage] = None):
        if points < 1 or duration < 1:
            raise ValueError("points and duration must be >= 1")
        self.points = points
        self.duration = duration
        self.item = RateLimitItemPerSecond(points, int(duration))
        self._storage = storage or MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)

    def consume(self, key: str) -> int:
        """Spend one point for key; returns points left or raises RateLimitError."""
        allowed = self._strategy.hit(self.item, key)
        stats = self._strategy.get_window_stats(self.item, key)
        if not allowed:
            raise RateLimitError(retry_after=max(stats.reset_time - time.time(), 0.0))
        return stats.remaining

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._storage.reset()
        else:
            self._strategy.clear(self.item, key)
