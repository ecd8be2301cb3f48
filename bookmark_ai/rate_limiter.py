from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class RateLimiter:
    """
    Sliding-window attempt counter keyed by an arbitrary string (e.g. a normalized email).

    ``is_allowed`` only reads (pruning stale timestamps as a side effect) and
    ``record_attempt`` only writes, so a caller checking then recording from
    several threads can race. Use ``try_acquire`` where that matters.
    """

    def __init__(
        self,
        max_attempts: int,
        window_ms: int,
        clock: Callable[[], float] = monotonic_ms,
    ):
        if max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        self._max_attempts = max_attempts
        self._window_ms = window_ms
        self._clock = clock
        self._attempts: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def is_allowed(self, key: str) -> bool:
        with self._lock:
            return self._count_recent(key) < self._max_attempts

    def record_attempt(self, key: str) -> None:
        with self._lock:
            self._attempts.setdefault(key, []).append(self._clock())

    def try_acquire(self, key: str) -> bool:
        """Check and record in one step; returns False without recording when limited."""
        with self._lock:
            if self._count_recent(key) >= self._max_attempts:
                logger.warning("Rate limit reached for key=%s", key)
                return False
            self._attempts.setdefault(key, []).append(self._clock())
            return True

    def remaining(self, key: str) -> int:
        with self._lock:
            return max(0, self._max_attempts - self._count_recent(key))

    def reset(self, key: str) -> None:
        with self._lock:
            self._attempts.pop(key, None)

    def _count_recent(self, key: str) -> int:
        # Caller holds the lock.
        now = self._clock()
        recent = [ts for ts in self._attempts.get(key, []) if now - ts < self._window_ms]
        if recent:
            self._attempts[key] = recent
        else:
            self._attempts.pop(key, None)
        return len(recent)
