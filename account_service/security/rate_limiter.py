"""In-memory sliding window throttle for credential endpoints."""

from __future__ import annotations

import math
import time
from collections import deque
from threading import Lock
from typing import Deque


class SlidingWindowRateLimiter:
    """Thread-safe per-key sliding window limiter.

    Keys look like ``login:<email>`` or ``register:<client-ip>``. A key whose
    window has emptied is dropped, so callers choosing arbitrary keys cannot
    grow the table without bound.
    """

    def __init__(self, max_requests: int, window_seconds: int) -> None:
        self._max_requests = max_requests
        self._window = window_seconds
        self._attempts: dict[str, Deque[float]] = {}
        self._lock = Lock()

    def _prune(self, key: str, now: float) -> Deque[float] | None:
        attempts = self._attempts.get(key)
        if attempts is None:
            return None
        while attempts and now - attempts[0] > self._window:
            attempts.popleft()
        if not attempts:
            del self._attempts[key]
            return None
        return attempts

    def allow(self, key: str) -> bool:
        """Record an attempt and return ``True`` when it fits in the window."""
        now = time.time()
        with self._lock:
            self._evict_expired(now)
            attempts = self._prune(key, now)
            if attempts is None:
                self._attempts[key] = deque([now])
                return True
            if len(attempts) >= self._max_requests:
                return False
            attempts.append(now)
            return True

    def _evict_expired(self, now: float) -> None:
        # deques are append-ordered, so the newest attempt is at the right end
        stale = [key for key, attempts in self._attempts.items() if now - attempts[-1] > self._window]
        for key in stale:
            del self._attempts[key]

    def retry_after(self, key: str) -> int:
        """Seconds until the oldest attempt for ``key`` leaves the window."""
        now = time.time()
        with self._lock:
            attempts = self._prune(key, now)
            if attempts is None:
                return 0
            return max(1, math.ceil(self._window - (now - attempts[0])))

    def reset(self, key: str) -> None:
        """Forget recorded attempts, e.g. after a successful login."""
        with self._lock:
            self._attempts.pop(key, None)

    def __len__(self) -> int:
        return len(self._attempts)
