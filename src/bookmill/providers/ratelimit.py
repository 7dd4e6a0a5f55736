"""In-memory sliding window rate limiter for provider calls."""

import threading
import time
from collections import deque
from typing import Callable

from bookmill.constants import DEFAULT_RATE_LIMIT, DEFAULT_RATE_WINDOW_SECONDS
from bookmill.logging_config import get_logger

logger = get_logger(__name__)

__all__ = ("RateLimiter",)


class RateLimiter:
    """Sliding window counter, one window per key (usually the provider name).

    Thread-safe. The clock and sleep functions are injectable so tests can
    drive time explicitly.
    """

    def __init__(
        self,
        limit: int = DEFAULT_RATE_LIMIT,
        window_seconds: float = DEFAULT_RATE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if limit <= 0 or window_seconds <= 0:
            raise ValueError("Rate limit and window must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._windows: dict[str, deque[float]] = {}

    def check(self, key: str) -> tuple[bool, int]:
        """Record a request if it is allowed under the limit.

        Returns (allowed, remaining_requests). A refused request is not counted.
        """
        with self._lock:
            now = self._clock()
            window = self._prune(key, now)
            if len(window) >= self.limit:
                return False, 0
            window.append(now)
            return True, self.limit - len(window)

    def acquire(self, key: str) -> None:
        """Block until a request for ``key`` is allowed, then record it."""
        while True:
            allowed, _ = self.check(key)
            if allowed:
                return
            delay = self._time_until_free(key)
            logger.debug("Rate limit reached for %s, waiting %.2fs", key, delay)
            self._sleep(delay)

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def _prune(self, key: str, now: float) -> deque[float]:
        window = self._windows.setdefault(key, deque())
        while window and window[0] <= now - self.window_seconds:
            window.popleft()
        return window

    def _time_until_free(self, key: str) -> float:
        with self._lock:
            now = self._clock()
            window = self._prune(key, now)
            if not window:
                return 0.0
            return max(0.0, window[0] + self.window_seconds - now)
