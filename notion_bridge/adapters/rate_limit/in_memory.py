"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
  Use the Redis store wherever budgets must be shared.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable

from notion_bridge.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping a log of consumption timestamps per key.

    A unit consumed at ``t`` counts against the key until ``t + window``, so
    no rolling window of ``window_seconds`` ever contains more than ``limit``
    consumptions.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed units per window.
            window_seconds: Length of the sliding window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._log_by_key: dict[str, deque[float]] = {}
        self._last_sweep = clock()

    def _evict_expired(self, log: deque[float], now: float) -> None:
        cutoff = now - self._window_seconds
        while log and log[0] <= cutoff:
            log.popleft()

    def _sweep_idle_keys(self, now: float) -> None:
        # Keys with no entry inside the window carry no state worth keeping.
        if now - self._last_sweep < self._window_seconds:
            return
        self._last_sweep = now
        for key in list(self._log_by_key):
            log = self._log_by_key[key]
            self._evict_expired(log, now)
            if not log:
                del self._log_by_key[key]

    @property
    def tracked_keys(self) -> int:
        """Number of keys currently holding consumption entries."""
        with self._lock:
            return len(self._log_by_key)

    async def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for the provided key.

        Args:
            key: Unique identifier for rate limiting.
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if cost > self._limit:
            raise ValueError("cost must not exceed limit")
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            now = self._clock()
            self._sweep_idle_keys(now)
            log = self._log_by_key.setdefault(key, deque())
            self._evict_expired(log, now)

            if len(log) + cost <= self._limit:
                log.extend([now] * cost)
                return RateLimitResult(
                    allowed=True,
                    limit=self._limit,
                    remaining=self._limit - len(log),
                    reset_at=log[0] + self._window_seconds,
                    retry_after_seconds=None,
                )

            # Budget frees up once enough of the oldest entries age out.
            needed = len(log) + cost - self._limit
            reset_at = log[needed - 1] + self._window_seconds
            return RateLimitResult(
                allowed=False,
                limit=self._limit,
                remaining=max(0, self._limit - len(log)),
                reset_at=reset_at,
                retry_after_seconds=max(0.0, reset_at - now),
            )
