"""Distributed rate limiter gating outbound Notion calls.

``acquire`` never rejects for lack of budget: when a key is exhausted it
suspends the caller until the store reports budget frees up, then checks
once more. Store outages propagate as ``RateLimiterUnavailableError``.

Keys express granularity. A coarse key (``search``) serializes a whole
operation class; a fine key (``page:<id>``) caps calls per resource while
other resources proceed in parallel.
"""

from __future__ import annotations

import asyncio
import logging

from notion_bridge.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from notion_bridge.resilience.cancellation import SleepFunc, wait_or_cancel

logger = logging.getLogger(__name__)

# Floor for a wait when the store reports budget is already free again.
MIN_WAIT_SECONDS = 0.001


class KeyedRateLimiter:
    """Acquires one unit of budget per call from a shared counting store.

    Attributes:
        store: Counting store holding the budgets.
        key_prefix: Namespace prepended to every key.
    """

    def __init__(
        self,
        store: AbstractRateLimiter,
        *,
        key_prefix: str = "notion",
        sleep: SleepFunc = wait_or_cancel,
    ) -> None:
        self.store = store
        self.key_prefix = key_prefix
        self._sleep = sleep

    def _namespaced(self, key: str) -> str:
        return f"{self.key_prefix}:{key}" if self.key_prefix else key

    async def acquire(self, key: str, *, cancel: asyncio.Event | None = None) -> RateLimitResult:
        """Wait until one unit of budget for ``key`` is available and consume it.

        Args:
            key: Non-empty limiter key, e.g. ``page:<id>``.
            cancel: Optional event abandoning the wait.

        Returns:
            The store result of the successful consumption.

        Raises:
            ValueError: If key is empty.
            RateLimiterUnavailableError: If the store cannot be reached.
            OperationCancelledError: If ``cancel`` fires while waiting.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        store_key = self._namespaced(key)
        waits = 0
        while True:
            result = await self.store.consume(store_key)
            if result.allowed:
                logger.debug(
                    "rate_limit.acquired",
                    extra={
                        "limiter_key": key,
                        "remaining": result.remaining,
                        "waits": waits,
                    },
                )
                return result

            wait = max(result.retry_after_seconds or 0.0, MIN_WAIT_SECONDS)
            waits += 1
            logger.info(
                "rate_limit.waiting",
                extra={
                    "limiter_key": key,
                    "limit": result.limit,
                    "wait_s": round(wait, 3),
                    "waits": waits,
                },
            )
            await self._sleep(wait, cancel)
