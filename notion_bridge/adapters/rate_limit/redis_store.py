"""Redis-backed sliding-window rate limiter.

Budgets live in Redis so every process addressing the same key namespace
shares them. Each key is a sorted set of consumption timestamps; a Lua
script evicts expired entries, checks the budget and records the new
consumption in one atomic step, using the Redis server clock so process
clock skew cannot widen the window.

Fail-closed: any Redis failure surfaces as ``RateLimiterUnavailableError``
instead of letting the call through unthrottled.
"""

from __future__ import annotations

import logging
import uuid

from redis.asyncio import Redis
from redis.exceptions import RedisError

from notion_bridge.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from notion_bridge.core.errors import RateLimiterUnavailableError

logger = logging.getLogger(__name__)


# KEYS[1] = limiter key
# ARGV = limit, window_ms, cost, member token
# Returns {allowed, remaining, wait_ms, now_ms}
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local window_ms = tonumber(ARGV[2])
local cost = tonumber(ARGV[3])
local token = ARGV[4]

local t = redis.call('TIME')
local now_ms = tonumber(t[1]) * 1000 + math.floor(tonumber(t[2]) / 1000)

redis.call('ZREMRANGEBYSCORE', key, '-inf', now_ms - window_ms)
local used = redis.call('ZCARD', key)

if used + cost <= limit then
  for i = 1, cost do
    redis.call('ZADD', key, now_ms, token .. ':' .. i)
  end
  redis.call('PEXPIRE', key, window_ms)
  return {1, limit - used - cost, 0, now_ms}
end

local needed = used + cost - limit
local entry = redis.call('ZRANGE', key, needed - 1, needed - 1, 'WITHSCORES')
local wait_ms = window_ms
if entry[2] then
  wait_ms = tonumber(entry[2]) + window_ms - now_ms
end
if wait_ms < 0 then
  wait_ms = 0
end
return {0, math.max(0, limit - used), wait_ms, now_ms}
"""


class RedisSlidingWindowRateLimiter(AbstractRateLimiter):
    """Shared rate limiter enforcing ``limit`` units per rolling window."""

    def __init__(
        self,
        redis: Redis,
        *,
        limit: int,
        window_seconds: float,
    ) -> None:
        """Initialize the Redis rate limiter.

        Args:
            redis: Async Redis client.
            limit: Maximum number of allowed units per window.
            window_seconds: Length of the sliding window in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._redis = redis
        self._limit = limit
        self._window_ms = max(1, int(window_seconds * 1000))
        self._script = redis.register_script(SLIDING_WINDOW_SCRIPT)

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        limit: int,
        window_seconds: float,
        socket_timeout: float | None = None,
    ) -> RedisSlidingWindowRateLimiter:
        """Build a limiter with its own connection pool."""
        client = Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, limit=limit, window_seconds=window_seconds)

    async def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Atomically consume budget for ``key`` in Redis.

        Raises:
            ValueError: If key is empty or cost is invalid.
            RateLimiterUnavailableError: If Redis cannot be reached.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if cost > self._limit:
            raise ValueError("cost must not exceed limit")
        if not key:
            raise ValueError("key must be a non-empty string")

        try:
            raw = await self._script(
                keys=[key],
                args=[self._limit, self._window_ms, cost, uuid.uuid4().hex],
            )
        except RedisError as exc:
            logger.error(
                "rate_limit.store_unavailable",
                extra={"limiter_key": key, "error_type": type(exc).__name__},
            )
            raise RateLimiterUnavailableError(
                code="rate_limiter_unavailable",
                message="Rate limit store is unreachable; refusing to call Notion unthrottled",
                details={"limiter_key": key},
            ) from exc

        allowed, remaining, wait_ms, now_ms = (int(value) for value in raw)
        now = now_ms / 1000
        if allowed:
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=remaining,
                reset_at=now + self._window_ms / 1000,
                retry_after_seconds=None,
            )
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=remaining,
            reset_at=now + wait_ms / 1000,
            retry_after_seconds=wait_ms / 1000,
        )

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError:
            return False

    async def aclose(self) -> None:
        await self._redis.aclose()
