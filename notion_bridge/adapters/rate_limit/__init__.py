"""Rate limiting adapters.

This package provides a small abstraction layer over the counting store that
backs rate limiting: Redis shares budgets across every process, while the
in-memory store keeps them per process for development and tests.
"""

from notion_bridge.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from notion_bridge.adapters.rate_limit.factory import create_rate_limit_store
from notion_bridge.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from notion_bridge.adapters.rate_limit.redis_store import RedisSlidingWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "InMemorySlidingWindowRateLimiter",
    "RateLimitResult",
    "RedisSlidingWindowRateLimiter",
    "create_rate_limit_store",
]
