"""Rate limiter interfaces.

Callers depend on this abstraction (not the concrete implementation) so the
storage backend can be swapped (Redis or in-process) with no other changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check/consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when budget next frees up.
        retry_after_seconds: Wait in seconds before budget frees up when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after_seconds: float | None


class AbstractRateLimiter(ABC):
    """Interface for rate limit counting stores."""

    @abstractmethod
    async def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for a given key.

        Checking and consuming happen atomically: either ``cost`` units are
        taken, or nothing is and the wait until enough budget frees up is
        reported.

        Args:
            key: Unique identifier (e.g., limiter key, API key).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult describing whether it was allowed.

        Raises:
            RateLimiterUnavailableError: If the backing store cannot be reached.
        """
        raise NotImplementedError

    async def ping(self) -> bool:
        """Report whether the backing store is reachable."""
        return True

    async def aclose(self) -> None:
        """Release connections held by the store."""
        return None
