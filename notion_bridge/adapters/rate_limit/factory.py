"""Factory for rate limit counting stores."""

from notion_bridge.adapters.rate_limit.base import AbstractRateLimiter
from notion_bridge.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from notion_bridge.adapters.rate_limit.redis_store import RedisSlidingWindowRateLimiter
from notion_bridge.core.config import RateLimitSettings
from notion_bridge.core.errors import ValidationAppError


def create_rate_limit_store(
    rate_limit_settings: RateLimitSettings,
    *,
    limit: int | None = None,
    window_seconds: float | None = None,
) -> AbstractRateLimiter:
    """Instantiate the configured counting store.

    Args:
        rate_limit_settings: Backend selection and connection settings.
        limit: Override of the per-window budget (defaults to ``points``).
        window_seconds: Override of the window (defaults to ``duration_seconds``).

    Returns:
        AbstractRateLimiter: Configured store instance.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    backend = rate_limit_settings.backend.lower()
    effective_limit = limit or rate_limit_settings.points
    effective_window = window_seconds or rate_limit_settings.duration_seconds

    if backend == "redis":
        return RedisSlidingWindowRateLimiter.from_url(
            rate_limit_settings.redis_url,
            limit=effective_limit,
            window_seconds=effective_window,
            socket_timeout=rate_limit_settings.socket_timeout_seconds,
        )

    if backend == "memory":
        return InMemorySlidingWindowRateLimiter(
            limit=effective_limit,
            window_seconds=effective_window,
        )

    raise ValidationAppError(
        code="rate_limit_unknown_backend",
        message=(
            f"Unknown rate limit backend: '{backend}'. Supported backends: redis, memory"
        ),
    )
