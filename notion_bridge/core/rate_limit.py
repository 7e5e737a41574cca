"""Inbound rate limiting for callers of this service.

Callers are throttled with the same counting stores that throttle our own
calls to Notion, under the ``inbound`` namespace and with their own budget
(``APP_RATE_LIMIT_REQUESTS`` per ``APP_RATE_LIMIT_WINDOW_SECONDS``).

Unlike the outbound limiter, callers are never made to wait: an exhausted
budget is answered with 429 and the time until budget frees up.
"""

from __future__ import annotations

import hashlib
import logging
import math
from typing import Annotated

from fastapi import Header, HTTPException, Request, status

from notion_bridge.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from notion_bridge.adapters.rate_limit.factory import create_rate_limit_store
from notion_bridge.core.config import Settings, settings

logger = logging.getLogger(__name__)

INBOUND_NAMESPACE = "inbound"


def build_inbound_limiter(app_settings: Settings) -> AbstractRateLimiter:
    """Create the store holding caller budgets."""
    return create_rate_limit_store(
        app_settings.rate_limit,
        limit=app_settings.app.rate_limit_requests,
        window_seconds=app_settings.app.rate_limit_window_seconds,
    )


def get_inbound_limiter(request: Request) -> AbstractRateLimiter:
    """Return the app's inbound limiter, creating it on first use."""
    limiter = getattr(request.app.state, "inbound_limiter", None)
    if limiter is None:
        limiter = build_inbound_limiter(settings)
        request.app.state.inbound_limiter = limiter
    return limiter


def _fingerprint(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()[:16]


def caller_identity(request: Request, x_api_key: str | None) -> tuple[str, str]:
    """Return ``(kind, identity)`` for budget accounting.

    Callers are identified by a hash of their API key so raw credentials
    never reach the shared store, or by client address when no key is sent.
    """
    if x_api_key:
        return "api_key", _fingerprint(x_api_key)
    return "ip", request.client.host if request.client else "unknown"


def throttle_headers(result: RateLimitResult) -> dict[str, str]:
    return {
        "Retry-After": str(math.ceil(result.retry_after_seconds or 0)),
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(math.ceil(result.reset_at)),
    }


async def enforce_rate_limit(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency charging one unit to the caller's budget.

    A store outage propagates as ``RateLimiterUnavailableError`` (HTTP 503).

    Raises:
        HTTPException: 429 when the caller's budget is exhausted.
    """
    if not settings.app.rate_limit_enabled:
        return

    kind, identity = caller_identity(request, x_api_key)
    key = f"{settings.rate_limit.key_prefix}:{INBOUND_NAMESPACE}:{kind}:{identity}"
    result = await get_inbound_limiter(request).consume(key)
    if result.allowed:
        return

    logger.warning(
        "inbound_rate_limit.exceeded",
        extra={
            "key_type": kind,
            "key_hash": _fingerprint(identity),
            "limit": result.limit,
            "retry_after_s": result.retry_after_seconds,
            "route": request.url.path,
        },
    )
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Try again later.",
        headers=throttle_headers(result) if settings.app.rate_limit_include_headers else None,
    )
