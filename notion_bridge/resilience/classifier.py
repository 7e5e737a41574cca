"""Classify failures as retryable or terminal.

Classification rules (applied in order):
    1. ``RateLimitedError`` / ``ServiceUnavailableError`` /
       ``InternalServerError`` → retryable
    2. ``ClientError`` → not retryable, client error with Notion's code
    3. Any other ``AppError`` (transport failures, unexpected object kinds,
       limiter outages, cancellation) → not retryable, unknown
    4. Any exception exposing a string ``code`` (e.g. another SDK's error
       type) → retryable only for the three transient codes, otherwise a
       client error
    5. Default → not retryable, unknown

Unknown shapes never retry, so a permanently broken request cannot loop.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from notion_bridge.core.errors import (
    AppError,
    ClientError,
    InternalServerError,
    RateLimitedError,
    ServiceUnavailableError,
)


class ErrorKind(str, enum.Enum):
    RATE_LIMITED = "rate_limited"
    SERVICE_UNAVAILABLE = "service_unavailable"
    INTERNAL_SERVER_ERROR = "internal_server_error"
    CLIENT_ERROR = "client_error"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.RATE_LIMITED,
        ErrorKind.SERVICE_UNAVAILABLE,
        ErrorKind.INTERNAL_SERVER_ERROR,
    }
)

_KIND_BY_CODE = {kind.value: kind for kind in RETRYABLE_KINDS}


@dataclass(frozen=True)
class ErrorClassification:
    """Outcome of classifying a failure.

    Attributes:
        retryable: Whether the retry executor may try again.
        kind: Category of the failure.
        code: Service error code, when one was present.
        retry_after: Server-suggested wait in seconds, when one was present.
    """

    retryable: bool
    kind: ErrorKind
    code: str | None = None
    retry_after: float | None = None


def _from_kind(kind: ErrorKind, code: str | None, retry_after: float | None = None) -> ErrorClassification:
    return ErrorClassification(
        retryable=kind in RETRYABLE_KINDS,
        kind=kind,
        code=code,
        retry_after=retry_after,
    )


def classify_error(error: BaseException) -> ErrorClassification:
    """Classify an exception for retry decisions.

    Args:
        error: The exception raised by an attempt.

    Returns:
        An :class:`ErrorClassification` instance.
    """
    if isinstance(error, RateLimitedError):
        return _from_kind(ErrorKind.RATE_LIMITED, error.code, error.retry_after)
    if isinstance(error, ServiceUnavailableError):
        return _from_kind(ErrorKind.SERVICE_UNAVAILABLE, error.code, error.retry_after)
    if isinstance(error, InternalServerError):
        return _from_kind(ErrorKind.INTERNAL_SERVER_ERROR, error.code, error.retry_after)
    if isinstance(error, ClientError):
        return _from_kind(ErrorKind.CLIENT_ERROR, error.code)
    if isinstance(error, AppError):
        return _from_kind(ErrorKind.UNKNOWN, error.code)

    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        kind = _KIND_BY_CODE.get(code, ErrorKind.CLIENT_ERROR)
        return _from_kind(kind, code)

    return _from_kind(ErrorKind.UNKNOWN, None)
