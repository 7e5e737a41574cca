"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.

Notion failures form their own branch (``NotionAppError``). The three
transient service errors (rate limited, service unavailable, internal
server error) are the only ones the retry layer will retry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: float
    expected_kind: str
    actual_kind: str
    limiter_key: str
    operation: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class NotionAppError(AppError):
    """Base for failures raised while talking to Notion."""


@dataclass
class NotionAPIError(NotionAppError):
    """Notion answered with an error response.

    Attributes:
        status: HTTP status returned by Notion, when known.
        retry_after: Seconds suggested by a ``Retry-After`` header, when sent.
    """

    status: int | None = None
    retry_after: float | None = None


class RateLimitedError(NotionAPIError):
    """Notion rejected the request with ``rate_limited`` (HTTP 429)."""


class ServiceUnavailableError(NotionAPIError):
    """Notion reported ``service_unavailable`` (HTTP 503)."""


class InternalServerError(NotionAPIError):
    """Notion reported ``internal_server_error`` (HTTP 500)."""


class ClientError(NotionAPIError):
    """Terminal request failure (validation, not found, permission denied...).

    ``code`` carries Notion's error code, e.g. ``object_not_found``.
    """


class NotionTransportError(NotionAPIError):
    """The HTTP exchange itself failed (timeout, connection reset)."""


class UnexpectedObjectKindError(NotionAppError):
    """Notion returned an object of a different kind than requested."""


class RateLimiterUnavailableError(NotionAppError):
    """The shared rate-limit store could not be reached.

    Requests are refused rather than sent unthrottled.
    """


class OperationCancelledError(NotionAppError):
    """The caller abandoned an operation while it was suspended."""


class NotionClientNotConfiguredError(AppError):
    """The service started without a usable Notion client."""
