"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- AppError subclasses → status from ``status_for_error``
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from notion_bridge.core.errors import (
    AppError,
    AuthenticationAppError,
    ClientError,
    NotionAPIError,
    NotionClientNotConfiguredError,
    NotionTransportError,
    OperationCancelledError,
    RateLimitedError,
    RateLimiterUnavailableError,
    ServiceUnavailableError,
    UnexpectedObjectKindError,
    ValidationAppError,
)
from notion_bridge.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Non-standard, matches the "client closed request" convention.
STATUS_CLIENT_CLOSED_REQUEST = 499

# Checked in order; first match wins.
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (AuthenticationAppError, 403),
    (RateLimitedError, 429),
    (ServiceUnavailableError, 503),
    (RateLimiterUnavailableError, 503),
    (NotionClientNotConfiguredError, 503),
    (NotionTransportError, 504),
    (UnexpectedObjectKindError, 502),
    (OperationCancelledError, STATUS_CLIENT_CLOSED_REQUEST),
)


def status_for_error(exc: AppError) -> int:
    """Map a domain error to the HTTP status returned to our callers.

    Notion client errors keep Notion's own 4xx status (404 for
    ``object_not_found``, 400 for ``validation_error``...). Any other Notion
    failure is reported as a bad gateway.
    """
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    if isinstance(exc, ClientError) and exc.status and 400 <= exc.status < 500:
        return exc.status
    if isinstance(exc, NotionAPIError):
        return 502
    return 500


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context
    """
    status_code = status_for_error(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "error_type": type(exc).__name__,
            "status_code": status_code,
            "request_path": request.url.path,
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    headers: dict[str, str] | None = None
    if isinstance(exc, NotionAPIError) and exc.retry_after is not None:
        headers = {"Retry-After": str(int(exc.retry_after))}

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message; no stack traces reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with FastAPI app.

    Specific handlers are registered before the general fallback.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
