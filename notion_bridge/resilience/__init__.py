"""Resilience primitives for outbound Notion calls.

Rate limiting, error classification, backoff and retries live here so the
service layer only composes them.
"""

from notion_bridge.resilience.backoff import BackoffPolicy
from notion_bridge.resilience.classifier import ErrorClassification, ErrorKind, classify_error
from notion_bridge.resilience.limiter import KeyedRateLimiter
from notion_bridge.resilience.retry import RetryingExecutor, RetryState

__all__ = [
    "BackoffPolicy",
    "ErrorClassification",
    "ErrorKind",
    "KeyedRateLimiter",
    "RetryState",
    "RetryingExecutor",
    "classify_error",
]
