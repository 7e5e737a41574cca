"""Cancellable sleeping shared by the limiter and the retry executor."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Protocol

from notion_bridge.core.errors import OperationCancelledError


class SleepFunc(Protocol):
    def __call__(self, delay: float, cancel: asyncio.Event | None = None) -> Awaitable[None]: ...


async def wait_or_cancel(delay: float, cancel: asyncio.Event | None = None) -> None:
    """Sleep for ``delay`` seconds unless ``cancel`` is set first.

    Args:
        delay: Seconds to wait. Non-positive values return immediately.
        cancel: Optional event; setting it abandons the wait.

    Raises:
        OperationCancelledError: If ``cancel`` is set before or during the wait.
    """
    if cancel is None:
        if delay > 0:
            await asyncio.sleep(delay)
        return

    if cancel.is_set():
        raise OperationCancelledError(
            code="operation_cancelled",
            message="Operation was cancelled before waiting",
        )
    if delay <= 0:
        return

    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return

    raise OperationCancelledError(
        code="operation_cancelled",
        message=f"Operation was cancelled during a {delay:.2f}s wait",
    )
