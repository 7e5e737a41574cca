"""Retrying executor for single async units of work.

Each invocation owns a fresh :class:`RetryState`; nothing about past calls
influences the delays of a new one.

State machine::

    Attempting --success--> Succeeded
    Attempting --retryable failure, budget left--> Waiting --delay--> Attempting
    Attempting --terminal failure or budget exhausted--> Failed-Terminal

On Failed-Terminal the original exception is re-raised unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, TypeVar

from notion_bridge.resilience.backoff import BackoffPolicy
from notion_bridge.resilience.cancellation import SleepFunc, wait_or_cancel
from notion_bridge.resilience.classifier import ErrorClassification, classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3


@dataclass(frozen=True)
class RetryState:
    """Per-invocation retry bookkeeping.

    Attributes:
        attempt: 1-based number of the attempt currently being made.
        max_retries: Retries allowed after the first attempt.
        elapsed_backoff: Seconds spent waiting so far.
    """

    attempt: int = 1
    max_retries: int = DEFAULT_MAX_RETRIES
    elapsed_backoff: float = 0.0

    @property
    def remaining(self) -> int:
        return max(0, self.max_retries - (self.attempt - 1))

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0

    def advance(self, waited: float) -> RetryState:
        return replace(
            self,
            attempt=self.attempt + 1,
            elapsed_backoff=self.elapsed_backoff + waited,
        )


class RetryingExecutor:
    """Runs an operation with bounded retries and exponential backoff.

    Attributes:
        policy: Backoff policy used between attempts.
        max_retries: Default retry budget per invocation.
    """

    def __init__(
        self,
        policy: BackoffPolicy | None = None,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        classifier: Callable[[BaseException], ErrorClassification] = classify_error,
        sleep: SleepFunc = wait_or_cancel,
    ) -> None:
        """Initialize the executor.

        Args:
            policy: Backoff policy (defaults to 1s base, no cap, no jitter).
            max_retries: Retries allowed after the first attempt.
            classifier: Maps an exception to a retry decision.
            sleep: Cancellable sleep used for backoff waits.

        Raises:
            ValueError: If max_retries is negative.
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")

        self.policy = policy or BackoffPolicy()
        self.max_retries = max_retries
        self._classify = classifier
        self._sleep = sleep

    def _wait_for(self, state: RetryState, classification: ErrorClassification) -> float:
        wait = self.policy.compute_wait(state.attempt)
        if classification.retry_after is not None:
            wait = max(wait, classification.retry_after)
        return wait

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        max_retries: int | None = None,
        cancel: asyncio.Event | None = None,
        operation_name: str | None = None,
    ) -> T:
        """Run ``operation`` until it succeeds or fails terminally.

        Args:
            operation: Zero-argument coroutine factory; called once per attempt.
            max_retries: Override of the executor's retry budget.
            cancel: Optional event that abandons a pending backoff wait.
            operation_name: Label used in log events.

        Returns:
            Whatever ``operation`` returns on its first successful attempt.

        Raises:
            Exception: The original error of the last attempt when it is not
                retryable or the retry budget is spent.
            OperationCancelledError: If ``cancel`` fires during a backoff wait.
        """
        budget = self.max_retries if max_retries is None else max_retries
        if budget < 0:
            raise ValueError("max_retries must be >= 0")

        name = operation_name or getattr(operation, "__name__", "operation")
        state = RetryState(max_retries=budget)

        while True:
            try:
                return await operation()
            except Exception as exc:
                classification = self._classify(exc)

                if not classification.retryable:
                    logger.info(
                        "retry.non_retryable",
                        extra={
                            "operation": name,
                            "attempt": state.attempt,
                            "error_kind": classification.kind.value,
                            "error_code": classification.code,
                        },
                    )
                    raise

                if state.exhausted:
                    logger.warning(
                        "retry.exhausted",
                        extra={
                            "operation": name,
                            "attempts": state.attempt,
                            "error_kind": classification.kind.value,
                            "elapsed_backoff_s": round(state.elapsed_backoff, 3),
                        },
                    )
                    raise

                wait = self._wait_for(state, classification)
                logger.warning(
                    "retry.scheduled",
                    extra={
                        "operation": name,
                        "attempt": state.attempt,
                        "remaining": state.remaining,
                        "error_kind": classification.kind.value,
                        "delay_s": round(wait, 3),
                    },
                )

            await self._sleep(wait, cancel)
            state = state.advance(wait)
