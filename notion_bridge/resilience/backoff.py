"""Exponential backoff policy.

``delay(n) = base * 2 ** (n - 1)``, optionally capped. With jitter enabled,
the wait actually slept is drawn uniformly from ``[delay / 2, delay]`` so
concurrent callers that failed together do not retry together.
"""

from __future__ import annotations

import random
import sys
from dataclasses import dataclass


@dataclass(frozen=True)
class BackoffPolicy:
    """Maps a retry attempt number to a wait duration.

    Attributes:
        base_delay: Wait before the first retry, in seconds.
        max_delay: Optional ceiling for a single wait.
        jitter: Randomize waits within the capped window.
    """

    base_delay: float = 1.0
    max_delay: float | None = None
    jitter: bool = False

    def __post_init__(self) -> None:
        if self.base_delay <= 0:
            raise ValueError("base_delay must be > 0")
        if self.max_delay is not None and self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")

    def delay(self, attempt: int) -> float:
        """Return the deterministic backoff for a 1-based attempt number.

        Raises:
            ValueError: If ``attempt`` is lower than 1.
        """
        if attempt < 1:
            raise ValueError("attempt must be >= 1")
        if self.max_delay is not None:
            # Avoid computing huge powers once the cap is reached.
            exponent_cap = self.max_delay / self.base_delay
            if 2 ** min(attempt - 1, 1023) >= exponent_cap:
                return self.max_delay
        # Saturates at the largest float instead of overflowing.
        return min(self.base_delay * 2.0 ** min(attempt - 1, 1023), sys.float_info.max)

    def compute_wait(self, attempt: int, rng: random.Random | None = None) -> float:
        """Return the wait to sleep before retrying ``attempt``."""
        ceiling = self.delay(attempt)
        if not self.jitter:
            return ceiling
        source = rng or random
        return source.uniform(ceiling / 2, ceiling)

    def total_delay(self, max_retries: int) -> float:
        """Upper bound of compounded waiting for ``max_retries`` retries."""
        return sum(self.delay(attempt) for attempt in range(1, max_retries + 1))
