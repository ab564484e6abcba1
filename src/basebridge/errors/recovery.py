"""Retry helpers for recoverable relay errors.

Polling loops never resubmit transactions. The only retry the relayer
offers is re-running a whole step that failed with a retryable error,
typically ``NotFinalizedError`` while the destination checkpoint catches up.
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, TypeVar

from ..logging import get_logger
from .exceptions import NotFinalizedError, RetryableError

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry policy configuration."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: List[type] = field(default_factory=lambda: [RetryableError])

    def get_delay(self, attempt: int) -> float:
        """Get delay for the given attempt."""
        if attempt <= 0:
            return 0.0

        # Exponential backoff
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))

        # Cap at max delay
        delay = min(delay, self.max_delay)

        if self.jitter:
            delay *= random.uniform(0.5, 1.5)

        return delay

    def is_retryable(self, error: Exception) -> bool:
        return isinstance(error, tuple(self.retryable_exceptions))


def finalization_policy(max_retries: int, interval: float = 30.0) -> RetryPolicy:
    """Fixed-interval policy that only retries ``NotFinalizedError``."""
    return RetryPolicy(
        max_retries=max_retries,
        base_delay=interval,
        max_delay=interval,
        exponential_base=1.0,
        jitter=False,
        retryable_exceptions=[NotFinalizedError],
    )


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    name: str = "operation",
) -> T:
    """Run ``operation`` and re-run it on retryable errors.

    The last error propagates once ``policy.max_retries`` is exhausted.
    Non-retryable errors propagate immediately.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if not policy.is_retryable(e) or attempt >= policy.max_retries:
                raise
            attempt += 1
            delay = policy.get_delay(attempt)
            logger.warning(
                f"{name} failed with retryable error ({e}); "
                f"retry {attempt}/{policy.max_retries} in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
