"""
Fixed-delay retry for history retrieval.

Only the history engine retries; ledger and connector calls never do.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple, Type


logger = logging.getLogger(__name__)


class MaxRetriesExceeded(Exception):
    """Every permitted attempt failed, or a non-retryable error stopped the loop."""

    def __init__(self, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempt(s). Last error: {last_error}")


class FixedBackoff:
    """
    Bounded retry with the same delay between every pair of attempts.

    Holds no per-call state, so one instance can serve concurrent fetches.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        delay: float = 2.0,
        non_retryable_exceptions: Tuple[Type[Exception], ...] = (),
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None
    ):
        """
        Initialize fixed backoff policy.

        Args:
            max_attempts: Maximum number of attempts, including the first
            delay: Delay between attempts in seconds
            non_retryable_exceptions: Exception types that stop retrying at once
            sleep: Awaitable sleep function (``asyncio.sleep`` by default)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.delay = delay
        self.non_retryable_exceptions = non_retryable_exceptions
        self.sleep = sleep or asyncio.sleep

    async def execute(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """
        Await ``func`` until it succeeds or attempts run out.

        Raises:
            MaxRetriesExceeded: If every permitted attempt failed
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                if attempt >= self.max_attempts or isinstance(e, self.non_retryable_exceptions):
                    raise MaxRetriesExceeded(attempt, e) from e
                logger.warning(
                    f"Attempt {attempt}/{self.max_attempts} failed: {e}. "
                    f"Retrying in {self.delay:.2f}s..."
                )
                await self.sleep(self.delay)
            else:
                if attempt > 1:
                    logger.info(f"Operation succeeded on attempt {attempt}")
                return result


__all__ = [
    "MaxRetriesExceeded",
    "FixedBackoff",
]
