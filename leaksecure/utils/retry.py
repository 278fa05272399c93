"""Retry logic with exponential backoff and jitter."""

import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from leaksecure.core.exceptions import (
    OperationTimeoutError,
    RateLimitError,
    RemoteAPIError,
    is_operational_error,
)
from leaksecure.utils.rate_limiter import sleep_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RETRYABLE_MARKERS = ("timeout", "rate limit", "network", "econnreset", "etimedout", "503", "429")


def is_retryable_error(error: BaseException) -> bool:
    """
    Default retry predicate.

    Only operational errors are retried, and only those that describe a
    transient condition. Programming and validation errors never are.
    """
    if not is_operational_error(error):
        return False

    if isinstance(error, (RateLimitError, OperationTimeoutError)):
        return True
    if isinstance(error, RemoteAPIError) and error.transient:
        return True

    message = str(error).lower()
    return any(marker in message for marker in _RETRYABLE_MARKERS)


@dataclass
class RetryPolicy:
    """Configuration for retry behavior.

    Attributes:
        max_retries: Retries after the first attempt; total calls are max_retries + 1.
        base_delay: Delay in milliseconds before the first retry.
        max_delay: Upper bound in milliseconds for any delay.
        is_retryable: Predicate deciding whether an error is worth retrying.
    """

    max_retries: int = 3
    base_delay: float = 1_000
    max_delay: float = 30_000
    is_retryable: Callable[[BaseException], bool] = field(default=is_retryable_error)

    def delay_for(self, attempt: int, rng: Callable[[], float] = random.random) -> float:
        """Delay before retry ``attempt`` (0-based), with 0-30% jitter."""
        exponential = self.base_delay * (2 ** attempt)
        jitter = rng() * 0.3 * exponential
        return min(exponential + jitter, self.max_delay)


async def retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Awaitable[None]] = sleep_ms,
) -> T:
    """
    Execute an operation with exponential backoff retry.

    Args:
        operation: Async callable to execute
        policy: Retry configuration
        sleep: Coroutine sleeping for the given milliseconds

    Returns:
        Result of the operation

    Raises:
        The last error, once it is non-retryable or retries are exhausted
    """
    policy = policy or RetryPolicy()

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if not policy.is_retryable(e) or attempt >= policy.max_retries:
                raise

            delay = policy.delay_for(attempt)
            logger.warning(
                f"Retry attempt {attempt + 1}/{policy.max_retries} after {delay:.0f}ms",
                extra={"error": str(e), "attempt": attempt + 1, "delay_ms": delay},
            )
            await sleep(delay)
            attempt += 1
