"""Token bucket rate limiting for remote API calls."""

import asyncio
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict

from leaksecure.core.exceptions import RateLimitError

logger = logging.getLogger(__name__)

DEFAULT_KEY = "default"


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


async def sleep_ms(milliseconds: float) -> None:
    await asyncio.sleep(milliseconds / 1000.0)


@dataclass
class TokenBucket:
    """Capped, time-refilled token counter for one key."""

    capacity: float
    tokens: float
    refill_rate: float  # tokens per millisecond
    last_refill: float

    def refill(self, now: float) -> None:
        elapsed = max(0.0, now - self.last_refill)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now


class RateLimiter:
    """
    Per-key token bucket limiter.

    Buckets are created lazily, start full and live until ``reset``. Bucket
    mutation is serialised by a lock so one limiter can be shared by the
    event loop and worker threads.
    """

    def __init__(
        self,
        capacity: int,
        tokens_per_hour: int,
        clock: Callable[[], float] = monotonic_ms,
        sleep: Callable[[float], Awaitable[None]] = sleep_ms,
    ):
        """
        Initialize the limiter.

        Args:
            capacity: Maximum burst size
            tokens_per_hour: Sustained refill rate
            clock: Millisecond clock
            sleep: Coroutine sleeping for the given milliseconds
        """
        self.capacity = capacity
        self.refill_rate = tokens_per_hour / (60 * 60 * 1000)
        self._clock = clock
        self._sleep = sleep
        self._buckets: Dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def _bucket(self, key: str, now: float) -> TokenBucket:
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = TokenBucket(
                capacity=self.capacity,
                tokens=self.capacity,
                refill_rate=self.refill_rate,
                last_refill=now,
            )
            self._buckets[key] = bucket
        return bucket

    def try_consume(self, key: str = DEFAULT_KEY) -> bool:
        """Take one token for ``key`` if available; return whether it was taken."""
        with self._lock:
            now = self._clock()
            bucket = self._bucket(key, now)
            bucket.refill(now)

            if bucket.tokens >= 1:
                bucket.tokens -= 1
                return True
            return False

    async def wait_for_token(self, key: str = DEFAULT_KEY, max_wait: float = 60_000) -> None:
        """
        Wait until a token for ``key`` is taken.

        Polls with a backoff that doubles every 5 seconds of waiting, up to
        5 seconds between polls.

        Raises:
            RateLimitError: If no token was available within ``max_wait`` ms
        """
        start = self._clock()

        while not self.try_consume(key):
            elapsed = self._clock() - start
            if elapsed >= max_wait:
                raise RateLimitError(
                    "Rate limit exceeded: maximum wait time reached",
                    context={"key": key, "max_wait": max_wait},
                )

            wait_time = min(1000 * 2 ** math.floor(elapsed / 5000), 5000)
            logger.debug("Waiting for rate limit token", extra={"key": key, "wait_ms": wait_time})
            await self._sleep(wait_time)

    def remaining_tokens(self, key: str = DEFAULT_KEY) -> int:
        """Whole tokens currently available for ``key``, without consuming."""
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                return int(self.capacity)

            elapsed = max(0.0, self._clock() - bucket.last_refill)
            current = min(bucket.capacity, bucket.tokens + elapsed * bucket.refill_rate)
            return max(0, math.floor(current))

    def reset(self, key: str = DEFAULT_KEY) -> None:
        with self._lock:
            self._buckets.pop(key, None)
