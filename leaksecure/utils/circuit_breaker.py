"""Circuit breaker isolating the scanner from a failing remote API."""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, TypeVar

from leaksecure.core.exceptions import CircuitOpenError, OperationTimeoutError
from leaksecure.utils.rate_limiter import monotonic_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Breaker states."""

    CLOSED = "closed"        # Normal operation
    OPEN = "open"            # Failing, reject calls
    HALF_OPEN = "half_open"  # Probing whether the service recovered


class CircuitBreaker:
    """
    Three-state failure isolator with a per-call timeout.

    All state changes happen synchronously inside ``execute`` between
    suspension points, so a single instance can be shared by every task on
    one event loop.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 60_000,
        timeout: float = 30_000,
        clock: Callable[[], float] = monotonic_ms,
    ):
        """
        Initialize the breaker.

        Args:
            failure_threshold: Failures that open the circuit; also the
                successes needed in HALF_OPEN to close it again
            reset_timeout: Milliseconds the circuit stays OPEN
            timeout: Per-call timeout in milliseconds
            clock: Millisecond clock
        """
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.timeout = timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time = 0.0

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def success_count(self) -> int:
        return self._success_count

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``operation`` under breaker protection.

        Raises:
            CircuitOpenError: If the circuit is OPEN; the operation is not invoked
            OperationTimeoutError: If the operation exceeds the per-call timeout
        """
        if self._state == CircuitState.OPEN:
            if self._clock() - self._last_failure_time >= self.reset_timeout:
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
                logger.info("Circuit breaker transitioning to HALF_OPEN")
            else:
                raise CircuitOpenError(
                    "Circuit breaker is OPEN. Service is unavailable.",
                    {"state": self._state.value, "failure_count": self._failure_count},
                )

        try:
            result = await asyncio.wait_for(operation(), timeout=self.timeout / 1000.0)
        except asyncio.TimeoutError:
            self._on_failure()
            raise OperationTimeoutError(
                f"Operation timed out after {self.timeout:.0f}ms", {"timeout": self.timeout}
            )
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _on_success(self) -> None:
        self._failure_count = 0

        if self._state == CircuitState.HALF_OPEN:
            self._success_count += 1
            if self._success_count >= self.failure_threshold:
                self._state = CircuitState.CLOSED
                logger.info("Circuit breaker CLOSED - service recovered")

    def _on_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = self._clock()

        if self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.OPEN
            logger.warning("Circuit breaker OPEN - service still failing")
        elif self._failure_count >= self.failure_threshold:
            if self._state != CircuitState.OPEN:
                logger.error(
                    "Circuit breaker OPEN - too many failures",
                    extra={"failure_count": self._failure_count, "threshold": self.failure_threshold},
                )
            self._state = CircuitState.OPEN

    def reset(self) -> None:
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time = 0.0
        logger.info("Circuit breaker reset")
