"""Circuit breaker pattern implementation"""

import asyncio
import time
from typing import Any, Callable, Dict, Optional

from loguru import logger

from .config import CIRCUIT_BREAKER_THRESHOLD, CIRCUIT_BREAKER_TIMEOUT
from .exceptions import CircuitOpenError, ScrapeTimeoutError
from .models import CircuitState


class CircuitBreaker:
    """
    Circuit breaker pattern to prevent cascading failures.
    Opens after threshold failures, half-opens once the cooldown elapsed.
    """

    def __init__(
        self,
        failure_threshold: int = CIRCUIT_BREAKER_THRESHOLD,
        timeout: float = CIRCUIT_BREAKER_TIMEOUT,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Number of failures before opening circuit
            timeout: Cooldown in seconds before attempting to close circuit
            name: Name for logging purposes
            clock: Monotonic time source in seconds
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.name = name
        self.clock = clock
        self.failures = 0
        self.state = CircuitState.CLOSED
        self.last_failure_time: Optional[float] = None
        self.lock = asyncio.Lock()

        logger.debug(
            f"Circuit breaker '{name}' initialized: "
            f"threshold={failure_threshold}, timeout={timeout}s"
        )

    def _remaining_cooldown(self) -> float:
        if self.last_failure_time is None:
            return 0.0
        elapsed = self.clock() - self.last_failure_time
        return max(0.0, self.timeout - elapsed)

    async def can_execute(self) -> bool:
        """Whether the wrapped operation may be attempted right now"""
        async with self.lock:
            if self.state != CircuitState.OPEN:
                return True

            if self._remaining_cooldown() > 0:
                return False

            logger.info(
                f"Circuit '{self.name}' transitioning to HALF_OPEN (timeout expired)"
            )
            self.state = CircuitState.HALF_OPEN
            return True

    async def on_success(self) -> None:
        async with self.lock:
            if self.state != CircuitState.CLOSED:
                logger.success(f"Circuit '{self.name}' recovered, closing")
            self.failures = 0
            self.state = CircuitState.CLOSED

    async def on_failure(self) -> None:
        async with self.lock:
            self.failures += 1
            self.last_failure_time = self.clock()

            if self.state == CircuitState.HALF_OPEN:
                logger.error(f"Circuit '{self.name}' trial failed, re-OPENING")
                self.state = CircuitState.OPEN
            elif self.failures >= self.failure_threshold:
                logger.error(
                    f"Circuit '{self.name}' OPENING after {self.failures} failures"
                )
                self.state = CircuitState.OPEN
            else:
                logger.warning(
                    f"Circuit '{self.name}' failure "
                    f"{self.failures}/{self.failure_threshold}"
                )

    async def call(
        self,
        func: Callable,
        *args,
        timeout: Optional[float] = None,
        identifier: Optional[str] = None,
        **kwargs,
    ) -> Any:
        """
        Execute function with circuit breaker protection.

        Args:
            func: Async function to execute
            timeout: Optional overall deadline in seconds
            identifier: Label attached to synthetic errors

        Raises:
            CircuitOpenError: If the circuit is open; ``func`` is not called
            ScrapeTimeoutError: If ``timeout`` elapsed (counted as a failure)
        """
        if not await self.can_execute():
            remaining = self._remaining_cooldown()
            raise CircuitOpenError(
                f"Circuit '{self.name}' is OPEN, retry in {remaining:.0f}s",
                identifier=identifier,
                retry_in=remaining,
            )

        try:
            if timeout is None:
                result = await func(*args, **kwargs)
            else:
                result = await asyncio.wait_for(func(*args, **kwargs), timeout)
        except asyncio.TimeoutError as e:
            await self.on_failure()
            if timeout is None:
                # Raised by func itself, not by our deadline
                raise
            raise ScrapeTimeoutError(
                f"Timed out after {timeout:.0f}s", identifier=identifier
            ) from e
        except Exception:
            await self.on_failure()
            raise

        await self.on_success()
        return result

    def status(self) -> Dict[str, Any]:
        """Snapshot for health-check surfaces"""
        time_until_reset = (
            self._remaining_cooldown() if self.state == CircuitState.OPEN else 0.0
        )
        return {
            "state": self.state.value,
            "failure_count": self.failures,
            "time_until_reset": round(time_until_reset, 3),
        }
