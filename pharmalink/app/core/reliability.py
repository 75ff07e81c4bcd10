"""
Reliability utilities for external calls.

Circuit breaker plus an explicit timeout for every adapter call.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Tuple, Type


class CircuitOpenError(Exception):
    pass


class CircuitBreaker:
    """
    Simple Circuit Breaker implementation.
    If 'failure_threshold' failures occur, the circuit opens and rejects
    calls for 'reset_timeout' seconds. Exceptions listed in 'ignored' are
    passed through without counting as failures.
    """
    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 60,
        ignored: Tuple[Type[BaseException], ...] = (),
    ):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.ignored = ignored
        self.failures = 0
        self.last_failure_time = 0.0
        self.state = "CLOSED"  # CLOSED, OPEN, HALF_OPEN

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        if self.state == "OPEN":
            if time.monotonic() - self.last_failure_time > self.reset_timeout:
                self.state = "HALF_OPEN"
            else:
                raise CircuitOpenError("Circuit is OPEN")

        try:
            result = await func(*args, **kwargs)
        except self.ignored:
            if self.state == "HALF_OPEN":
                self.reset_state()
            raise
        except Exception:
            self.record_failure()
            raise

        if self.state == "HALF_OPEN" or self.failures:
            self.reset_state()
        return result

    def record_failure(self):
        self.failures += 1
        self.last_failure_time = time.monotonic()
        if self.state == "HALF_OPEN" or self.failures >= self.failure_threshold:
            self.state = "OPEN"

    def reset_state(self):
        self.failures = 0
        self.state = "CLOSED"


async def call_with_timeout(func: Callable[..., Awaitable[Any]], timeout_seconds: float, *args, **kwargs) -> Any:
    """Await ``func`` with a deadline. Raises ``asyncio.TimeoutError`` on expiry."""
    return await asyncio.wait_for(func(*args, **kwargs), timeout=timeout_seconds)
