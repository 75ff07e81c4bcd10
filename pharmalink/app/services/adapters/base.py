"""
Common call path for external verification adapters.

Every adapter call gets an explicit deadline and goes through the adapter's
circuit breaker:

- deadline exceeded      -> AdapterTimeoutError
- circuit open           -> AdapterUnavailableError
- unexpected exception   -> AdapterUnavailableError
- AppException subclass  -> passed through untouched (it is a classification,
                            not a failure, and does not trip the breaker)
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from pharmalink.app.core.config import settings
from pharmalink.app.core.exceptions import AdapterTimeoutError, AdapterUnavailableError, AppException
from pharmalink.app.core.reliability import CircuitBreaker, CircuitOpenError, call_with_timeout

logger = logging.getLogger("pharmalink.adapters")


class VerificationAdapter:
    name = "adapter"

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        latency_seconds: Optional[float] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.timeout_seconds = settings.adapter_timeout_seconds if timeout_seconds is None else timeout_seconds
        # Stand-in for provider round-trip time; zero in production
        self.latency_seconds = settings.adapter_latency_seconds if latency_seconds is None else latency_seconds
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=settings.adapter_failure_threshold,
            reset_timeout=settings.adapter_reset_timeout,
            ignored=(AppException,),
        )

    async def _invoke(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        async def attempt():
            if self.latency_seconds > 0:
                await asyncio.sleep(self.latency_seconds)
            return await func(*args, **kwargs)

        try:
            return await self.breaker.call(call_with_timeout, attempt, self.timeout_seconds)
        except CircuitOpenError as exc:
            logger.warning("%s circuit open, rejecting call", self.name)
            raise AdapterUnavailableError(self.name, "circuit open") from exc
        except asyncio.TimeoutError as exc:
            logger.warning("%s timed out after %ss", self.name, self.timeout_seconds)
            raise AdapterTimeoutError(self.name, self.timeout_seconds) from exc
        except AppException:
            raise
        except Exception as exc:
            logger.exception("%s failed", self.name)
            raise AdapterUnavailableError(self.name, str(exc)) from exc
