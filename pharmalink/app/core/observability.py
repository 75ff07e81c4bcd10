"""
Observability: logging setup and request correlation.

Every request gets an ``X-Correlation-ID`` (taken from the caller or freshly
generated). The id is stored in a context variable so that post-commit hooks
and adapters can stamp their own log records with it.
"""

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("pharmalink")

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")


class CorrelationIdFilter(logging.Filter):
    """Attach the current correlation id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id_var.get()
        return True


def configure_logging(debug: bool = False) -> None:
    """Install a single stream handler on the ``pharmalink`` logger tree."""
    if any(isinstance(f, CorrelationIdFilter) for h in logger.handlers for f in h.filters):
        return
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"
    ))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        token = correlation_id_var.set(correlation_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)

        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"

        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "ip": request.client.host if request.client else "unknown"
        }

        if response.status_code >= 500:
            logger.error("%s %s failed", request.method, request.url.path, extra=log_data)
        elif response.status_code >= 400:
            logger.warning("%s %s rejected", request.method, request.url.path, extra=log_data)
        else:
            logger.info("%s %s", request.method, request.url.path, extra=log_data)

        return response
