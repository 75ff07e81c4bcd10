"""
FastAPI Application Entry Point.

This is the main application file for the PharmaLink Dispatch Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from pharmalink.app.core.config import settings
from pharmalink.app.core.redis_client import close_redis
from pharmalink.app.api.v1.router import router as api_v1_router
from pharmalink.app.db.session import engine, Base
from pharmalink.app.core.observability import ObservabilityMiddleware, configure_logging
from pharmalink.app.core.exceptions import (
    AppException,
    STORAGE_EXCEPTIONS,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    storage_exception_handler,
    generic_exception_handler
)
from pharmalink.app.services.adapters.registry import AdapterSet
from pharmalink.app.services.events import utcnow
from pharmalink.app.services.notification_hub import NotificationHub

# Import models to ensure they are registered with Base
from pharmalink.app.models.user import User
from pharmalink.app.models.audit_log import AuditLog
from pharmalink.app.models.order import Order
from pharmalink.app.models.delivery import Delivery
from pharmalink.app.models.claim import Claim
from pharmalink.app.models.inventory_item import InventoryItem
from pharmalink.app.models.location_sample import LocationSample
from pharmalink.app.models.cold_chain_alert import ColdChainAlert

configure_logging(settings.debug)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup; releases the database pool and the
    Redis connection on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()
    await close_redis()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Prescription-to-doorstep dispatch: order ledger, live notifications and verification adapters",
    lifespan=lifespan,
)

# Process-wide collaborators: one subscriber registry, one set of adapters
# (each with its own circuit breaker)
app.state.notification_hub = NotificationHub()
app.state.adapters = AdapterSet.from_settings(settings)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
for storage_exc in STORAGE_EXCEPTIONS:
    app.add_exception_handler(storage_exc, storage_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """Process status and server time."""
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "timestamp": utcnow().isoformat(),
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to PharmaLink Dispatch Backend API",
        "docs": "/docs",
        "health": "/health",
    }
