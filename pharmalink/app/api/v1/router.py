"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from pharmalink.app.api.v1.endpoints import (
    auth, prescriptions, orders, inventory, payments,
    deliveries, billing, identity, notifications
)

router = APIRouter()

# Authentication
router.include_router(auth.router)

# Doctor / patient
router.include_router(prescriptions.router)

# Pharmacy
router.include_router(orders.router)
router.include_router(inventory.router)
router.include_router(billing.router)

# Payment provider
router.include_router(payments.router)

# Driver
router.include_router(deliveries.router)

# Shared utilities
router.include_router(identity.router)
router.include_router(notifications.router)
