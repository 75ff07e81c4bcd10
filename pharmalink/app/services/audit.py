"""
Audit logging service.

Writes the POPIA compliance trail for order, delivery, payment and claim
mutations and for authentication events.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from pharmalink.app.models.audit_log import AuditLog


class AuditAction:
    """Action names shared by the audit trail and the notification payloads."""
    # Authentication
    USER_REGISTERED = "USER_REGISTERED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    TOKEN_REVOKED = "TOKEN_REVOKED"

    # Order lifecycle
    PRESCRIPTION_ISSUED = "PRESCRIPTION_ISSUED"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    ORDER_ACCEPTED = "ORDER_ACCEPTED"
    DRIVER_ASSIGNED = "DRIVER_ASSIGNED"
    DELIVERY_STATUS_UPDATED = "DELIVERY_STATUS_UPDATED"
    DELIVERY_CONFIRMED = "DELIVERY_CONFIRMED"

    # Billing
    CLAIM_SUBMITTED = "CLAIM_SUBMITTED"

    # Inventory
    STOCK_UPDATED = "STOCK_UPDATED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[Any] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None
) -> AuditLog:
    """
    Append one entry to the audit trail and commit it.

    ``actor_id`` is None for provider webhooks; ``ip_address`` is then the
    webhook origin. The trail is append-only: nothing in the service updates
    or deletes an AuditLog row.
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        meta_data=metadata,
        ip_address=ip_address,
        user_agent=user_agent[:255] if user_agent else None
    )

    db.add(audit_log)
    await db.commit()

    return audit_log


async def log_auth_event(
    db: AsyncSession,
    action: str,
    user_id: Optional[int],
    username: Optional[str],
    ip_address: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """Register, login and logout entries, keyed to the user record."""
    return await log_event(
        db=db,
        action=action,
        actor_id=user_id,
        actor_username=username,
        resource_type="user",
        resource_id=user_id,
        ip_address=ip_address,
        metadata=metadata
    )
