"""
Audit Log Database Model.

Compliance trail (POPIA) of sensitive mutations. Written, never read back by
the service itself.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from pharmalink.app.db.session import Base


class AuditLog(Base):
    """
    Audit log entry.

    Events logged include ORDER_ACCEPTED, DRIVER_ASSIGNED, DELIVERY_STATUS_UPDATED,
    DELIVERY_CONFIRMED, PAYMENT_CONFIRMED, CLAIM_SUBMITTED and authentication events.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system/webhook actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_username = Column(String(100), nullable=True)

    action = Column(String(100), nullable=False, index=True)

    # What was touched
    resource_type = Column(String(50), nullable=True, index=True)
    resource_id = Column(String(50), nullable=True)

    meta_data = Column(JSON, nullable=True)

    # Request origin
    ip_address = Column(String(50), nullable=True)
    user_agent = Column(String(255), nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', resource={self.resource_type}:{self.resource_id})>"
