"""
Order database model.

An order (the "package") is one prescription-to-delivery fulfilment request.
"""

from sqlalchemy import Column, Integer, Boolean, DateTime, Enum, ForeignKey, JSON, Numeric, String
from sqlalchemy.sql import func
from pharmalink.app.db.session import Base
from pharmalink.app.models.order_enums import OrderStatus


class Order(Base):
    """
    Order model.

    Owned by the pharmacy it was routed to. Status only moves forward
    through ``ORDER_FLOW`` and the row is immutable once delivered.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership
    pharmacy_id = Column(Integer, nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)
    patient_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)

    # Prescription payload: {"medications": [...], "notes": ...}
    prescription = Column(JSON, nullable=False)
    is_refrigerated = Column(Boolean, default=False, nullable=False)
    is_controlled_substance = Column(Boolean, default=False, nullable=False)

    # Status
    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING_VERIFICATION, nullable=False, index=True)

    # Payment
    amount_paid = Column(Numeric(12, 2), nullable=True)
    payment_reference = Column(String(100), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Order(id={self.id}, pharmacy_id={self.pharmacy_id}, status='{self.status.value}')>"
