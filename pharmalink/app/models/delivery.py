"""
Delivery database model.

The physical transport leg of an order, created when the order is dispatched.
"""

from sqlalchemy import Column, Integer, Float, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from pharmalink.app.db.session import Base
from pharmalink.app.models.order_enums import DeliveryStatus


class Delivery(Base):
    """
    Delivery model.

    Exactly one per order. Only the assigned driver may change it.
    ``temperature_max`` is a running maximum and never decreases.
    """
    __tablename__ = "deliveries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    order_id = Column(Integer, ForeignKey('orders.id'), unique=True, nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    status = Column(Enum(DeliveryStatus), default=DeliveryStatus.ASSIGNED, nullable=False, index=True)

    # Cold chain
    temperature_max = Column(Float, nullable=True)
    cold_chain_breached = Column(Boolean, default=False, nullable=False)  # sticky once any reading breaches

    scheduled_time = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    actual_delivery_time = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Delivery(id={self.id}, order_id={self.order_id}, driver_id={self.driver_id}, status='{self.status.value}')>"
