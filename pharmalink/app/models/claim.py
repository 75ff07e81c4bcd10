"""
Medical-aid claim database model.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, Numeric
from sqlalchemy.sql import func
from pharmalink.app.db.session import Base
from pharmalink.app.models.order_enums import ClaimStatus


class Claim(Base):
    """
    Adjudicated cost-sharing outcome for a delivery.

    At most one claim per delivery, never amended after creation.
    """
    __tablename__ = "claims"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    delivery_id = Column(Integer, ForeignKey('deliveries.id'), unique=True, nullable=False, index=True)

    scheme = Column(String(100), nullable=False)
    transaction_id = Column(String(50), nullable=False)

    claim_amount = Column(Numeric(12, 2), nullable=False)
    medical_aid_paid = Column(Numeric(12, 2), nullable=False)
    patient_co_payment = Column(Numeric(12, 2), nullable=False)

    auth_number = Column(String(50), nullable=False)
    status = Column(Enum(ClaimStatus), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Claim(id={self.id}, delivery_id={self.delivery_id}, status='{self.status.value}')>"
