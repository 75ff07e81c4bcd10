"""
Pharmacy stock database model.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, Numeric, String
from sqlalchemy.sql import func
from pharmalink.app.db.session import Base


class InventoryItem(Base):
    """
    One stocked product at one pharmacy.

    Only the owning pharmacy reads or changes its rows.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    pharmacy_id = Column(Integer, nullable=False, index=True)

    name = Column(String(200), nullable=False)
    sku = Column(String(50), nullable=True)
    quantity = Column(Integer, default=0, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=True)
    is_refrigerated = Column(Boolean, default=False, nullable=False)

    last_updated = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<InventoryItem(id={self.id}, pharmacy_id={self.pharmacy_id}, quantity={self.quantity})>"
