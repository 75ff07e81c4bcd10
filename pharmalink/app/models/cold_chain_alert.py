"""
Cold-chain breach record.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime
from sqlalchemy.sql import func
from pharmalink.app.db.session import Base


class ColdChainAlert(Base):
    """A temperature reading above the configured upper bound."""
    __tablename__ = "cold_chain_alerts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    delivery_id = Column(Integer, ForeignKey('deliveries.id'), nullable=False, index=True)
    temperature = Column(Float, nullable=False)
    threshold = Column(Float, nullable=False)

    recorded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<ColdChainAlert(delivery_id={self.delivery_id}, temperature={self.temperature})>"
