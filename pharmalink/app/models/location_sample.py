"""
Driver location time series.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime
from sqlalchemy.sql import func
from pharmalink.app.db.session import Base


class LocationSample(Base):
    """
    GPS point reported by a driver during a delivery.

    Append only: rows are never updated or deleted.
    """
    __tablename__ = "location_samples"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    driver_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    delivery_id = Column(Integer, ForeignKey('deliveries.id'), nullable=True, index=True)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    recorded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<LocationSample(driver_id={self.driver_id}, lat={self.latitude}, lng={self.longitude})>"
