"""
Delivery execution schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from pharmalink.app.models.order_enums import DeliveryCondition, DeliveryStatus


class Location(BaseModel):
    """
    GPS fix reported by the driver app.

    Both coordinates are optional on the wire; a fix missing either one is
    ignored rather than rejected.
    """
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)


class DeliveryStatusUpdate(BaseModel):
    status: DeliveryStatus = Field(default=DeliveryStatus.IN_TRANSIT)
    temperature: Optional[float] = Field(None, allow_inf_nan=False, description="Cargo temperature in Celsius")
    location: Optional[Location] = None


class DeliveryResponse(BaseModel):
    id: int
    order_id: int
    driver_id: int
    status: DeliveryStatus
    temperature_max: Optional[float] = None
    cold_chain_breached: bool
    scheduled_time: datetime
    actual_delivery_time: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DeliveryTaskList(BaseModel):
    tasks: List[DeliveryResponse]
    total: int


class DeliveryStatusResponse(BaseModel):
    """Echo of a telemetry update. ``location`` is null when the fix was dropped."""
    message: str
    condition: DeliveryCondition
    temperature: Optional[float] = None
    location: Optional[Location] = None
    delivery: DeliveryResponse


class BiometricVerifyRequest(BaseModel):
    biometric_hash: str = Field(..., alias="biometricHash", description="Opaque hash from the recipient's device")

    class Config:
        populate_by_name = True


class BiometricVerifyResponse(BaseModel):
    message: str
    audit_hash: str
    delivery: DeliveryResponse
