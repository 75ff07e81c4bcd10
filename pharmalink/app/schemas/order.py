"""
Prescription and order schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pharmalink.app.models.order_enums import OrderStatus
from pharmalink.app.schemas.delivery import DeliveryResponse


class Medication(BaseModel):
    """One line of a digital script."""
    name: str = Field(..., min_length=1, max_length=200)
    dosage: Optional[str] = Field(None, max_length=100)
    quantity: int = Field(default=1, ge=1)
    price: Optional[Decimal] = Field(None, ge=0, description="Unit price in ZAR")
    category: Optional[str] = Field(None, max_length=50, description="Therapeutic category, used for pre-auth rules")


class PrescriptionCreate(BaseModel):
    """Schema for a doctor issuing a digital script."""
    pharmacy_id: int = Field(..., description="Pharmacy that will fulfil the script")
    patient_id: Optional[int] = Field(None, description="Patient the script is issued to")
    medications: List[Medication] = Field(..., min_length=1)
    is_refrigerated: bool = False
    is_controlled_substance: bool = False
    notes: Optional[str] = Field(None, max_length=1000)


class OrderResponse(BaseModel):
    id: int
    pharmacy_id: int
    doctor_id: Optional[int]
    patient_id: Optional[int]
    prescription: Dict[str, Any]
    is_refrigerated: bool
    is_controlled_substance: bool
    status: OrderStatus
    amount_paid: Optional[Decimal] = None
    payment_reference: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    total: int


class AssignDriverRequest(BaseModel):
    driver_id: int = Field(..., description="User ID of an active driver")


class AssignDriverResponse(BaseModel):
    message: str
    order: OrderResponse
    delivery: DeliveryResponse
