"""
Pharmacy inventory schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional


class InventoryItemCreate(BaseModel):
    """Schema for stocking a new product."""
    name: str = Field(..., min_length=1, max_length=200)
    sku: Optional[str] = Field(None, max_length=50)
    quantity: int = Field(default=0, ge=0)
    unit_price: Optional[Decimal] = Field(None, ge=0, description="Unit price in ZAR")
    is_refrigerated: bool = False


class StockUpdateRequest(BaseModel):
    """Set the on-hand quantity of one item."""
    item_id: int = Field(..., alias="itemId", description="Inventory item to update")
    quantity: int = Field(..., ge=0, description="New on-hand quantity")

    class Config:
        populate_by_name = True


class InventoryItemResponse(BaseModel):
    id: int
    pharmacy_id: int
    name: str
    sku: Optional[str]
    quantity: int
    unit_price: Optional[Decimal]
    is_refrigerated: bool
    last_updated: datetime

    class Config:
        from_attributes = True


class InventoryListResponse(BaseModel):
    items: List[InventoryItemResponse]
    total: int


class StockUpdateResponse(BaseModel):
    message: str
    item: InventoryItemResponse
