"""
Pharmacy inventory endpoints.

Pharmacists see and adjust the stock of their own pharmacy only.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from pharmalink.app.core.actor import Actor
from pharmalink.app.core.guards import require_role
from pharmalink.app.db.session import get_db
from pharmalink.app.models.enums import UserRole
from pharmalink.app.schemas.inventory import (
    InventoryItemCreate, InventoryItemResponse, InventoryListResponse, StockUpdateRequest, StockUpdateResponse
)
from pharmalink.app.services.inventory import PharmacyInventory

router = APIRouter(prefix="/inventory", tags=["Pharmacy - Inventory"])


@router.get("/", response_model=InventoryListResponse)
async def list_inventory(
    actor: Actor = Depends(require_role([UserRole.PHARMACIST])),
    db: AsyncSession = Depends(get_db)
):
    items = await PharmacyInventory(db).list_items(actor)
    return InventoryListResponse(
        items=[InventoryItemResponse.model_validate(item) for item in items],
        total=len(items)
    )


@router.post("/", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
async def add_inventory_item(
    item_data: InventoryItemCreate,
    actor: Actor = Depends(require_role([UserRole.PHARMACIST])),
    db: AsyncSession = Depends(get_db)
):
    """Stock a new product at the caller's pharmacy."""
    item = await PharmacyInventory(db).add_item(actor, **item_data.model_dump())
    return InventoryItemResponse.model_validate(item)


@router.patch("/update", response_model=StockUpdateResponse)
async def update_stock(
    update_data: StockUpdateRequest,
    actor: Actor = Depends(require_role([UserRole.PHARMACIST])),
    db: AsyncSession = Depends(get_db)
):
    """
    Set the on-hand quantity of one item.

    Items of other pharmacies answer 404 exactly like missing ones.
    """
    item = await PharmacyInventory(db).update_stock(actor, update_data.item_id, update_data.quantity)
    return StockUpdateResponse(message="Stock updated", item=InventoryItemResponse.model_validate(item))
