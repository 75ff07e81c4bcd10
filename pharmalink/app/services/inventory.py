"""
Pharmacy stock keeping.

Every read and write is scoped to the caller's pharmacy. Stock changes use
the same conditional-update idiom as the order ledger: the UPDATE matches
on item id AND pharmacy id, so a row owned by another pharmacy is
indistinguishable from a missing one.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from pharmalink.app.core.actor import Actor
from pharmalink.app.core.exceptions import NotFoundError, UnauthorizedError
from pharmalink.app.models.inventory_item import InventoryItem
from pharmalink.app.services.audit import AuditAction, log_event

logger = logging.getLogger("pharmalink.inventory")


class PharmacyInventory:
    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _pharmacy_of(actor: Actor) -> int:
        if actor.pharmacy_id is None:
            raise UnauthorizedError("Actor is not linked to a pharmacy")
        return actor.pharmacy_id

    async def _get_item(self, item_id: int) -> Optional[InventoryItem]:
        result = await self.db.execute(
            select(InventoryItem)
            .where(InventoryItem.id == item_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def _audit(self, actor: Actor, item: InventoryItem, **metadata) -> None:
        try:
            await log_event(
                self.db,
                action=AuditAction.STOCK_UPDATED,
                actor_id=actor.user_id,
                actor_username=actor.username,
                resource_type="inventory",
                resource_id=item.id,
                metadata={"pharmacy_id": item.pharmacy_id, "quantity": item.quantity, **metadata},
                ip_address=actor.origin,
                user_agent=actor.user_agent,
            )
        except Exception:
            await self.db.rollback()
            logger.exception("Audit entry for inventory item %s failed", item.id)

    async def list_items(self, actor: Actor) -> List[InventoryItem]:
        """Every stocked item of the caller's pharmacy, by name."""
        pharmacy_id = self._pharmacy_of(actor)
        result = await self.db.execute(
            select(InventoryItem)
            .where(InventoryItem.pharmacy_id == pharmacy_id)
            .order_by(InventoryItem.name, InventoryItem.id)
        )
        return list(result.scalars().all())

    async def add_item(
        self,
        actor: Actor,
        name: str,
        quantity: int = 0,
        sku: Optional[str] = None,
        unit_price: Optional[Decimal] = None,
        is_refrigerated: bool = False,
    ) -> InventoryItem:
        item = InventoryItem(
            pharmacy_id=self._pharmacy_of(actor),
            name=name,
            sku=sku,
            quantity=quantity,
            unit_price=unit_price,
            is_refrigerated=is_refrigerated,
        )
        self.db.add(item)
        await self.db.commit()
        await self.db.refresh(item)

        logger.info("Pharmacy %s stocked %s (item %s)", item.pharmacy_id, item.name, item.id)
        await self._audit(actor, item, created=True)
        return item

    async def update_stock(self, actor: Actor, item_id: int, quantity: int) -> InventoryItem:
        """
        Set the on-hand quantity of one item.

        Raises:
            NotFoundError: no item with this id belongs to the caller's pharmacy
        """
        pharmacy_id = self._pharmacy_of(actor)
        result = await self.db.execute(
            update(InventoryItem)
            .where(InventoryItem.id == item_id, InventoryItem.pharmacy_id == pharmacy_id)
            .values(quantity=quantity, last_updated=func.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise NotFoundError("Inventory item", item_id)
        await self.db.commit()

        item = await self._get_item(item_id)
        logger.info("Pharmacy %s set item %s to %d on hand", pharmacy_id, item_id, quantity)
        await self._audit(actor, item)
        return item
