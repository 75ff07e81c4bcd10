"""
Order ledger.

Owns Order, Delivery, Claim, LocationSample and ColdChainAlert records and
the forward-only order state machine:

    pending_verification -> paid -> processing -> out_for_delivery -> in_transit -> delivered

Every transition is a conditional ``UPDATE ... WHERE id = ? AND status = ?``
(plus ownership guards), so of two racing requests only one sees a row
affected. The loser gets ``NotFound``, ``Unauthorized`` or
``InvalidTransition``, never a silent no-op.

Each successful mutation is committed and returns a ``LedgerEvent``. The
ledger does not publish anything itself.
"""

import secrets
import string
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from pharmalink.app.core.config import settings
from pharmalink.app.core.exceptions import InvalidTransitionError, NotFoundError, UnauthorizedError
from pharmalink.app.models.claim import Claim
from pharmalink.app.models.cold_chain_alert import ColdChainAlert
from pharmalink.app.models.delivery import Delivery
from pharmalink.app.models.enums import UserRole
from pharmalink.app.models.location_sample import LocationSample
from pharmalink.app.models.order import Order
from pharmalink.app.models.order_enums import (
    ClaimStatus, DeliveryCondition, DeliveryStatus, OrderStatus, next_status
)
from pharmalink.app.models.user import User
from pharmalink.app.services.audit import AuditAction
from pharmalink.app.services.events import LedgerEvent


def generate_auth_number() -> str:
    alphabet = string.ascii_uppercase + string.digits
    return "AUTH-" + "".join(secrets.choice(alphabet) for _ in range(9))


def extract_coordinates(location: Optional[Dict[str, Any]]) -> Optional[Tuple[float, float]]:
    """Return ``(lat, lng)`` only when both are present, otherwise None."""
    if not location:
        return None
    lat = location.get("lat")
    lng = location.get("lng")
    if lat is None or lng is None:
        return None
    return float(lat), float(lng)


class OrderLedger:
    def __init__(self, db: AsyncSession, temperature_upper_bound: Optional[float] = None):
        self.db = db
        if temperature_upper_bound is None:
            temperature_upper_bound = settings.temperature_upper_bound
        self.temperature_upper_bound = temperature_upper_bound

    # Reads

    async def get_order(self, order_id: int) -> Optional[Order]:
        result = await self.db.execute(
            select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_delivery(self, delivery_id: int) -> Optional[Delivery]:
        result = await self.db.execute(
            select(Delivery).where(Delivery.id == delivery_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_delivery_for_order(self, order_id: int) -> Optional[Delivery]:
        result = await self.db.execute(
            select(Delivery).where(Delivery.order_id == order_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_claim_for_delivery(self, delivery_id: int) -> Optional[Claim]:
        result = await self.db.execute(select(Claim).where(Claim.delivery_id == delivery_id))
        return result.scalar_one_or_none()

    async def get_active_driver(self, driver_id: int) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(
                User.id == driver_id,
                User.role == UserRole.DRIVER,
                User.is_active.is_(True)
            )
        )
        return result.scalar_one_or_none()

    async def list_pharmacy_orders(
        self,
        pharmacy_id: int,
        statuses: Sequence[OrderStatus] = (OrderStatus.PENDING_VERIFICATION, OrderStatus.PAID)
    ) -> List[Order]:
        result = await self.db.execute(
            select(Order).where(
                Order.pharmacy_id == pharmacy_id,
                Order.status.in_(list(statuses))
            ).order_by(Order.created_at, Order.id)
        )
        return list(result.scalars().all())

    async def list_patient_orders(self, patient_id: int) -> List[Order]:
        result = await self.db.execute(
            select(Order).where(Order.patient_id == patient_id).order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(result.scalars().all())

    async def list_driver_tasks(self, driver_id: int) -> List[Delivery]:
        result = await self.db.execute(
            select(Delivery).where(
                Delivery.driver_id == driver_id,
                Delivery.status != DeliveryStatus.DELIVERED
            ).order_by(Delivery.scheduled_time, Delivery.id)
        )
        return list(result.scalars().all())

    # Internal helpers

    async def _advance_order(self, order_id: int, current: OrderStatus, *conditions, **values) -> int:
        """Conditionally move an order one step forward. Returns rows affected."""
        target = next_status(current)
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == current, *conditions)
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def _reject_order_transition(
        self, order_id: int, target: OrderStatus, pharmacy_id: Optional[int] = None
    ) -> None:
        """Explain why a conditional order update matched no rows."""
        await self.db.rollback()
        order = await self.get_order(order_id)
        if order is None or (pharmacy_id is not None and order.pharmacy_id != pharmacy_id):
            raise NotFoundError("Order", order_id)
        raise InvalidTransitionError(
            f"Order {order_id} cannot move from {order.status.value} to {target.value}",
            current_status=order.status,
            requested_status=target,
        )

    async def _get_assigned_delivery(self, delivery_id: int, driver_id: int) -> Delivery:
        delivery = await self.get_delivery(delivery_id)
        if delivery is None:
            raise NotFoundError("Delivery", delivery_id)
        if delivery.driver_id != driver_id:
            raise UnauthorizedError("This delivery is not assigned to you")
        return delivery

    # Mutations

    async def create_order(
        self,
        *,
        pharmacy_id: int,
        medications: List[Dict[str, Any]],
        doctor_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        is_refrigerated: bool = False,
        is_controlled_substance: bool = False,
        notes: Optional[str] = None,
    ) -> Tuple[Order, LedgerEvent]:
        """Record a newly issued digital script as an order awaiting payment."""
        order = Order(
            pharmacy_id=pharmacy_id,
            doctor_id=doctor_id,
            patient_id=patient_id,
            prescription={"medications": medications, "notes": notes},
            is_refrigerated=is_refrigerated,
            is_controlled_substance=is_controlled_substance,
            status=OrderStatus.PENDING_VERIFICATION,
        )
        self.db.add(order)
        await self.db.commit()
        await self.db.refresh(order)

        event = LedgerEvent(
            action=AuditAction.PRESCRIPTION_ISSUED,
            order_id=order.id,
            status=order.status.value,
            message="Digital script issued. Awaiting payment.",
        )
        return order, event

    async def mark_paid(
        self, order_id: int, amount: Decimal, reference: Optional[str] = None
    ) -> Tuple[Order, LedgerEvent]:
        """pending_verification -> paid. Call only with a verified payment event."""
        rows = await self._advance_order(
            order_id, OrderStatus.PENDING_VERIFICATION,
            amount_paid=amount, payment_reference=reference,
        )
        if rows == 0:
            await self._reject_order_transition(order_id, OrderStatus.PAID)
        await self.db.commit()

        order = await self.get_order(order_id)
        event = LedgerEvent(
            action=AuditAction.PAYMENT_CONFIRMED,
            order_id=order_id,
            status=OrderStatus.PAID.value,
            message="Payment confirmed.",
            data={"amount": str(amount)},
        )
        return order, event

    async def accept_order(self, order_id: int, pharmacy_id: int) -> Tuple[Order, LedgerEvent]:
        """paid -> processing, only for the owning pharmacy."""
        rows = await self._advance_order(order_id, OrderStatus.PAID, Order.pharmacy_id == pharmacy_id)
        if rows == 0:
            await self._reject_order_transition(order_id, OrderStatus.PROCESSING, pharmacy_id)
        await self.db.commit()

        order = await self.get_order(order_id)
        event = LedgerEvent(
            action=AuditAction.ORDER_ACCEPTED,
            order_id=order_id,
            status=OrderStatus.PROCESSING.value,
            message="Your pharmacist is preparing your medication.",
        )
        return order, event

    async def dispatch_order(
        self, order_id: int, pharmacy_id: int, driver_id: int
    ) -> Tuple[Order, Delivery, LedgerEvent]:
        """
        processing -> out_for_delivery and create the Delivery.

        Both writes share one transaction: either the order moves and the
        delivery exists, or neither happens.
        """
        try:
            rows = await self._advance_order(order_id, OrderStatus.PROCESSING, Order.pharmacy_id == pharmacy_id)
            if rows == 0:
                await self._reject_order_transition(order_id, OrderStatus.OUT_FOR_DELIVERY, pharmacy_id)

            delivery = Delivery(order_id=order_id, driver_id=driver_id, status=DeliveryStatus.ASSIGNED)
            self.db.add(delivery)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise InvalidTransitionError(f"Order {order_id} already has a delivery")
        except (NotFoundError, InvalidTransitionError):
            raise
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(delivery)
        order = await self.get_order(order_id)
        event = LedgerEvent(
            action=AuditAction.DRIVER_ASSIGNED,
            order_id=order_id,
            delivery_id=delivery.id,
            status=OrderStatus.OUT_FOR_DELIVERY.value,
            message="Driver assigned. Your medication is on its way.",
            data={"driver_id": driver_id},
        )
        return order, delivery, event

    async def record_status(
        self,
        delivery_id: int,
        driver_id: int,
        requested: DeliveryStatus,
        temperature: Optional[float] = None,
        location: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Delivery, LedgerEvent]:
        """
        Driver telemetry and the out_for_delivery -> in_transit transition.

        The first update moves delivery and order to in_transit; later
        updates only add readings. ``temperature_max`` keeps the running
        maximum. A reading above the upper bound marks the update CRITICAL
        and stores a ColdChainAlert without blocking anything. Location is
        stored only when both ``lat`` and ``lng`` are present.
        """
        delivery = await self._get_assigned_delivery(delivery_id, driver_id)

        if requested != DeliveryStatus.IN_TRANSIT:
            raise InvalidTransitionError(
                "Deliveries are completed through biometric confirmation only",
                current_status=delivery.status,
                requested_status=requested,
            )
        if delivery.status == DeliveryStatus.DELIVERED:
            raise InvalidTransitionError(
                f"Delivery {delivery_id} is already delivered",
                current_status=delivery.status,
                requested_status=requested,
            )

        starting = delivery.status == DeliveryStatus.ASSIGNED
        critical = temperature is not None and temperature > self.temperature_upper_bound
        coordinates = extract_coordinates(location)

        values: Dict[str, Any] = {"status": DeliveryStatus.IN_TRANSIT}
        if temperature is not None:
            values["temperature_max"] = case(
                (Delivery.temperature_max.is_(None), temperature),
                (Delivery.temperature_max < temperature, temperature),
                else_=Delivery.temperature_max,
            )
        if critical:
            values["cold_chain_breached"] = True

        try:
            result = await self.db.execute(
                update(Delivery)
                .where(
                    Delivery.id == delivery_id,
                    Delivery.driver_id == driver_id,
                    Delivery.status == delivery.status,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                await self._get_assigned_delivery(delivery_id, driver_id)
                raise InvalidTransitionError(f"Delivery {delivery_id} changed concurrently, retry the update")

            if starting:
                rows = await self._advance_order(delivery.order_id, OrderStatus.OUT_FOR_DELIVERY)
                if rows == 0:
                    await self._reject_order_transition(delivery.order_id, OrderStatus.IN_TRANSIT)

            if coordinates is not None:
                self.db.add(LocationSample(
                    driver_id=driver_id,
                    delivery_id=delivery_id,
                    latitude=coordinates[0],
                    longitude=coordinates[1],
                ))
            if critical:
                self.db.add(ColdChainAlert(
                    delivery_id=delivery_id,
                    temperature=temperature,
                    threshold=self.temperature_upper_bound,
                ))
            await self.db.commit()
        except (NotFoundError, UnauthorizedError, InvalidTransitionError):
            raise
        except Exception:
            await self.db.rollback()
            raise

        delivery = await self.get_delivery(delivery_id)
        condition = DeliveryCondition.CRITICAL if critical else DeliveryCondition.NOMINAL
        event = LedgerEvent(
            action=AuditAction.DELIVERY_STATUS_UPDATED,
            order_id=delivery.order_id,
            delivery_id=delivery_id,
            status=OrderStatus.IN_TRANSIT.value,
            resource_type="delivery",
            message="Cold chain breach detected" if critical else "Logistics data synchronized",
            data={
                "condition": condition.value,
                "temperature": temperature,
                "temperature_max": delivery.temperature_max,
                "location": {"lat": coordinates[0], "lng": coordinates[1]} if coordinates else None,
            },
        )
        return delivery, event

    async def complete_delivery(self, delivery_id: int, driver_id: int) -> Tuple[Delivery, LedgerEvent]:
        """
        in_transit -> delivered for the delivery and its order together.

        Callers must have obtained a successful biometric confirmation first.
        """
        delivery = await self._get_assigned_delivery(delivery_id, driver_id)

        try:
            result = await self.db.execute(
                update(Delivery)
                .where(
                    Delivery.id == delivery_id,
                    Delivery.driver_id == driver_id,
                    Delivery.status == DeliveryStatus.IN_TRANSIT,
                )
                .values(status=DeliveryStatus.DELIVERED, actual_delivery_time=func.now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                current = await self._get_assigned_delivery(delivery_id, driver_id)
                raise InvalidTransitionError(
                    f"Delivery {delivery_id} cannot be completed from {current.status.value}",
                    current_status=current.status,
                    requested_status=DeliveryStatus.DELIVERED,
                )

            rows = await self._advance_order(delivery.order_id, OrderStatus.IN_TRANSIT)
            if rows == 0:
                await self._reject_order_transition(delivery.order_id, OrderStatus.DELIVERED)
            await self.db.commit()
        except (NotFoundError, UnauthorizedError, InvalidTransitionError):
            raise
        except Exception:
            await self.db.rollback()
            raise

        delivery = await self.get_delivery(delivery_id)
        event = LedgerEvent(
            action=AuditAction.DELIVERY_CONFIRMED,
            order_id=delivery.order_id,
            delivery_id=delivery_id,
            status=OrderStatus.DELIVERED.value,
            resource_type="delivery",
            message="Biometric identity verified. Package delivered.",
            data={"verified": True},
        )
        return delivery, event

    async def record_claim(self, delivery: Delivery, adjudication) -> Tuple[Claim, LedgerEvent]:
        """Store the single claim for a delivery from an adjudication result."""
        if adjudication.coverage_rate == 0:
            claim_status = ClaimStatus.REJECTED
        elif adjudication.pended:
            claim_status = ClaimStatus.PENDED
        else:
            claim_status = ClaimStatus.APPROVED

        claim = Claim(
            delivery_id=delivery.id,
            scheme=adjudication.scheme,
            transaction_id=adjudication.transaction_id,
            claim_amount=adjudication.total_value,
            medical_aid_paid=adjudication.benefit_paid,
            patient_co_payment=adjudication.patient_co_payment,
            auth_number=generate_auth_number(),
            status=claim_status,
        )
        self.db.add(claim)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise InvalidTransitionError(f"Delivery {delivery.id} already has a claim")
        await self.db.refresh(claim)

        order = await self.get_order(delivery.order_id)
        event = LedgerEvent(
            action=AuditAction.CLAIM_SUBMITTED,
            order_id=delivery.order_id,
            delivery_id=delivery.id,
            status=order.status.value,
            resource_type="claim",
            message=f"Medical aid claim {claim_status.value}",
            data={
                "claim_id": claim.id,
                "claim_status": claim_status.value,
                "patient_co_payment": str(claim.patient_co_payment),
            },
        )
        return claim, event
