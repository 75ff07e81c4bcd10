"""
Dispatch orchestrator.

Binds one role-scoped request to:

1. an authorization check against role and ownership,
2. at most one external verification adapter call,
3. exactly one order ledger mutation attempt,
4. on success, the post-commit hooks (fan-out publish, audit entry).

Steps run strictly in sequence. A failure in 1-3 propagates as a typed
``AppException`` with no ledger change applied; hook failures are logged by
``PostCommitHooks`` and never reach the caller.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from pharmalink.app.core.actor import Actor
from pharmalink.app.core.exceptions import (
    InvalidSignatureError, InvalidTransitionError, NotFoundError, PaymentUnverifiedError, UnauthorizedError
)
from pharmalink.app.models.claim import Claim
from pharmalink.app.models.delivery import Delivery
from pharmalink.app.models.enums import PHARMACY_ROLES, UserRole
from pharmalink.app.models.order import Order
from pharmalink.app.models.order_enums import DeliveryCondition, DeliveryStatus
from pharmalink.app.services.adapters.adjudication import AdjudicationResult, LineItem
from pharmalink.app.services.adapters.identity import IdentityResult
from pharmalink.app.services.adapters.payment import PaymentEvent
from pharmalink.app.services.adapters.registry import AdapterSet
from pharmalink.app.services.events import LedgerEvent
from pharmalink.app.services.notification_hub import NotificationHub
from pharmalink.app.services.order_ledger import OrderLedger
from pharmalink.app.services.post_commit import AuditTrailHook, NotificationForwarder, PostCommitHooks

logger = logging.getLogger("pharmalink.orchestrator")


def _require_role(actor: Actor, *roles: UserRole) -> None:
    if not actor.has_role(*roles):
        raise UnauthorizedError(
            f"Role {actor.role.value} may not perform this operation",
            details={"allowed_roles": [role.value for role in roles]},
        )


def _require_pharmacy(actor: Actor) -> int:
    if actor.pharmacy_id is None:
        raise UnauthorizedError("Actor is not linked to a pharmacy")
    return actor.pharmacy_id


class DispatchOrchestrator:
    def __init__(
        self,
        ledger: OrderLedger,
        adapters: AdapterSet,
        hooks: PostCommitHooks,
    ):
        self.ledger = ledger
        self.adapters = adapters
        self.hooks = hooks

    @classmethod
    def build(cls, db: AsyncSession, hub: NotificationHub, adapters: AdapterSet) -> "DispatchOrchestrator":
        hooks = PostCommitHooks([
            ("notify", NotificationForwarder(hub)),
            ("audit", AuditTrailHook(db)),
        ])
        return cls(ledger=OrderLedger(db), adapters=adapters, hooks=hooks)

    async def _after_commit(self, event: LedgerEvent, actor: Optional[Actor], origin: Optional[str] = None) -> None:
        event.origin = origin if origin is not None else (actor.origin if actor else None)
        results = await self.hooks.run(event, actor)
        if not all(results.values()):
            logger.warning("Order %s %s committed with degraded side effects: %s", event.order_id, event.action, results)

    # Prescriptions

    async def issue_prescription(
        self,
        actor: Actor,
        *,
        pharmacy_id: int,
        medications: List[Dict[str, Any]],
        patient_id: Optional[int] = None,
        is_refrigerated: bool = False,
        is_controlled_substance: bool = False,
        notes: Optional[str] = None,
    ) -> Order:
        _require_role(actor, UserRole.DOCTOR)

        order, event = await self.ledger.create_order(
            pharmacy_id=pharmacy_id,
            medications=medications,
            doctor_id=actor.user_id,
            patient_id=patient_id,
            is_refrigerated=is_refrigerated,
            is_controlled_substance=is_controlled_substance,
            notes=notes,
        )
        await self._after_commit(event, actor)
        return await self.ledger.get_order(order.id)

    async def list_patient_scripts(self, actor: Actor) -> List[Order]:
        _require_role(actor, UserRole.PATIENT)
        return await self.ledger.list_patient_orders(actor.user_id)

    # Payments

    async def confirm_payment(
        self, signature: Optional[str], raw_body: bytes, origin: Optional[str] = None
    ) -> Tuple[PaymentEvent, Optional[Order]]:
        """
        Apply a signed provider webhook.

        Only ``charge.success`` events move an order; every other event type
        is acknowledged and ignored.

        Raises:
            PaymentUnverifiedError: signature missing or mismatched
        """
        try:
            payment = await self.adapters.payment.verify(signature, raw_body)
        except InvalidSignatureError as exc:
            logger.warning("Rejected payment webhook from %s: %s", origin, exc.message)
            raise PaymentUnverifiedError(exc.message) from exc

        if not payment.is_charge_success:
            logger.info("Ignoring payment event %s", payment.event)
            return payment, None
        if payment.order_id is None:
            raise PaymentUnverifiedError("Payment event does not reference an order")

        order, event = await self.ledger.mark_paid(payment.order_id, payment.amount, payment.reference)
        logger.info("Payment confirmed for order %s: %s", payment.order_id, payment.amount)
        await self._after_commit(event, None, origin=origin)
        return payment, await self.ledger.get_order(order.id)

    # Pharmacy

    async def list_pending_orders(self, actor: Actor) -> List[Order]:
        _require_role(actor, *PHARMACY_ROLES)
        return await self.ledger.list_pharmacy_orders(_require_pharmacy(actor))

    async def get_order(self, actor: Actor, order_id: int) -> Order:
        """Read one order, scoped to the parties that may see it."""
        order = await self.ledger.get_order(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)

        if actor.has_role(UserRole.ADMIN):
            return order
        if actor.has_role(*PHARMACY_ROLES) and actor.pharmacy_id == order.pharmacy_id:
            return order
        if actor.has_role(UserRole.PATIENT) and actor.user_id == order.patient_id:
            return order
        if actor.has_role(UserRole.DOCTOR) and actor.user_id == order.doctor_id:
            return order
        if actor.has_role(UserRole.DRIVER):
            delivery = await self.ledger.get_delivery_for_order(order_id)
            if delivery is not None and delivery.driver_id == actor.user_id:
                return order
        raise NotFoundError("Order", order_id)

    async def accept_order(self, actor: Actor, order_id: int) -> Order:
        _require_role(actor, UserRole.PHARMACIST)
        pharmacy_id = _require_pharmacy(actor)

        order, event = await self.ledger.accept_order(order_id, pharmacy_id)
        await self._after_commit(event, actor)
        return await self.ledger.get_order(order.id)

    async def assign_driver(self, actor: Actor, order_id: int, driver_id: int) -> Tuple[Order, Delivery]:
        _require_role(actor, *PHARMACY_ROLES)
        pharmacy_id = _require_pharmacy(actor)

        driver = await self.ledger.get_active_driver(driver_id)
        if driver is None:
            raise NotFoundError("Driver", driver_id)

        order, delivery, event = await self.ledger.dispatch_order(order_id, pharmacy_id, driver_id)
        await self._after_commit(event, actor)
        return await self.ledger.get_order(order.id), await self.ledger.get_delivery(delivery.id)

    # Driver

    async def list_driver_tasks(self, actor: Actor) -> List[Delivery]:
        _require_role(actor, UserRole.DRIVER)
        return await self.ledger.list_driver_tasks(actor.user_id)

    async def update_delivery_status(
        self,
        actor: Actor,
        delivery_id: int,
        status: DeliveryStatus,
        temperature: Optional[float] = None,
        location: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Delivery, LedgerEvent]:
        _require_role(actor, UserRole.DRIVER)

        delivery, event = await self.ledger.record_status(
            delivery_id, actor.user_id, status, temperature=temperature, location=location
        )
        if event.data.get("condition") == DeliveryCondition.CRITICAL.value:
            logger.warning(
                "Cold chain breach on delivery %s: %.1f exceeds %.1f",
                delivery_id, temperature, self.ledger.temperature_upper_bound,
            )
        await self._after_commit(event, actor)
        return await self.ledger.get_delivery(delivery.id), event

    async def confirm_delivery(self, actor: Actor, delivery_id: int, biometric_hash: Optional[str]) -> Tuple[Delivery, str]:
        """
        Complete a delivery behind biometric proof of delivery.

        Returns:
            The delivered record and the audit hash from the confirmation
        """
        _require_role(actor, UserRole.DRIVER)

        delivery = await self.ledger.get_delivery(delivery_id)
        if delivery is None:
            raise NotFoundError("Delivery", delivery_id)

        audit_hash = await self.adapters.biometric.confirm(delivery, actor.user_id, biometric_hash)

        delivery, event = await self.ledger.complete_delivery(delivery_id, actor.user_id)
        event.data["audit_hash"] = audit_hash
        await self._after_commit(event, actor)
        return await self.ledger.get_delivery(delivery.id), audit_hash

    # Billing

    async def submit_claim(
        self, actor: Actor, order_id: int, scheme: str, items: Sequence[LineItem]
    ) -> Tuple[Claim, AdjudicationResult]:
        _require_role(actor, *PHARMACY_ROLES)
        pharmacy_id = _require_pharmacy(actor)

        order = await self.ledger.get_order(order_id)
        if order is None or order.pharmacy_id != pharmacy_id:
            raise NotFoundError("Order", order_id)
        delivery = await self.ledger.get_delivery_for_order(order_id)
        if delivery is None:
            raise InvalidTransitionError(
                f"Order {order_id} has not been dispatched",
                current_status=order.status,
            )
        if await self.ledger.get_claim_for_delivery(delivery.id) is not None:
            raise InvalidTransitionError(f"Delivery {delivery.id} already has a claim")

        adjudication = await self.adapters.adjudicator.adjudicate(scheme, items)
        if not adjudication.known_scheme:
            logger.warning("Unknown medical aid scheme %r adjudicated with zero coverage", scheme)

        claim, event = await self.ledger.record_claim(delivery, adjudication)
        await self._after_commit(event, actor)
        return await self.ledger.get_claim_for_delivery(delivery.id), adjudication

    async def adjudicate_preview(self, scheme: str, items: Sequence[LineItem]) -> AdjudicationResult:
        """Benefit check without recording a claim."""
        return await self.adapters.adjudicator.adjudicate(scheme, items)

    # Identity

    async def verify_identity(self, id_number: str) -> IdentityResult:
        return await self.adapters.identity.verify_sa_id(id_number)

