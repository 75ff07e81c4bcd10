"""
Driver delivery endpoints.

Drivers list their tasks, push telemetry (temperature, GPS) and complete the
delivery behind biometric proof of delivery.
"""

from fastapi import APIRouter, Depends, Path

from pharmalink.app.core.actor import Actor
from pharmalink.app.core.dependencies import get_orchestrator
from pharmalink.app.core.guards import require_role
from pharmalink.app.models.enums import UserRole
from pharmalink.app.schemas.delivery import (
    BiometricVerifyRequest, BiometricVerifyResponse, DeliveryResponse,
    DeliveryStatusResponse, DeliveryStatusUpdate, DeliveryTaskList
)
from pharmalink.app.services.orchestrator import DispatchOrchestrator

router = APIRouter(prefix="/deliveries", tags=["Driver - Deliveries"])


@router.get("/my-tasks", response_model=DeliveryTaskList)
async def my_tasks(
    actor: Actor = Depends(require_role([UserRole.DRIVER])),
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator)
):
    deliveries = await orchestrator.list_driver_tasks(actor)
    return DeliveryTaskList(
        tasks=[DeliveryResponse.model_validate(delivery) for delivery in deliveries],
        total=len(deliveries)
    )


@router.patch("/{delivery_id}/status", response_model=DeliveryStatusResponse)
async def update_delivery_status(
    update: DeliveryStatusUpdate,
    delivery_id: int = Path(..., description="Delivery ID"),
    actor: Actor = Depends(require_role([UserRole.DRIVER])),
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator)
):
    """
    Record telemetry and move the delivery to in_transit.

    Readings above the cold-chain bound come back with condition CRITICAL
    but are still accepted. A location missing either coordinate is dropped
    and echoed back as null.
    """
    delivery, event = await orchestrator.update_delivery_status(
        actor,
        delivery_id,
        update.status,
        temperature=update.temperature,
        location=update.location.model_dump() if update.location else None,
    )
    return DeliveryStatusResponse(
        message=event.message,
        condition=event.data["condition"],
        temperature=event.data["temperature"],
        location=event.data["location"],
        delivery=DeliveryResponse.model_validate(delivery)
    )


@router.post("/{delivery_id}/verify-biometric", response_model=BiometricVerifyResponse)
async def verify_biometric(
    payload: BiometricVerifyRequest,
    delivery_id: int = Path(..., description="Delivery ID"),
    actor: Actor = Depends(require_role([UserRole.DRIVER])),
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator)
):
    """in_transit -> delivered, only after the recipient's biometric is accepted."""
    delivery, audit_hash = await orchestrator.confirm_delivery(actor, delivery_id, payload.biometric_hash)
    return BiometricVerifyResponse(
        message="Biometric identity verified. Package delivered.",
        audit_hash=audit_hash,
        delivery=DeliveryResponse.model_validate(delivery)
    )
