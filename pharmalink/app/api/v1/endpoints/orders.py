"""
Pharmacy order endpoints.

Pharmacists review paid orders, accept them into processing and hand them
to a driver. Dispatchers may assign drivers but not accept orders.
"""

from fastapi import APIRouter, Depends, Path

from pharmalink.app.core.actor import Actor
from pharmalink.app.core.dependencies import get_orchestrator
from pharmalink.app.core.guards import require_role
from pharmalink.app.models.enums import UserRole
from pharmalink.app.schemas.delivery import DeliveryResponse
from pharmalink.app.schemas.order import (
    AssignDriverRequest, AssignDriverResponse, OrderListResponse, OrderResponse
)
from pharmalink.app.services.orchestrator import DispatchOrchestrator

router = APIRouter(prefix="/orders", tags=["Pharmacy - Orders"])

ALL_ROLES = list(UserRole)


@router.get("/pending", response_model=OrderListResponse)
async def list_pending_orders(
    actor: Actor = Depends(require_role([UserRole.PHARMACIST, UserRole.DISPATCHER])),
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator)
):
    """Orders of the caller's pharmacy still awaiting payment or acceptance."""
    orders = await orchestrator.list_pending_orders(actor)
    return OrderListResponse(
        orders=[OrderResponse.model_validate(order) for order in orders],
        total=len(orders)
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int = Path(..., description="Order ID"),
    actor: Actor = Depends(require_role(ALL_ROLES)),
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator)
):
    """
    Read one order.

    Visible to its pharmacy, its patient, its doctor, its assigned driver and
    admins. Everyone else gets 404.
    """
    order = await orchestrator.get_order(actor, order_id)
    return OrderResponse.model_validate(order)


@router.patch("/{order_id}/accept", response_model=OrderResponse)
async def accept_order(
    order_id: int = Path(..., description="Order ID"),
    actor: Actor = Depends(require_role([UserRole.PHARMACIST])),
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator)
):
    """paid -> processing."""
    order = await orchestrator.accept_order(actor, order_id)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/assign-driver", response_model=AssignDriverResponse)
async def assign_driver(
    payload: AssignDriverRequest,
    order_id: int = Path(..., description="Order ID"),
    actor: Actor = Depends(require_role([UserRole.PHARMACIST, UserRole.DISPATCHER])),
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator)
):
    """
    processing -> out_for_delivery.

    Creates the delivery in the same transaction as the status change.
    """
    order, delivery = await orchestrator.assign_driver(actor, order_id, payload.driver_id)
    return AssignDriverResponse(
        message="Driver assigned successfully",
        order=OrderResponse.model_validate(order),
        delivery=DeliveryResponse.model_validate(delivery)
    )
