"""
Doctor and patient prescription endpoints.

Doctors issue digital scripts; each script becomes an order awaiting payment.
"""

from fastapi import APIRouter, Depends, status

from pharmalink.app.core.actor import Actor
from pharmalink.app.core.dependencies import get_orchestrator
from pharmalink.app.core.guards import require_role
from pharmalink.app.models.enums import UserRole
from pharmalink.app.schemas.order import OrderListResponse, OrderResponse, PrescriptionCreate
from pharmalink.app.services.orchestrator import DispatchOrchestrator

router = APIRouter(prefix="/prescriptions", tags=["Prescriptions"])


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def issue_prescription(
    script: PrescriptionCreate,
    actor: Actor = Depends(require_role([UserRole.DOCTOR])),
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator)
):
    """Issue a digital script. The order starts in pending_verification."""
    order = await orchestrator.issue_prescription(
        actor,
        pharmacy_id=script.pharmacy_id,
        patient_id=script.patient_id,
        medications=[item.model_dump(mode="json") for item in script.medications],
        is_refrigerated=script.is_refrigerated,
        is_controlled_substance=script.is_controlled_substance,
        notes=script.notes,
    )
    return OrderResponse.model_validate(order)


@router.get("/my-scripts", response_model=OrderListResponse)
async def my_scripts(
    actor: Actor = Depends(require_role([UserRole.PATIENT])),
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator)
):
    """All orders issued to the calling patient, newest first."""
    orders = await orchestrator.list_patient_scripts(actor)
    return OrderListResponse(
        orders=[OrderResponse.model_validate(order) for order in orders],
        total=len(orders)
    )
