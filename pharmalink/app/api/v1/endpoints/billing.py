"""
Medical-aid billing endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends

from pharmalink.app.core.actor import Actor
from pharmalink.app.core.dependencies import get_orchestrator
from pharmalink.app.core.guards import require_role
from pharmalink.app.models.enums import UserRole
from pharmalink.app.schemas.billing import (
    AdjudicationRequest, AdjudicationResponse, ClaimLineItem, ClaimResponse,
    ClaimSubmitRequest, ClaimSubmitResponse
)
from pharmalink.app.services.adapters.adjudication import AdjudicationResult, LineItem
from pharmalink.app.services.orchestrator import DispatchOrchestrator

router = APIRouter(prefix="/billing", tags=["Billing"])


def to_line_items(items: List[ClaimLineItem]) -> List[LineItem]:
    return [LineItem(name=item.name, price=item.price, category=item.category) for item in items]


def to_adjudication_response(result: AdjudicationResult) -> AdjudicationResponse:
    return AdjudicationResponse(
        transactionId=result.transaction_id,
        scheme=result.scheme,
        status=result.status,
        coverageRate=result.coverage_rate,
        limitPerOrder=result.limit_per_order,
        requiresPreAuth=result.requires_pre_auth,
        items=result.items,
        summary=result.summary,
        timestamp=result.timestamp
    )


@router.post("/claims", response_model=ClaimSubmitResponse)
async def submit_claim(
    payload: ClaimSubmitRequest,
    actor: Actor = Depends(require_role([UserRole.PHARMACIST, UserRole.DISPATCHER])),
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator)
):
    """Adjudicate and record the single claim for a dispatched order."""
    claim, result = await orchestrator.submit_claim(
        actor, payload.order_id, payload.scheme, to_line_items(payload.items)
    )
    return ClaimSubmitResponse(
        success=True,
        claim=ClaimResponse.model_validate(claim),
        adjudication=to_adjudication_response(result),
        actions="CO_PAYMENT_REQUIRED" if claim.patient_co_payment > 0 else "FULLY_COVERED"
    )


@router.post("/adjudicate", response_model=AdjudicationResponse)
async def adjudicate(
    payload: AdjudicationRequest,
    actor: Actor = Depends(require_role([UserRole.PHARMACIST, UserRole.DISPATCHER, UserRole.DOCTOR, UserRole.PATIENT])),
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator)
):
    """Benefit check: what the scheme would cover, without recording anything."""
    result = await orchestrator.adjudicate_preview(payload.scheme, to_line_items(payload.items))
    return to_adjudication_response(result)
