"""
Identity verification endpoint (SA ID structural check).
"""

from fastapi import APIRouter, Depends

from pharmalink.app.core.actor import Actor
from pharmalink.app.core.dependencies import get_orchestrator
from pharmalink.app.core.guards import require_role
from pharmalink.app.models.enums import UserRole
from pharmalink.app.schemas.identity import IdentityVerifyRequest, IdentityVerifyResponse
from pharmalink.app.services.orchestrator import DispatchOrchestrator

router = APIRouter(prefix="/identity", tags=["Identity"])


@router.post("/verify", response_model=IdentityVerifyResponse)
async def verify_identity(
    payload: IdentityVerifyRequest,
    actor: Actor = Depends(require_role(list(UserRole))),
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator)
):
    """Decode and validate a 13-digit South African ID number."""
    result = await orchestrator.verify_identity(payload.id_number)
    return IdentityVerifyResponse.model_validate(result)
