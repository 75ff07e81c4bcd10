"""
Payment provider webhook.

No bearer token; trust comes from the HMAC-SHA512
signature over the raw body.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from pharmalink.app.core.dependencies import get_orchestrator
from pharmalink.app.schemas.payment import WebhookAck
from pharmalink.app.services.orchestrator import DispatchOrchestrator

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    x_paystack_signature: Optional[str] = Header(None),
    orchestrator: DispatchOrchestrator = Depends(get_orchestrator)
):
    """
    Receive a signed payment event.

    ``charge.success`` moves the referenced order to paid; other event types
    are acknowledged without changes. A bad signature is rejected with
    ERR_PAYMENT_UNVERIFIED.
    """
    raw_body = await request.body()
    origin = request.client.host if request.client else None

    payment, order = await orchestrator.confirm_payment(x_paystack_signature, raw_body, origin=origin)
    return WebhookAck(
        event=payment.event,
        order_id=payment.order_id,
        status=order.status if order is not None else None
    )
