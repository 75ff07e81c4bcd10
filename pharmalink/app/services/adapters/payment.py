"""
Payment webhook verification.

The provider signs the raw request body with HMAC-SHA512 using the shared
secret and sends the hex digest in ``x-paystack-signature``.
"""

import hashlib
import hmac
import json
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from pharmalink.app.core.exceptions import InvalidSignatureError
from pharmalink.app.services.adapters.base import VerificationAdapter

CHARGE_SUCCESS = "charge.success"
CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PaymentEvent:
    event: str
    order_id: Optional[int]
    amount: Decimal
    reference: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_charge_success(self) -> bool:
        return self.event == CHARGE_SUCCESS


def _parse_order_id(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _parse_amount(value: Any) -> Decimal:
    # Provider amounts are in cents
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0.00")
    if not amount.is_finite():
        return Decimal("0.00")
    return (amount / 100).quantize(CENTS)


class PaymentVerifier(VerificationAdapter):
    name = "payment_verification"

    def __init__(self, secret: str, **kwargs):
        super().__init__(**kwargs)
        self._secret = secret.encode("utf-8")

    def sign(self, raw_body: bytes) -> str:
        return hmac.new(self._secret, raw_body, hashlib.sha512).hexdigest()

    async def verify(self, signature: Optional[str], raw_body: bytes) -> PaymentEvent:
        """
        Verify the webhook signature and parse the event.

        Raises:
            InvalidSignatureError: signature missing or mismatched, or the signed body is malformed
        """
        return await self._invoke(self._verify, signature, raw_body)

    async def _verify(self, signature: Optional[str], raw_body: bytes) -> PaymentEvent:
        if not signature:
            raise InvalidSignatureError("Missing webhook signature")

        expected = self.sign(raw_body)
        if not hmac.compare_digest(expected.encode("utf-8"), signature.strip().encode("utf-8")):
            raise InvalidSignatureError()

        try:
            body = json.loads(raw_body)
        except ValueError:
            raise InvalidSignatureError("Signed payload is not valid JSON")
        if not isinstance(body, dict):
            raise InvalidSignatureError("Signed payload is not an event object")

        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise InvalidSignatureError("Signed payload data is not an object")
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise InvalidSignatureError("Signed payload metadata is not an object")
        event = body.get("event") or ""
        reference = data.get("reference")
        if not isinstance(event, str) or not (reference is None or isinstance(reference, str)):
            raise InvalidSignatureError("Signed payload has malformed fields")

        return PaymentEvent(
            event=event,
            order_id=_parse_order_id(metadata.get("order_id")),
            amount=_parse_amount(data.get("amount", 0)),
            reference=reference,
            raw=body,
        )
