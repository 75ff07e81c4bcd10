"""
Medical-aid claim adjudication.

Looks the scheme up in an injected registry and splits the order total into
the payer-covered benefit and the patient co-payment. Unknown schemes fall
back to zero coverage (fail closed) instead of raising.
"""

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pharmalink.app.core.config import SchemeConfig
from pharmalink.app.services.adapters.base import VerificationAdapter
from pharmalink.app.services.events import utcnow

STATUS_SUCCESS = "Success"
STATUS_PENDED = "Pended (Exceeds Limit)"
ITEM_APPROVED = "Approved"
ITEM_PRE_AUTH = "Pre-Auth Required"

UNKNOWN_SCHEME = SchemeConfig(coverage_rate=0.0, limit_per_order=0, requires_pre_auth=[])
CENTS = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def generate_transaction_id() -> str:
    alphabet = string.ascii_uppercase + string.digits
    return "EDI-" + "".join(secrets.choice(alphabet) for _ in range(9))


@dataclass(frozen=True)
class LineItem:
    name: str
    price: Decimal
    category: Optional[str] = None


@dataclass
class AdjudicationResult:
    transaction_id: str
    scheme: str
    status: str
    coverage_rate: float
    limit_per_order: Decimal
    total_value: Decimal
    benefit_paid: Decimal
    patient_co_payment: Decimal
    requires_pre_auth: List[str]
    items: List[Dict[str, Any]]
    known_scheme: bool = True
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def pended(self) -> bool:
        return self.status == STATUS_PENDED

    @property
    def pre_auth_items(self) -> List[str]:
        return [item["name"] for item in self.items if item["status"] == ITEM_PRE_AUTH]

    @property
    def summary(self) -> Dict[str, Decimal]:
        return {
            "totalValue": self.total_value,
            "benefitPaid": self.benefit_paid,
            "patientCoPayment": self.patient_co_payment,
        }


class ClaimAdjudicator(VerificationAdapter):
    name = "claim_adjudication"

    def __init__(self, schemes: Mapping[str, SchemeConfig], **kwargs):
        super().__init__(**kwargs)
        self.schemes = dict(schemes)

    def scheme_config(self, scheme: str) -> SchemeConfig:
        return self.schemes.get(scheme, UNKNOWN_SCHEME)

    async def adjudicate(self, scheme: str, items: Sequence[LineItem]) -> AdjudicationResult:
        return await self._invoke(self._adjudicate, scheme, items)

    async def _adjudicate(self, scheme: str, items: Sequence[LineItem]) -> AdjudicationResult:
        config = self.scheme_config(scheme)
        rate = Decimal(str(config.coverage_rate))
        pre_auth = {keyword.lower() for keyword in config.requires_pre_auth}

        total = Decimal("0")
        breakdown = []
        for item in items:
            cost = Decimal(str(item.price))
            total += cost
            covered = to_money(cost * rate)
            needs_pre_auth = bool(item.category) and item.category.lower() in pre_auth
            breakdown.append({
                "name": item.name,
                "cost": to_money(cost),
                "benefitCover": covered,
                "patientPortion": to_money(cost) - covered,
                "status": ITEM_PRE_AUTH if needs_pre_auth else ITEM_APPROVED,
            })

        limit = Decimal(str(config.limit_per_order))
        # Co-payment is whatever the rounded benefit leaves, so the two always sum to the total
        benefit = to_money(total * rate)

        return AdjudicationResult(
            transaction_id=generate_transaction_id(),
            scheme=scheme,
            status=STATUS_PENDED if total > limit else STATUS_SUCCESS,
            coverage_rate=config.coverage_rate,
            limit_per_order=to_money(limit),
            total_value=to_money(total),
            benefit_paid=benefit,
            patient_co_payment=to_money(total) - benefit,
            requires_pre_auth=list(config.requires_pre_auth),
            items=breakdown,
            known_scheme=scheme in self.schemes,
        )
