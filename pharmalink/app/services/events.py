"""
Domain events emitted by the order ledger.

The ledger never talks to the transport. Each committed mutation returns a
``LedgerEvent``; post-commit hooks forward it to subscribers and to the
audit trail.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LedgerEvent:
    action: str
    order_id: int
    status: str
    delivery_id: Optional[int] = None
    message: Optional[str] = None
    resource_type: str = "order"
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)
    # Request origin, filled in by the orchestrator for the audit trail
    origin: Optional[str] = None

    @property
    def resource_id(self) -> int:
        if self.resource_type == "claim" and "claim_id" in self.data:
            return self.data["claim_id"]
        if self.resource_type == "delivery" and self.delivery_id is not None:
            return self.delivery_id
        return self.order_id

    def to_payload(self) -> Dict[str, Any]:
        """Wire representation sent to subscribers."""
        payload = {
            "event": self.action,
            "order_id": self.order_id,
            "delivery_id": self.delivery_id,
            "status": self.status,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        payload.update(self.data)
        return payload
