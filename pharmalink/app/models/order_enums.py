"""
Order, delivery and claim enumerations.
"""

import enum


class OrderStatus(str, enum.Enum):
    """Order lifecycle. Statuses only ever move forward in this order."""
    PENDING_VERIFICATION = "pending_verification"  # Script issued, awaiting payment
    PAID = "paid"  # Verified payment received
    PROCESSING = "processing"  # Pharmacist accepted and is preparing
    OUT_FOR_DELIVERY = "out_for_delivery"  # Driver assigned, delivery created
    IN_TRANSIT = "in_transit"  # Driver reported first movement
    DELIVERED = "delivered"  # Biometric hand-over confirmed


ORDER_FLOW = (
    OrderStatus.PENDING_VERIFICATION,
    OrderStatus.PAID,
    OrderStatus.PROCESSING,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.IN_TRANSIT,
    OrderStatus.DELIVERED,
)


def next_status(status: OrderStatus):
    """Return the single status ``status`` may advance to, or None if terminal."""
    index = ORDER_FLOW.index(status)
    if index + 1 < len(ORDER_FLOW):
        return ORDER_FLOW[index + 1]
    return None


class DeliveryStatus(str, enum.Enum):
    """Delivery leg lifecycle."""
    ASSIGNED = "assigned"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"


class DeliveryCondition(str, enum.Enum):
    """Advisory overlay reported alongside an in-transit delivery."""
    NOMINAL = "NOMINAL"
    CRITICAL = "CRITICAL"


class ClaimStatus(str, enum.Enum):
    """Medical-aid claim outcome."""
    APPROVED = "approved"
    PENDED = "pended"
    REJECTED = "rejected"
