"""
Payment webhook acknowledgement schema.
"""

from pydantic import BaseModel
from typing import Optional
from pharmalink.app.models.order_enums import OrderStatus


class WebhookAck(BaseModel):
    received: bool = True
    event: str
    order_id: Optional[int] = None
    status: Optional[OrderStatus] = None
