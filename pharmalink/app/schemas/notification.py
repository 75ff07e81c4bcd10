"""
Notification WebSocket message schemas.
"""

from pydantic import BaseModel
from typing import Literal, Optional


class ChannelMessage(BaseModel):
    """Client to server: join or leave a logical channel."""
    action: Literal["join", "leave"]
    channel: str


class ChannelAck(BaseModel):
    """Server to client reply to a ChannelMessage."""
    ok: bool
    action: str
    channel: Optional[str] = None
    error: Optional[str] = None
