"""
Live notification WebSocket.

Clients send ``{"action": "join" | "leave", "channel": "<name>"}`` and get
an acknowledgement back. Events published on a joined channel arrive as
``{"channel": "<name>", "data": {...}}``. There is no replay of events
published before the join.
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from pharmalink.app.schemas.notification import ChannelAck, ChannelMessage
from pharmalink.app.services.notification_hub import NotificationHub, is_valid_channel

logger = logging.getLogger("pharmalink.notifications")

router = APIRouter(tags=["Notifications"])


class SocketSubscriber:
    """Hub membership handle for one connection. WebSocket itself is not hashable."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send_json(self, data) -> None:
        await self.websocket.send_json(data)


def _handle(hub: NotificationHub, subscriber: SocketSubscriber, raw: object) -> ChannelAck:
    try:
        message = ChannelMessage.model_validate(raw)
    except ValidationError:
        return ChannelAck(ok=False, action="unknown", error="Expected {action: join|leave, channel: str}")

    if not is_valid_channel(message.channel):
        return ChannelAck(ok=False, action=message.action, channel=message.channel, error="Unknown channel")

    if message.action == "join":
        hub.join(message.channel, subscriber)
    else:
        hub.leave(message.channel, subscriber)
    return ChannelAck(ok=True, action=message.action, channel=message.channel)


@router.websocket("/ws/notifications")
async def notifications_socket(websocket: WebSocket):
    hub: NotificationHub = websocket.app.state.notification_hub
    await websocket.accept()
    subscriber = SocketSubscriber(websocket)
    try:
        while True:
            try:
                raw = await websocket.receive_json()
            except ValueError:
                await websocket.send_json(ChannelAck(ok=False, action="unknown", error="Invalid JSON").model_dump())
                continue
            ack = _handle(hub, subscriber, raw)
            await websocket.send_json(ack.model_dump())
    except WebSocketDisconnect:
        logger.debug("Notification socket disconnected")
    finally:
        hub.leave_all(subscriber)
