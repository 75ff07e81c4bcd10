"""
Notification fan-out.

In-process registry of which connection listens on which logical channel.
Publishing is best effort: one send attempt per subscriber per event, no
replay, no buffering for disconnected clients, and failures never reach the
publisher. Each send has a deadline; a subscriber that misses it is treated
like one whose socket failed and is dropped.

Channels:
    order-{id}                  events for one order
    delivery-{id}               events for one delivery leg
    global-logistics-update     every event, for facility/admin dashboards
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, FrozenSet, List, Optional, Protocol, Set

from pharmalink.app.core.config import settings
from pharmalink.app.services.events import LedgerEvent

logger = logging.getLogger("pharmalink.notifications")

GLOBAL_CHANNEL = "global-logistics-update"
CHANNEL_PREFIXES = ("order-", "delivery-")


def order_channel(order_id: int) -> str:
    return f"order-{order_id}"


def delivery_channel(delivery_id: int) -> str:
    return f"delivery-{delivery_id}"


def is_valid_channel(channel: str) -> bool:
    """Accept the global stream or ``order-<int>`` / ``delivery-<int>``."""
    if channel == GLOBAL_CHANNEL:
        return True
    for prefix in CHANNEL_PREFIXES:
        if channel.startswith(prefix) and channel[len(prefix):].isdigit():
            return True
    return False


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None: ...


class NotificationHub:
    """Subscriber registry keyed by channel name."""

    def __init__(self, send_timeout: Optional[float] = None):
        self._channels: Dict[str, Set[Subscriber]] = defaultdict(set)
        self.send_timeout = settings.notification_send_timeout if send_timeout is None else send_timeout

    def join(self, channel: str, subscriber: Subscriber) -> None:
        self._channels[channel].add(subscriber)
        logger.debug("Subscriber joined %s (%d listening)", channel, len(self._channels[channel]))

    def leave(self, channel: str, subscriber: Subscriber) -> None:
        members = self._channels.get(channel)
        if not members:
            return
        members.discard(subscriber)
        if not members:
            del self._channels[channel]

    def leave_all(self, subscriber: Subscriber) -> None:
        for channel in list(self._channels):
            self.leave(channel, subscriber)

    def subscribers(self, channel: str) -> FrozenSet[Subscriber]:
        return frozenset(self._channels.get(channel, ()))

    def channels(self) -> FrozenSet[str]:
        return frozenset(self._channels)

    async def _send(self, subscriber: Subscriber, channel: str, payload: Dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(
                subscriber.send_json({"channel": channel, "data": payload}), timeout=self.send_timeout
            )
            return True
        except asyncio.TimeoutError:
            logger.warning("Dropping subscriber on %s after %.2fs send timeout", channel, self.send_timeout)
        except Exception as exc:
            logger.warning("Dropping subscriber on %s after failed send: %s", channel, exc)
        self.leave_all(subscriber)
        return False

    async def _deliver(self, targets: List[tuple], payload: Dict[str, Any]) -> int:
        if not targets:
            return 0
        results = await asyncio.gather(*(self._send(subscriber, channel, payload) for subscriber, channel in targets))
        return sum(results)

    async def publish(self, channel: str, payload: Dict[str, Any]) -> int:
        """
        Send ``payload`` once to every current member of ``channel``.

        Sends run concurrently, each bounded by ``send_timeout``. A subscriber
        whose send fails or times out is dropped from the registry.

        Returns:
            Number of subscribers the message was handed to
        """
        targets = [(subscriber, channel) for subscriber in list(self._channels.get(channel, ()))]
        return await self._deliver(targets, payload)

    async def publish_event(self, event: LedgerEvent) -> int:
        """
        Publish a ledger event on its order channel, its delivery channel and the global stream.

        A subscriber listening on several of those channels receives the event
        once, tagged with the most specific channel it joined.
        """
        channels = [order_channel(event.order_id)]
        if event.delivery_id is not None:
            channels.append(delivery_channel(event.delivery_id))
        channels.append(GLOBAL_CHANNEL)

        chosen: Dict[Subscriber, str] = {}
        for channel in channels:
            for subscriber in list(self._channels.get(channel, ())):
                chosen.setdefault(subscriber, channel)
        return await self._deliver(list(chosen.items()), event.to_payload())
