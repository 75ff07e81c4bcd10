"""
Post-commit hooks.

Side effects that run after a ledger mutation has been committed: fan-out
publish and audit trail. Each hook is independently fallible; a failure is
logged and never reaches the client or rolls back the mutation.
"""

import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from pharmalink.app.core.actor import Actor
from pharmalink.app.services.audit import log_event
from pharmalink.app.services.events import LedgerEvent
from pharmalink.app.services.notification_hub import NotificationHub

logger = logging.getLogger("pharmalink.hooks")

PostCommitHook = Callable[[LedgerEvent, Optional[Actor]], Awaitable[None]]


class NotificationForwarder:
    """Forwards ledger events to the notification hub."""

    def __init__(self, hub: NotificationHub):
        self.hub = hub

    async def __call__(self, event: LedgerEvent, actor: Optional[Actor]) -> None:
        delivered = await self.hub.publish_event(event)
        logger.debug("Event %s for order %s handed to %d subscribers", event.action, event.order_id, delivered)


class AuditTrailHook:
    """Writes one audit entry per ledger event."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def __call__(self, event: LedgerEvent, actor: Optional[Actor]) -> None:
        metadata = {"order_id": event.order_id, "status": event.status}
        if event.delivery_id is not None:
            metadata["delivery_id"] = event.delivery_id
        try:
            await log_event(
                db=self.db,
                action=event.action,
                actor_id=actor.user_id if actor else None,
                actor_username=actor.username if actor else None,
                resource_type=event.resource_type,
                resource_id=event.resource_id,
                metadata=metadata,
                ip_address=event.origin,
                user_agent=actor.user_agent if actor else None,
            )
        except Exception:
            await self.db.rollback()
            raise


class PostCommitHooks:
    """Ordered list of named hooks run after every committed mutation."""

    def __init__(self, hooks: Iterable[Tuple[str, PostCommitHook]] = ()):
        self._hooks: List[Tuple[str, PostCommitHook]] = list(hooks)

    async def run(self, event: LedgerEvent, actor: Optional[Actor] = None) -> Dict[str, bool]:
        """
        Run every hook once.

        Returns:
            Mapping of hook name to whether it succeeded
        """
        results = {}
        for name, hook in self._hooks:
            try:
                await hook(event, actor)
                results[name] = True
            except Exception as exc:
                logger.warning(
                    "Post-commit hook %s failed for %s on order %s: %s",
                    name, event.action, event.order_id, exc,
                    exc_info=True,
                )
                results[name] = False
        return results
