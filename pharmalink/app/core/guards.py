"""
Role gates for endpoints.

``require_role`` turns the authenticated token into an ``Actor`` and rejects
roles the endpoint does not serve. Ownership (which pharmacy, which assigned
driver) is checked later by the orchestrator, which raises the same
``UnauthorizedError`` so both layers answer with one error code.
"""

from typing import Iterable

from fastapi import Depends, Request

from pharmalink.app.core.actor import Actor
from pharmalink.app.core.dependencies import get_current_user
from pharmalink.app.core.exceptions import UnauthorizedError
from pharmalink.app.models.enums import UserRole


def require_role(allowed_roles: Iterable[UserRole]):
    """
    Dependency factory resolving to the calling ``Actor``.

    Usage:
        @router.patch("/{order_id}/accept")
        async def accept_order(actor: Actor = Depends(require_role([UserRole.PHARMACIST]))):
            ...
    """
    allowed = frozenset(allowed_roles)

    async def role_checker(request: Request, current_user: dict = Depends(get_current_user)) -> Actor:
        try:
            actor = Actor.from_token(current_user, request)
        except (KeyError, ValueError):
            raise UnauthorizedError("Token does not carry a recognised role")

        if actor.role not in allowed:
            raise UnauthorizedError(
                f"Role {actor.role.value} may not use this endpoint",
                details={"allowed_roles": sorted(role.value for role in allowed)},
            )
        return actor

    return role_checker
