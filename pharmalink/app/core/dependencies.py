"""
Request dependencies: the authenticated caller and the per-request
dispatch orchestrator.
"""

from typing import Any, Dict

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from pharmalink.app.core.exceptions import AuthenticationError, TokenRevokedError, UnauthorizedError
from pharmalink.app.core.jwt import decode_access_token
from pharmalink.app.core.token_revocation import is_token_revoked
from pharmalink.app.db.session import get_db
from pharmalink.app.models.user import User
from pharmalink.app.services.adapters.registry import AdapterSet
from pharmalink.app.services.notification_hub import NotificationHub
from pharmalink.app.services.orchestrator import DispatchOrchestrator

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """
    Verified token claims plus the raw token under ``"token"``.

    The token must be correctly signed and unexpired, not revoked by logout,
    and belong to a user that still exists and is active. Deactivating a
    driver or pharmacist therefore cuts off their outstanding tokens at once.
    """
    token = credentials.credentials

    claims = decode_access_token(token)
    if claims is None or not claims.get("user_id"):
        raise AuthenticationError("Could not validate credentials")

    if await is_token_revoked(token):
        raise TokenRevokedError()

    user = await db.get(User, claims["user_id"])
    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise UnauthorizedError("User account is inactive")

    claims["token"] = token
    return claims


def get_notification_hub(request: Request) -> NotificationHub:
    return request.app.state.notification_hub


def get_adapters(request: Request) -> AdapterSet:
    return request.app.state.adapters


async def get_orchestrator(
    db: AsyncSession = Depends(get_db),
    hub: NotificationHub = Depends(get_notification_hub),
    adapters: AdapterSet = Depends(get_adapters),
) -> DispatchOrchestrator:
    """Orchestrator bound to this request's database session."""
    return DispatchOrchestrator.build(db=db, hub=hub, adapters=adapters)
