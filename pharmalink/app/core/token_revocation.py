"""
Logout support: revoked tokens are kept in Redis only for as long as they
would otherwise remain valid.
"""

import logging

from pharmalink.app.core import redis_client as redis_module

logger = logging.getLogger("pharmalink.auth")

REVOKED_TOKEN_PREFIX = "pharmalink:revoked:"


def _key(token: str) -> str:
    return f"{REVOKED_TOKEN_PREFIX}{token}"


async def revoke_token(token: str, user_id: int, ttl_seconds: int) -> bool:
    """Returns False if the revocation could not be stored."""
    try:
        await redis_module.redis_client.setex(_key(token), ttl_seconds, str(user_id))
    except Exception as e:
        logger.warning("Could not revoke token for user %s: %s", user_id, e)
        return False
    return True


async def is_token_revoked(token: str) -> bool:
    # Redis down: let the request through, the token still expires on its own
    try:
        return await redis_module.redis_client.exists(_key(token)) > 0
    except Exception as e:
        logger.warning("Revocation check unavailable: %s", e)
        return False
