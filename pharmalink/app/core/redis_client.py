"""
Shared Redis connection holding the revoked-token list.
"""

import redis.asyncio as redis

from pharmalink.app.core.config import settings

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def close_redis() -> None:
    await redis_client.aclose()
