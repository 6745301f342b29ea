"""Redis connection — shared by the rate limiter and the health check.

Learn: Redis is optional. The pool is created in the app lifespan; if the
server is unreachable the app still starts and get_redis() raises, which
the rate limiter treats as "don't limit".
"""

from typing import Optional

import redis.asyncio as aioredis

from crossfun.config import settings

# Initialized in lifespan
_redis: Optional[aioredis.Redis] = None


async def init_redis(url: Optional[str] = None) -> aioredis.Redis:
    """Open the pool and ping it. Raises if Redis is unreachable."""
    global _redis
    client = aioredis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    try:
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    _redis = client
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


def set_redis(client: Optional[aioredis.Redis]) -> None:
    """Swap the client (tests inject a fake here)."""
    global _redis
    _redis = client
