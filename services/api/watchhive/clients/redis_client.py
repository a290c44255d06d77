"""
Redis client wrapper.

Responsibilities:
  • Catalog cache — STRING (JSON) keyed by catalog:{endpoint}:{args}
                    holds the raw TMDB `results` list of a response

Trending lists are identical for every viewer and change slowly, so caching
them spares TMDB one call per feed request. A cache miss or a Redis failure
simply falls through to the live catalog call; so does an unreadable entry.
"""
import json
import logging
from typing import Optional

import redis.asyncio as aioredis

from watchhive.config import settings

logger = logging.getLogger(__name__)

_redis: Optional[aioredis.Redis] = None


async def init_redis() -> None:
    global _redis
    _redis = aioredis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        decode_responses=True,
    )
    await _redis.ping()
    logger.info("Redis connected at %s:%s", settings.redis_host, settings.redis_port)


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    if _redis is None:
        raise RuntimeError("Redis not initialised — call init_redis() at startup")
    return _redis


# ─────────────────────── Catalog Response Cache ───────────────────────────

class RedisCatalogCache:
    """JSON cache for catalog result lists, backed by a Redis connection."""

    def __init__(self, redis: aioredis.Redis, prefix: str = "catalog") -> None:
        self._redis = redis
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get_json(self, key: str) -> Optional[list]:
        try:
            raw = await self._redis.get(self._key(key))
        except aioredis.RedisError as exc:
            logger.warning("Catalog cache read failed for %s: %s", key, exc)
            return None
        if not raw:
            return None
        try:
            value = json.loads(raw)
        except ValueError as exc:
            logger.warning("Catalog cache entry %s is unreadable, ignoring it: %s", key, exc)
            return None
        return value if isinstance(value, list) else None

    async def set_json(self, key: str, value: list, ttl: int) -> None:
        try:
            await self._redis.set(self._key(key), json.dumps(value), ex=ttl)
        except aioredis.RedisError as exc:
            logger.warning("Catalog cache write failed for %s: %s", key, exc)
