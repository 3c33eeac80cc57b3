"""
Redis Cache

``init_redis`` creates one pooled async client at startup; each
``CacheManager`` wraps it under its own key namespace. A manager without a
client is a pass-through, so lookups still work when Redis is disabled or
unreachable.
"""

import json
from typing import Any, Optional

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from partshop.config.settings import RedisSettings

logger = structlog.get_logger(__name__)


async def init_redis(settings: RedisSettings) -> Optional[Redis]:
    """
    Create a pooled Redis client and verify it answers.

    Returns None when Redis is disabled or the ping fails.
    """
    if not settings.enabled:
        logger.info("Redis cache disabled")
        return None

    client = Redis.from_url(
        settings.get_url(),
        max_connections=settings.max_connections,
        socket_timeout=settings.socket_timeout,
        decode_responses=settings.decode_responses,
    )

    try:
        await client.ping()
        logger.info("Redis connection established")
    except (RedisError, OSError) as e:
        logger.warning("Redis connection failed, caching disabled", error=str(e))
        await client.aclose()
        return None

    return client


async def close_redis(client: Optional[Redis]) -> None:
    """Close the Redis client and its connection pool"""
    if client is None:
        return
    await client.aclose()
    logger.info("Redis connection closed")


class CacheManager:
    """
    JSON values under ``<namespace>:<key>`` with a default TTL.

    Redis failures are logged and treated as misses, so the cache can slow a
    lookup down but never fail it.

    Example:
        cache = CacheManager("products", client, default_ttl=300)
        await cache.set(str(product_id), info.to_cache())
        data = await cache.get(str(product_id))
    """

    def __init__(self, namespace: str, client: Optional[Redis] = None, default_ttl: int = 3600):
        self.namespace = namespace
        self.client = client
        self.default_ttl = default_ttl

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        """Decoded value, or None on a miss, without a client or on error."""
        if self.client is None:
            return None

        try:
            raw = await self.client.get(self._key(key))
        except RedisError as e:
            logger.warning("Cache read failed", namespace=self.namespace, key=key, error=str(e))
            return None

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable cache entry", namespace=self.namespace, key=key)
            return None

    async def set(self, key: str, value: Any) -> bool:
        """
        Store ``value`` as JSON for ``default_ttl`` seconds.

        Returns:
            False when nothing was written
        """
        if self.client is None:
            return False

        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning("Value is not cacheable", namespace=self.namespace, key=key, error=str(e))
            return False

        try:
            await self.client.setex(self._key(key), self.default_ttl, payload)
        except RedisError as e:
            logger.warning("Cache write failed", namespace=self.namespace, key=key, error=str(e))
            return False
        return True

