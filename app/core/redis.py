import json
from typing import Any, Optional

import redis.asyncio as redis
import structlog

from app.core.config import settings

logger = structlog.get_logger(__name__)


class RedisCache:
    """JSON read-through cache for catalog listings.

    Every failure is logged and reported as a miss; callers fall back to
    the document store.
    """

    def __init__(self, url: Optional[str] = None, namespace: str = "onboarding"):
        self.url = url or settings.REDIS_URL
        self.namespace = namespace
        self.redis_pool = None

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get_redis(self) -> redis.Redis:
        """Get Redis client instance, creating the pool on first use."""
        if not self.redis_pool:
            self.redis_pool = redis.ConnectionPool.from_url(
                self.url,
                decode_responses=True,
                retry_on_timeout=True,
                socket_keepalive=True,
            )
            logger.info("Redis connection pool created", namespace=self.namespace)
        return redis.Redis(connection_pool=self.redis_pool)

    async def close(self) -> None:
        if self.redis_pool:
            await self.redis_pool.disconnect()
            self.redis_pool = None

    async def get_json(self, key: str) -> Optional[Any]:
        try:
            client = await self.get_redis()
            raw = await client.get(self._key(key))
        except Exception as e:
            logger.warning("Redis GET failed, treating as miss", key=key, error=str(e))
            return None

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable cache entry", key=key)
            return None

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            client = await self.get_redis()
            return bool(await client.set(self._key(key), json.dumps(value), ex=ttl))
        except Exception as e:
            logger.warning("Redis SET failed", key=key, error=str(e))
            return False


# Global cache instance
redis_cache = RedisCache()
