"""Redis caching."""
import json
import logging
from typing import Any, Optional

import redis.asyncio as redis

from bizdir.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """Redis cache; every call degrades to a miss when Redis is unavailable."""

    def __init__(self, client: Optional[redis.Redis] = None, enabled: bool | None = None):
        self._redis: Optional[redis.Redis] = client
        self.enabled = settings.cache_enabled if enabled is None else enabled

    async def connect(self):
        """Connect to Redis."""
        if not self.enabled or self._redis:
            return
        try:
            self._redis = redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            await self._redis.ping()
        except Exception as e:
            # No Redis, keep going without the cache
            logger.warning(f"Redis unavailable, caching disabled: {e}")
            self._redis = None
            self.enabled = False

    async def disconnect(self):
        """Close the Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def _client(self) -> Optional[redis.Redis]:
        if not self._redis:
            await self.connect()
        return self._redis

    async def get(self, key: str) -> Any | None:
        """Read a cached value."""
        client = await self._client()
        if not client:
            return None
        try:
            value = await client.get(key)
            if value:
                return json.loads(value)
            return None
        except Exception:
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store a value with a TTL in seconds."""
        client = await self._client()
        if not client:
            return False
        try:
            serialized = json.dumps(value, default=str)
            await client.setex(key, ttl or settings.cache_ttl, serialized)
            return True
        except Exception:
            return False

    async def delete(self, key: str) -> bool:
        """Drop a cached value."""
        client = await self._client()
        if not client:
            return False
        try:
            await client.delete(key)
            return True
        except Exception:
            return False


# Global instance
cache_service = CacheService()


def get_cache_key_categories() -> str:
    """Cache key of the category list."""
    return "categories:all"

