from typing import Optional
from redis import asyncio as aioredis
from app.config import settings


class RedisClient:
    """Redis client wrapper with connection pooling.

    Satisfies the AccessCache protocol used by the privacy guardian.
    """

    def __init__(self):
        self.redis: Optional[aioredis.Redis] = None

    async def connect(self):
        """Initialize Redis connection."""
        self.redis = await aioredis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )

    async def disconnect(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.close()

    async def ping(self) -> bool:
        return await self.redis.ping()

    # String operations
    async def get(self, key: str) -> Optional[str]:
        """Get a value from Redis."""
        return await self.redis.get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """Set a value in Redis with optional TTL."""
        if ttl is not None:
            return await self.redis.setex(key, ttl, value)
        return await self.redis.set(key, value)


# Global Redis client instance
redis_client = RedisClient()


async def get_redis() -> RedisClient:
    """Dependency for getting Redis client."""
    return redis_client
