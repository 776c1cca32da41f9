"""Key/value store backed by Redis."""

import logging

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class RedisKeyValueStore:
    """Expiring string store using Redis key TTLs.

    ``take`` relies on GETDEL (Redis 6.2+) so a value is handed to one caller
    only.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisKeyValueStore":
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5.0,
            socket_timeout=5.0,
        )
        return cls(client)

    async def get(self, name: str) -> str | None:
        return await self._client.get(name)

    async def put(self, name: str, value: str, ttl_seconds: int) -> None:
        await self._client.set(name, value, ex=ttl_seconds)

    async def add_if_absent(self, name: str, value: str, ttl_seconds: int) -> bool:
        stored = await self._client.set(name, value, ex=ttl_seconds, nx=True)
        return bool(stored)

    async def take(self, name: str) -> str | None:
        return await self._client.getdel(name)

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self._client.aclose()
        logger.info("Redis connection closed")
