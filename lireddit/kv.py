import logging

import redis.asyncio as redis

from lireddit.config import settings

logger = logging.getLogger(__name__)


class KeyValueStore:
    """
    Thin wrapper over the Redis client holding short-lived auth state:
    sessions and password-reset tokens.

    Unlike a cache, this store is authoritative, so Redis errors are not
    swallowed here; callers decide whether a failure is fatal.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, url: str | None = None) -> None:
        """Connect and ping; startup fails if the store is unreachable."""
        url = url or settings.REDIS_URL
        client = redis.from_url(url, decode_responses=True, socket_timeout=2)
        await client.ping()
        self._redis = client
        logger.info("Key-value store connected: %s", url)

    async def disconnect(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    @property
    def client(self) -> redis.Redis:
        if self._redis is None:
            raise RuntimeError("key-value store is not connected")
        return self._redis

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Store *value* under *key*, expiring after *ttl* seconds when given."""
        await self.client.set(key, value, ex=ttl)

    async def delete(self, key: str) -> int:
        """Remove *key*; returns the number of keys actually deleted."""
        return await self.client.delete(key)


# Module-level singleton shared across all request handlers.
kv = KeyValueStore()
