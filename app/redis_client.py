import logging

import redis.asyncio as redis

from app.config import settings
from app.errors import StorageError

logger = logging.getLogger(__name__)


class RedisManager:
    """
    Owns the process-wide Redis connection pool used by the Redis session
    store.

    Unlike a cache, sessions cannot degrade silently: when Redis is not
    connected, ``client`` raises and the request fails with a storage error.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, url: str | None = None) -> None:
        """Open the connection pool.  Called once at application startup."""
        url = url or settings.REDIS_URL
        self._redis = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        # Ping to surface mis-configuration early (non-fatal).
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", url)
        except redis.RedisError as exc:  # pragma: no cover
            logger.warning("Redis ping failed: %s", exc)

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    @property
    def connected(self) -> bool:
        return self._redis is not None

    @property
    def client(self) -> redis.Redis:
        if self._redis is None:
            raise StorageError("redis is not connected")
        return self._redis


# Module-level singleton shared across all request handlers.
redis_manager = RedisManager()
