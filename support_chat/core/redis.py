"""
Redis client configuration.

``SharedStore`` wraps an async Redis client for the rate limiter and the
knowledge cache. Commands raise ``redis.exceptions.RedisError`` on failure;
callers fall back to their in-process tier.
"""
import logging
import time
from typing import Callable, Optional, Tuple

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_random_exponential

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 5.0
COMMAND_TIMEOUT = 3.0
COOLDOWN_SECONDS = 30.0


def create_redis_client(redis_url: str) -> Redis:
    """Get Redis client instance"""
    return Redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=CONNECT_TIMEOUT,
        socket_timeout=COMMAND_TIMEOUT,
    )


class SharedStore:
    """Shared key/value store backed by Redis."""

    def __init__(
        self,
        client: Redis,
        cooldown_seconds: float = COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._unavailable_until = 0.0
        self._connected = False

    @classmethod
    def from_url(cls, redis_url: str) -> "SharedStore":
        return cls(create_redis_client(redis_url))

    @property
    def is_available(self) -> bool:
        return self._clock() >= self._unavailable_until

    @property
    def is_connected(self) -> bool:
        return self._connected and self.is_available

    @retry(
        wait=wait_random_exponential(multiplier=0.1, max=2),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(RedisError),
        reraise=True,
    )
    async def _ping(self):
        await self.client.ping()

    async def connect(self) -> bool:
        """
        Connect and verify the server answers PING.

        Up to three attempts with exponential backoff; after that the store
        reports unavailable until the cool-down expires.
        """
        try:
            await self._ping()
        except RedisError as e:
            self._mark_unavailable(e)
            return False
        self._connected = True
        self._unavailable_until = 0.0
        logger.info("✅ Redis client connected successfully")
        return True

    def _mark_unavailable(self, error: Exception):
        self._connected = False
        self._unavailable_until = self._clock() + self.cooldown_seconds
        logger.warning(
            f"⚠️ Redis unavailable, using in-process fallback for {self.cooldown_seconds:.0f}s: {error}"
        )

    def _ensure_available(self):
        if not self.is_available:
            raise RedisConnectionError("Shared store is cooling down after a connection failure")

    async def _run(self, operation, force: bool = False):
        if not force:
            self._ensure_available()
        try:
            result = await operation()
        except (RedisConnectionError, RedisTimeoutError) as e:
            self._mark_unavailable(e)
            raise
        self._connected = True
        self._unavailable_until = 0.0
        return result

    async def get(self, key: str) -> Optional[str]:
        return await self._run(lambda: self.client.get(key))

    async def setex(self, key: str, ttl_seconds: int, value: str):
        await self._run(lambda: self.client.setex(key, ttl_seconds, value))

    async def delete(self, *keys: str, force: bool = False) -> int:
        """
        Delete keys. With ``force`` the command is sent even during the
        cool-down; a success ends the cool-down early.
        """
        return await self._run(lambda: self.client.delete(*keys), force=force)

    async def incr_window(self, key: str, window_seconds: int) -> Tuple[int, int]:
        """
        Atomically increment a fixed-window counter.

        The key is created with the window as TTL only if it does not exist,
        so the expiry is never extended by later increments.

        Returns:
            Tuple[int, int]: (count after increment, remaining TTL in ms)
        """
        async def _transaction():
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.set(key, 0, ex=window_seconds, nx=True)
                pipe.incr(key)
                pipe.pttl(key)
                _, count, ttl_ms = await pipe.execute()
            return int(count), int(ttl_ms)

        return await self._run(_transaction)

    async def ping(self) -> bool:
        """Health probe, never raises."""
        try:
            await self._run(self.client.ping)
            return True
        except RedisError:
            return False

    async def close(self):
        """Close Redis connection pool."""
        try:
            await self.client.aclose()
        except RedisError as e:
            logger.warning(f"⚠️ Error closing Redis client: {e}")
        self._connected = False
