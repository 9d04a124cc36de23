"""
Fixed-window rate limiter.

Counts live in Redis when a shared store is configured and reachable, and in
an in-process table otherwise. The two tiers are never reconciled: a request
counted in Redis is not mirrored locally.
"""

import asyncio
import contextlib
import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from redis.exceptions import RedisError

from ...core.redis import SharedStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "ratelimit:"


@dataclass
class RateLimitResult:
    """Outcome of counting one request against a window."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int

    def headers(self) -> Dict[str, str]:
        reset_iso = datetime.fromtimestamp(self.reset_at, tz=timezone.utc).isoformat().replace("+00:00", "Z")
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": reset_iso,
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


@dataclass
class _WindowRecord:
    count: int
    reset_at: float


class RateLimiter:
    """
    Per-identifier fixed-window counter.

    Args:
        shared_store: optional Redis-backed store shared across instances
        clock: wall-clock source in seconds, injectable for tests
        cleanup_interval: seconds between purges of expired local records
    """

    def __init__(
        self,
        shared_store: Optional[SharedStore] = None,
        clock: Callable[[], float] = time.time,
        cleanup_interval: float = 300,
    ):
        self.shared_store = shared_store
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._records: Dict[str, _WindowRecord] = {}
        # reset times reported by Redis, used only for get_retry_after
        self._shared_resets: Dict[str, float] = {}
        self._cleanup_task: Optional[asyncio.Task] = None

    async def check(self, identifier: str, max_requests: int, window_seconds: int) -> bool:
        result = await self.consume(identifier, max_requests, window_seconds)
        return result.allowed

    async def consume(self, identifier: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        """
        Count one request for ``identifier``.

        Returns:
            RateLimitResult describing whether the request is allowed and the
            state of the current window
        """
        if self.shared_store is not None and self.shared_store.is_available:
            try:
                return await self._consume_shared(identifier, max_requests, window_seconds)
            except RedisError as e:
                logger.warning(f"⚠️ Shared rate limit store failed for {identifier}, using local table: {e}")
        return self._consume_local(identifier, max_requests, window_seconds)

    async def _consume_shared(self, identifier: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        count, ttl_ms = await self.shared_store.incr_window(KEY_PREFIX + identifier, window_seconds)
        now = self._clock()
        if ttl_ms < 0:
            ttl_ms = window_seconds * 1000
        reset_at = now + ttl_ms / 1000
        self._shared_resets[identifier] = reset_at

        allowed = count <= max_requests
        return RateLimitResult(
            allowed=allowed,
            limit=max_requests,
            remaining=max(0, max_requests - count),
            reset_at=reset_at,
            retry_after=0 if allowed else max(1, math.ceil(ttl_ms / 1000)),
        )

    def _consume_local(self, identifier: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        now = self._clock()
        record = self._records.get(identifier)

        if record is None or now >= record.reset_at:
            record = _WindowRecord(count=1, reset_at=now + window_seconds)
            self._records[identifier] = record
        elif record.count >= max_requests:
            return RateLimitResult(
                allowed=False,
                limit=max_requests,
                remaining=0,
                reset_at=record.reset_at,
                retry_after=max(1, math.ceil(record.reset_at - now)),
            )
        else:
            record.count += 1

        return RateLimitResult(
            allowed=True,
            limit=max_requests,
            remaining=max(0, max_requests - record.count),
            reset_at=record.reset_at,
            retry_after=0,
        )

    async def get_retry_after(self, identifier: str) -> int:
        """Seconds until the identifier's current window resets, 0 if none."""
        now = self._clock()
        reset_at = self._shared_resets.get(identifier)
        if reset_at is None:
            record = self._records.get(identifier)
            reset_at = record.reset_at if record else None
        if reset_at is None or reset_at <= now:
            return 0
        return math.ceil(reset_at - now)

    def cleanup(self) -> int:
        """Purge expired local records. Returns the number removed."""
        now = self._clock()
        expired = [key for key, record in self._records.items() if record.reset_at <= now]
        for key in expired:
            del self._records[key]

        stale = [key for key, reset_at in self._shared_resets.items() if reset_at <= now]
        for key in stale:
            del self._shared_resets[key]

        if expired:
            logger.debug(f"🧹 Purged {len(expired)} expired rate limit records")
        return len(expired)

    async def _cleanup_loop(self):
        while True:
            await asyncio.sleep(self.cleanup_interval)
            self.cleanup()

    def start(self):
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def stop(self):
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._cleanup_task
        self._cleanup_task = None
