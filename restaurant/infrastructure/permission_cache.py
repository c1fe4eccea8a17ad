import logging
import time
from typing import Callable, Dict, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

KEY_PREFIX = "perm:"


class PermissionCache:
    """
    Memoizes (role, resource, action) -> allowed with a fixed TTL.

    Redis is the primary store when configured; the process-local dict is
    always written too, so a Redis outage degrades to RAM instead of failing.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        ttl: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self._clock = clock
        self.redis = None
        self.redis_available = False

        # 1. Primary Memory (Redis)
        if redis_url:
            try:
                self.redis = redis.from_url(
                    redis_url,
                    decode_responses=True,
                    socket_connect_timeout=1  # Fail fast if Redis is down
                )
                self.redis_available = True
                logger.info("✅ PermissionCache: using Redis.")
            except (RedisError, ValueError) as e:
                logger.warning(f"⚠️ PermissionCache: Redis unusable ({e}). Using RAM fallback.")

        # 2. Fallback Memory (RAM): key -> (allowed, expires_at)
        self._memory_store: Dict[str, Tuple[bool, float]] = {}
        # bumped by every clear(); a write started before a clear is dropped
        self.generation = 0

    @property
    def mode(self) -> str:
        return "redis" if self.redis_available else "memory"

    @staticmethod
    def make_key(role: str, resource: str, action: str) -> str:
        return f"{KEY_PREFIX}{role}:{resource}:{action}"

    async def get(self, role: str, resource: str, action: str) -> Optional[bool]:
        """Cached decision, or None on a miss / expired entry."""
        key = self.make_key(role, resource, action)

        # Try Redis
        if self.redis_available:
            try:
                value = await self.redis.get(key)
                return None if value is None else value == "1"
            except RedisError as e:
                self._handle_redis_error(e)

        # Fallback to RAM
        entry = self._memory_store.get(key)
        if entry is None:
            return None
        allowed, expires_at = entry
        if self._clock() >= expires_at:
            self._memory_store.pop(key, None)
            return None
        return allowed

    async def set(
        self, role: str, resource: str, action: str, allowed: bool, generation: Optional[int] = None
    ) -> None:
        if generation is not None and generation != self.generation:
            logger.debug(f"Skipping stale permission write for {role}:{resource}:{action}")
            return
        key = self.make_key(role, resource, action)

        if self.redis_available:
            try:
                await self.redis.setex(key, self.ttl, "1" if allowed else "0")
                if generation is not None and generation != self.generation:
                    # cleared while the write was in flight
                    await self.redis.delete(key)
                    return
            except RedisError as e:
                self._handle_redis_error(e)

        if generation is not None and generation != self.generation:
            return
        # Always write to RAM (in case Redis drops out later)
        self._memory_store[key] = (allowed, self._clock() + self.ttl)

    async def clear(self) -> None:
        """Drop every cached decision. Must complete before a permission update is reported done."""
        self.generation += 1
        self._memory_store.clear()

        if self.redis_available:
            try:
                keys = [key async for key in self.redis.scan_iter(match=f"{KEY_PREFIX}*")]
                if keys:
                    await self.redis.delete(*keys)
            except RedisError as e:
                self._handle_redis_error(e)

    def _handle_redis_error(self, e):
        """Log error and switch flag to False to stop trying Redis."""
        logger.error(f"❌ Redis Error: {e}. Switching to RAM mode.")
        self.redis_available = False
