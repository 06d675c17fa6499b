"""Resolution cache layer for tinylink.

Cache failures never surface to callers: reads degrade to a miss and writes
report False. The durable store stays the source of truth.
"""

import asyncio
import logging
import time
from typing import Callable, Dict, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..exceptions import CacheUnavailableError


KEY_PREFIX = "tinylink"


class ResolutionCacheMixin:
    """Key schema shared by every cache backend."""

    def get_cache_key(self, short_code: str) -> str:
        """Generate cache key for short code."""
        return f"{KEY_PREFIX}:url:{short_code}"

    def get_rate_key(self, identity: str) -> str:
        """Generate the request-counter key for a client identity."""
        return f"{KEY_PREFIX}:rate:{identity}"

    def get_deny_key(self, identity: str) -> str:
        """Generate the deny-flag key for a client identity."""
        return f"{KEY_PREFIX}:deny:{identity}"


class RedisCache(ResolutionCacheMixin):
    """Redis cache for URL mappings and rate-limit windows."""

    def __init__(
        self,
        redis_url: str,
        ttl_seconds: int = 600,
        logger: Optional[logging.Logger] = None,
        client: Optional[redis.Redis] = None,
    ):
        """Initialize Redis cache.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            ttl_seconds: Default TTL for cached items
            logger: Optional logger instance
            client: Optional pre-built client (connect() is then a ping only)
        """
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.client: Optional[redis.Redis] = client
        self.enabled = True

        self.logger.info(f"Redis cache enabled with TTL={ttl_seconds}s")

    async def connect(self) -> None:
        """Connect to Redis.

        A failed connection does not disable the cache: the client reconnects
        on the next command, and until then every call degrades to a miss.
        """
        if self.client is None:
            self.client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        try:
            await self.client.ping()
            self.logger.info("Connected to Redis")
        except (RedisError, OSError) as e:
            self.logger.error(f"Failed to connect to Redis: {e}")

    async def _call(self, command: str, *args, **kwargs):
        if self.client is None:
            raise CacheUnavailableError("Redis client is not connected")
        try:
            return await getattr(self.client, command)(*args, **kwargs)
        except (RedisError, OSError) as e:
            raise CacheUnavailableError(f"Redis {command} failed: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        """Get value from cache.

        Returns:
            Cached value or None (on miss or error)
        """
        try:
            return await self._call("get", key)
        except CacheUnavailableError as e:
            self.logger.error(f"Cache get error: {e}")
            return None

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Optional TTL override (seconds)

        Returns:
            True if successful
        """
        try:
            await self._call("setex", key, ttl or self.ttl_seconds, value)
            return True
        except CacheUnavailableError as e:
            self.logger.error(f"Cache set error: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """Delete key from cache.

        Returns:
            True if deleted
        """
        try:
            return await self._call("delete", key) > 0
        except CacheUnavailableError as e:
            self.logger.error(f"Cache delete error: {e}")
            return False

    async def increment(self, key: str) -> Optional[int]:
        """Increment a counter in cache.

        Returns:
            New value or None
        """
        try:
            return await self._call("incr", key)
        except CacheUnavailableError as e:
            self.logger.error(f"Cache increment error: {e}")
            return None

    async def increment_window(self, key: str, ttl: int) -> Optional[int]:
        """Increment a window counter, giving it ``ttl`` if it has none.

        INCR and TTL run in one transaction. The expiry is applied whenever
        the key has no TTL, not only on the first increment, so a counter
        whose EXPIRE was lost gets one on the next call instead of living
        forever. An existing TTL is never extended.

        Returns:
            New value or None
        """
        if self.client is None:
            self.logger.error("Cache increment error: Redis client is not connected")
            return None

        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.ttl(key)
                count, remaining = await pipe.execute()
        except (RedisError, OSError) as e:
            self.logger.error(f"Cache increment error: Redis pipeline failed: {e}")
            return None

        # -1: key exists without an expiry
        if remaining == -1 and not await self.expire(key, ttl):
            self.logger.warning(f"Window counter {key} has no TTL yet, retrying on next increment")
        return count

    async def expire(self, key: str, ttl: int) -> bool:
        """Set a TTL on an existing key."""
        try:
            return bool(await self._call("expire", key, ttl))
        except CacheUnavailableError as e:
            self.logger.error(f"Cache expire error: {e}")
            return False

    async def exists(self, key: str) -> Optional[bool]:
        """Check whether a key exists.

        Returns:
            True/False, or None when the cache cannot answer
        """
        try:
            return await self._call("exists", key) > 0
        except CacheUnavailableError as e:
            self.logger.error(f"Cache exists error: {e}")
            return None

    async def ping(self) -> bool:
        try:
            await self._call("ping")
            return True
        except CacheUnavailableError:
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self.client:
            await self.client.aclose()
            self.logger.info("Redis connection closed")


class MemoryCache(ResolutionCacheMixin):
    """In-process TTL cache with the same interface as RedisCache.

    Used when no Redis URL is configured (single-worker deployments) and in
    tests. Expired entries are evicted when read, and every
    ``purge_interval_seconds`` a write also drops every expired entry, so
    keys that are never read again (rate windows of one-off clients, links
    nobody follows) do not accumulate.
    """

    def __init__(
        self,
        ttl_seconds: int = 600,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
        purge_interval_seconds: float = 60,
    ):
        self.ttl_seconds = ttl_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock
        self.purge_interval_seconds = purge_interval_seconds
        self.enabled = True
        self._entries: Dict[str, Tuple[object, Optional[float]]] = {}
        self._lock = asyncio.Lock()
        self._next_purge = clock() + purge_interval_seconds

    def __len__(self) -> int:
        return len(self._entries)

    async def connect(self) -> None:
        self.logger.info(f"In-process cache enabled with TTL={self.ttl_seconds}s")

    def _live(self, key: str):
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self.clock():
            del self._entries[key]
            return None
        return entry

    def _put(self, key: str, value, expires_at: Optional[float]) -> None:
        # Caller holds the lock
        self._entries[key] = (value, expires_at)
        now = self.clock()
        if now >= self._next_purge:
            self._purge(now)

    def _purge(self, now: float) -> None:
        expired = [
            key for key, (_, expires_at) in self._entries.items()
            if expires_at is not None and expires_at <= now
        ]
        for key in expired:
            del self._entries[key]
        self._next_purge = now + self.purge_interval_seconds
        if expired:
            self.logger.debug(f"Purged {len(expired)} expired cache entries")

    async def purge_expired(self) -> None:
        """Drop every expired entry now."""
        async with self._lock:
            self._purge(self.clock())

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            entry = self._live(key)
            return None if entry is None else str(entry[0])

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        async with self._lock:
            self._put(key, value, self.clock() + (ttl or self.ttl_seconds))
        return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    def _incr(self, key: str) -> Tuple[int, Optional[float]]:
        entry = self._live(key)
        value, expires_at = (0, None) if entry is None else entry
        return int(value) + 1, expires_at

    async def increment(self, key: str) -> Optional[int]:
        async with self._lock:
            value, expires_at = self._incr(key)
            self._put(key, value, expires_at)
            return value

    async def increment_window(self, key: str, ttl: int) -> Optional[int]:
        async with self._lock:
            value, expires_at = self._incr(key)
            if expires_at is None:
                expires_at = self.clock() + ttl
            self._put(key, value, expires_at)
            return value

    async def expire(self, key: str, ttl: int) -> bool:
        async with self._lock:
            entry = self._live(key)
            if entry is None:
                return False
            self._put(key, entry[0], self.clock() + ttl)
            return True

    async def exists(self, key: str) -> Optional[bool]:
        async with self._lock:
            return self._live(key) is not None

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        async with self._lock:
            self._entries.clear()
