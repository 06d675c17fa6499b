"""Business logic service for tinylink."""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from .access_counter import AccessCountUpdater
from .common.validators import is_valid_url
from .database.base import ShortLinkStoreBase
from .database.models import ShortLink
from .exceptions import (
    DuplicateCodeError,
    GenerationExhaustedError,
    InvalidURLError,
    ShortLinkNotFoundError,
)
from .shortcode import CodeStrategy, RandomCodeStrategy


class ShortLinkService:
    """Service layer for short link business logic."""

    def __init__(
        self,
        store: ShortLinkStoreBase,
        cache=None,
        code_strategy: Optional[CodeStrategy] = None,
        access_counter: Optional[AccessCountUpdater] = None,
        logger: Optional[logging.Logger] = None,
        retention: timedelta = timedelta(days=30),
        cache_ttl_seconds: int = 600,
        max_collision_retries: int = 5,
    ):
        """Initialize short link service.

        Args:
            store: Durable store instance
            cache: Optional resolution cache (RedisCache or MemoryCache)
            code_strategy: Short code strategy (random 6-char codes by default)
            access_counter: Background updater for cache-hit access counts
            logger: Optional logger
            retention: Lifetime of a record from creation
            cache_ttl_seconds: Upper bound for cache entry TTL
            max_collision_retries: Insert attempts for random codes
        """
        self.store = store
        self.cache = cache
        self.strategy = code_strategy or RandomCodeStrategy()
        self.access_counter = access_counter or AccessCountUpdater(store, logger=logger)
        self.logger = logger or logging.getLogger(__name__)
        self.retention = retention
        self.cache_ttl_seconds = cache_ttl_seconds
        self.max_collision_retries = max_collision_retries

    async def create_short_link(self, long_url: str) -> ShortLink:
        """Create a new short link.

        Args:
            long_url: The original long URL

        Returns:
            The stored record

        Raises:
            InvalidURLError: If the URL is malformed
            GenerationExhaustedError: If no free random code was found
            StoreUnavailableError: If the store cannot be reached
        """
        self._validate_url(long_url)

        now = datetime.now(timezone.utc)
        draft = ShortLink(
            long_url=long_url,
            created_at=now,
            updated_at=now,
            expires_at=now + self.retention,
        )

        if self.strategy.requires_id:
            link = await self._create_with_encoded_code(draft)
        else:
            link = await self._create_with_random_code(draft)

        await self._cache_link(link)
        self.logger.info(f"Created short link: {link.short_code} -> {long_url}")
        return link

    async def _create_with_random_code(self, draft: ShortLink) -> ShortLink:
        for attempt in range(1, self.max_collision_retries + 1):
            draft.short_code = self.strategy.generate()
            try:
                return await self.store.insert(draft)
            except DuplicateCodeError:
                self.logger.debug(f"Short code collision on attempt {attempt}: {draft.short_code}")

        raise GenerationExhaustedError(
            f"Unable to generate unique short code after {self.max_collision_retries} attempts"
        )

    async def _create_with_encoded_code(self, draft: ShortLink) -> ShortLink:
        # The code is derived from the id, so the row must exist first
        link = await self.store.insert(draft)
        link.short_code = self.strategy.generate(link.id)
        return await self.store.save(link)

    async def resolve(self, short_code: str) -> str:
        """Get the long URL for a short code and count the access.

        On a cache hit the count is queued for the background updater; on a
        miss the store is read, the cache filled and the count written inline.

        Raises:
            ShortLinkNotFoundError: If the code does not exist or has expired
            StoreUnavailableError: If the store cannot be reached on a miss
        """
        if self.cache:
            cached_url = await self.cache.get(self.cache.get_cache_key(short_code))
            if cached_url:
                self.logger.debug(f"Cache hit for {short_code}")
                self.access_counter.submit(short_code)
                return cached_url

        link = await self._get_live_link(short_code)
        cached = await self._cache_link(link)

        if not await self.store.increment_access_count(short_code):
            # Deleted after our read; drop the entry we just filled
            await self._evict(short_code)
            raise ShortLinkNotFoundError(f"Short code '{short_code}' not found")

        if cached:
            link = await self._recheck_cached(link)

        self.logger.debug(f"Resolved from store: {short_code} -> {link.long_url}")
        return link.long_url

    async def _recheck_cached(self, link: ShortLink) -> ShortLink:
        # An update or delete may have landed between our read and the cache
        # fill; re-read so the entry never holds a superseded URL.
        try:
            current = await self._get_live_link(link.short_code)
        except ShortLinkNotFoundError:
            await self._evict(link.short_code)
            raise

        if current.long_url != link.long_url:
            self.logger.debug(f"Short link {link.short_code} changed during resolve, refreshing cache")
            if not await self._cache_link(current):
                await self._evict(link.short_code)
        return current

    async def get_stats(self, short_code: str) -> ShortLink:
        """Get the full record, including its access count.

        Raises:
            ShortLinkNotFoundError: If the code does not exist or has expired
        """
        return await self._get_live_link(short_code)

    async def update_short_link(self, short_code: str, long_url: str) -> ShortLink:
        """Point an existing short code at a new long URL.

        Last writer wins. The cache entry is overwritten before returning, so
        no later resolution observes the previous URL.

        Raises:
            InvalidURLError: If the URL is malformed
            ShortLinkNotFoundError: If the code does not exist or has expired
        """
        self._validate_url(long_url)

        link = await self._get_live_link(short_code)
        link.long_url = long_url
        link.updated_at = datetime.now(timezone.utc)
        link = await self.store.save(link)

        if not await self._cache_link(link):
            # A failed overwrite must not leave the old URL cached
            await self._evict(short_code)

        self.logger.info(f"Updated short link: {short_code} -> {long_url}")
        return link

    async def delete_short_link(self, short_code: str) -> None:
        """Delete a short link.

        The cache entry is removed after the store delete; a resolution racing
        with the delete may still see the old URL once.

        Raises:
            ShortLinkNotFoundError: If the code does not exist
        """
        await self.store.delete_by_code(short_code)
        await self._evict(short_code)

        self.logger.info(f"Deleted short link: {short_code}")

    async def health_check(self) -> Dict[str, bool]:
        """Perform health check.

        Returns:
            Dictionary with health status
        """
        db_healthy = await self.store.health_check()

        cache_healthy = True
        if self.cache:
            cache_healthy = await self.cache.ping()

        return {
            "database": db_healthy,
            "cache": cache_healthy,
            "overall": db_healthy and cache_healthy,
        }

    async def close(self) -> None:
        """Stop background work and close connections."""
        await self.access_counter.stop()
        await self.store.close()
        if self.cache:
            await self.cache.close()

    async def _get_live_link(self, short_code: str) -> ShortLink:
        link = await self.store.find_by_code(short_code)
        if link.is_expired():
            # Expired but not yet swept
            raise ShortLinkNotFoundError(f"Short code '{short_code}' has expired")
        return link

    def _cache_ttl(self, link: ShortLink) -> int:
        remaining = (link.expires_at - datetime.now(timezone.utc)).total_seconds()
        return max(1, min(self.cache_ttl_seconds, math.floor(remaining)))

    async def _evict(self, short_code: str) -> None:
        if self.cache:
            await self.cache.delete(self.cache.get_cache_key(short_code))

    async def _cache_link(self, link: ShortLink) -> bool:
        if not self.cache:
            return False
        return await self.cache.set(
            self.cache.get_cache_key(link.short_code),
            link.long_url,
            ttl=self._cache_ttl(link),
        )

    @staticmethod
    def _validate_url(long_url: str) -> None:
        is_valid, error = is_valid_url(long_url)
        if not is_valid:
            raise InvalidURLError(f"Invalid URL: {error}")
