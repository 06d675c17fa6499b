"""In-memory store implementation for tinylink.

Holds records in a dict keyed by short code. Every instance owns its own
reader/writer lock, so independent instances never share state.
"""

import asyncio
import dataclasses
import itertools
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, Optional

from .base import ShortLinkStoreBase
from .models import ShortLink
from ..exceptions import DuplicateCodeError, ShortLinkNotFoundError


class ReadWriteLock:
    """Asyncio lock allowing many readers or a single writer."""

    def __init__(self):
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False

    @asynccontextmanager
    async def read(self):
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def write(self):
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class InMemoryShortLinkStore(ShortLinkStoreBase):
    """Process-local store for single-worker deployments and tests."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize in-memory store.

        Args:
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger(__name__)
        self._links: Dict[str, ShortLink] = {}
        # Records created without a code yet (two-phase create), keyed by id
        self._pending: Dict[int, ShortLink] = {}
        self._ids = itertools.count(1)
        self._lock = ReadWriteLock()

    async def insert(self, link: ShortLink) -> ShortLink:
        async with self._lock.write():
            if link.short_code is not None and link.short_code in self._links:
                raise DuplicateCodeError(f"Short code '{link.short_code}' already exists")

            stored = dataclasses.replace(link, id=next(self._ids))
            if stored.short_code is None:
                self._pending[stored.id] = stored
            else:
                self._links[stored.short_code] = stored

        self.logger.debug(f"Inserted short link id={stored.id} code={stored.short_code}")
        return dataclasses.replace(stored)

    async def find_by_code(self, short_code: str) -> ShortLink:
        async with self._lock.read():
            link = self._links.get(short_code)
            if link is None:
                raise ShortLinkNotFoundError(f"Short code '{short_code}' not found")
            return dataclasses.replace(link)

    async def save(self, link: ShortLink) -> ShortLink:
        async with self._lock.write():
            current = self._find_by_id(link.id)
            if link.short_code is not None:
                holder = self._links.get(link.short_code)
                if holder is not None and holder.id != link.id:
                    raise DuplicateCodeError(f"Short code '{link.short_code}' already exists")

            access_count = link.access_count
            if current is not None:
                access_count = max(access_count, current.access_count)
                self._forget(current)

            stored = dataclasses.replace(link, access_count=access_count)
            if stored.short_code is None:
                self._pending[stored.id] = stored
            else:
                self._links[stored.short_code] = stored

        return dataclasses.replace(stored)

    async def delete_by_code(self, short_code: str) -> None:
        async with self._lock.write():
            if self._links.pop(short_code, None) is None:
                raise ShortLinkNotFoundError(f"Short code '{short_code}' not found")

    async def delete_expired_before(self, now: datetime) -> int:
        async with self._lock.write():
            expired = [code for code, link in self._links.items() if link.expires_at <= now]
            for code in expired:
                del self._links[code]
            stale = [link_id for link_id, link in self._pending.items() if link.expires_at <= now]
            for link_id in stale:
                del self._pending[link_id]
        return len(expired) + len(stale)

    async def increment_access_count(self, short_code: str) -> bool:
        async with self._lock.write():
            link = self._links.get(short_code)
            if link is None:
                return False
            link.access_count += 1
            return True

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        pass

    def _find_by_id(self, link_id: Optional[int]) -> Optional[ShortLink]:
        if link_id is None:
            return None
        if link_id in self._pending:
            return self._pending[link_id]
        for link in self._links.values():
            if link.id == link_id:
                return link
        return None

    def _forget(self, link: ShortLink) -> None:
        self._pending.pop(link.id, None)
        if link.short_code is not None and self._links.get(link.short_code) is link:
            del self._links[link.short_code]
