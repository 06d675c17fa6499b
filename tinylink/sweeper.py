"""Periodic purge of expired short links."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from .database.base import ShortLinkStoreBase


class ExpirySweeper:
    """Deletes expired records from the durable store on a fixed interval.

    Cache entries are left alone; they carry their own TTL, capped at the
    record's expiry.
    """

    def __init__(
        self,
        store: ShortLinkStoreBase,
        interval_seconds: float = 86400,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.interval_seconds = interval_seconds
        self.logger = logger or logging.getLogger(__name__)
        self._task: Optional[asyncio.Task] = None

    async def sweep_once(self, now: Optional[datetime] = None) -> int:
        """Delete every record with ``expires_at <= now``.

        Returns:
            Number of deleted records
        """
        now = now or datetime.now(timezone.utc)
        deleted = await self.store.delete_expired_before(now)
        self.logger.info(f"Expiry sweep removed {deleted} short links")
        return deleted

    async def start(self) -> None:
        """Start the periodic sweep task (idempotent)."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())
            self.logger.info(f"Expiry sweeper started (interval={self.interval_seconds}s)")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep_once()
            except Exception as e:
                # Retried on the next tick
                self.logger.error(f"Expiry sweep failed: {e}")

    async def stop(self) -> None:
        """Cancel the periodic sweep task."""
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self.logger.info("Expiry sweeper stopped")
