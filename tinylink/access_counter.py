"""Background access-count updates for cache-hit resolutions."""

import asyncio
import logging
from typing import Optional

from .database.base import ShortLinkStoreBase


class AccessCountUpdater:
    """Bounded queue of pending access-count increments.

    A single worker task drains the queue. It is owned by the updater, not by
    any request, so cancelling a request never cancels its queued increment.
    Failed or overflowing updates are logged and dropped: access counts are a
    statistic.
    """

    def __init__(
        self,
        store: ShortLinkStoreBase,
        max_queue_size: int = 1000,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.max_queue_size = max_queue_size
        self.logger = logger or logging.getLogger(__name__)
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        """Start the worker task (idempotent)."""
        self._ensure_worker()

    def _ensure_worker(self) -> None:
        if self._queue is None:
            self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        if not self.running:
            self._worker = asyncio.get_running_loop().create_task(self._run())
            self.logger.debug("Access-count worker started")

    def submit(self, short_code: str) -> bool:
        """Queue one increment without blocking.

        Must be called from within the event loop.

        Returns:
            True if queued, False if dropped because the queue is full
        """
        self._ensure_worker()
        try:
            self._queue.put_nowait(short_code)
            return True
        except asyncio.QueueFull:
            self.logger.warning(f"Access-count queue full, dropping update for {short_code}")
            return False

    async def _run(self) -> None:
        while True:
            short_code = await self._queue.get()
            try:
                await self.store.increment_access_count(short_code)
            except Exception as e:
                self.logger.error(f"Access-count update failed for {short_code}: {e}")
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued update has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self, drain_timeout: float = 5.0) -> None:
        """Drain pending updates (bounded by ``drain_timeout``), then stop the worker."""
        if not self.running:
            return

        try:
            await asyncio.wait_for(self.join(), timeout=drain_timeout)
        except asyncio.TimeoutError:
            self.logger.warning(
                f"Access-count queue not drained within {drain_timeout}s, "
                f"dropping {self._queue.qsize()} updates"
            )

        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        self.logger.debug("Access-count worker stopped")
