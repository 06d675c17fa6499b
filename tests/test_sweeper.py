"""Tests for the expiry sweeper."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from tinylink.database.models import ShortLink
from tinylink.exceptions import ShortLinkNotFoundError
from tinylink.sweeper import ExpirySweeper


async def add_link(store, short_code, age_days):
    created = datetime.now(timezone.utc) - timedelta(days=age_days)
    await store.insert(
        ShortLink(
            long_url=f"https://example.com/{short_code}",
            short_code=short_code,
            created_at=created,
            updated_at=created,
            expires_at=created + timedelta(days=30),
        )
    )


class TestExpirySweeper:
    """Test expired record purging."""

    @pytest.mark.asyncio
    async def test_sweep_once(self, store, logger):
        """Test a sweep deletes expired records only."""
        await add_link(store, "old001", age_days=40)
        await add_link(store, "old002", age_days=31)
        await add_link(store, "new001", age_days=1)
        sweeper = ExpirySweeper(store, logger=logger)

        assert await sweeper.sweep_once() == 2

        await store.find_by_code("new001")
        with pytest.raises(ShortLinkNotFoundError):
            await store.find_by_code("old001")

    @pytest.mark.asyncio
    async def test_sweep_is_idempotent(self, store, logger):
        await add_link(store, "old001", age_days=40)
        sweeper = ExpirySweeper(store, logger=logger)

        assert await sweeper.sweep_once() == 1
        assert await sweeper.sweep_once() == 0

    @pytest.mark.asyncio
    async def test_sweep_at_given_time(self, store, logger):
        """Test the sweep uses the supplied reference time."""
        await add_link(store, "new001", age_days=1)
        sweeper = ExpirySweeper(store, logger=logger)

        later = datetime.now(timezone.utc) + timedelta(days=30)
        assert await sweeper.sweep_once(now=later) == 1

    @pytest.mark.asyncio
    async def test_periodic_sweeps(self, store, logger):
        """Test the background task keeps sweeping."""
        sweeper = ExpirySweeper(store, interval_seconds=0.01, logger=logger)
        await sweeper.start()

        await add_link(store, "old001", age_days=40)
        await asyncio.sleep(0.05)
        await add_link(store, "old002", age_days=40)
        await asyncio.sleep(0.05)

        await sweeper.stop()

        for code in ("old001", "old002"):
            with pytest.raises(ShortLinkNotFoundError):
                await store.find_by_code(code)

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_sweeping(self, logger):
        """Test a failed sweep is retried on the next tick."""
        calls = 0

        async def flaky_delete(now):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("db down")
            return 0

        store = AsyncMock()
        store.delete_expired_before.side_effect = flaky_delete
        sweeper = ExpirySweeper(store, interval_seconds=0.01, logger=logger)

        await sweeper.start()
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert store.delete_expired_before.await_count >= 2

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, store, logger):
        sweeper = ExpirySweeper(store, interval_seconds=60, logger=logger)

        await sweeper.start()
        task = sweeper._task
        await sweeper.start()

        assert sweeper._task is task
        await sweeper.stop()
        assert sweeper._task is None
