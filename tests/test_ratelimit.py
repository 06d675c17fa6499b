"""Tests for the rate limiter."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from tinylink.database.cache import RedisCache
from tinylink.exceptions import ConfigurationError
from tinylink.ratelimit import RateLimitDecision, RateLimiter


class FakeRedis:
    """Just enough of redis.asyncio for the limiter, on a controllable clock."""

    def __init__(self, clock):
        self.clock = clock
        self.data = {}
        self.failing_expires = 0

    def _alive(self, key):
        entry = self.data.get(key)
        if entry is not None and entry[1] is not None and entry[1] <= self.clock():
            del self.data[key]
            return None
        return entry

    async def exists(self, key):
        return 1 if self._alive(key) else 0

    async def setex(self, key, ttl, value):
        self.data[key] = (value, self.clock() + ttl)

    async def expire(self, key, ttl):
        if self.failing_expires:
            self.failing_expires -= 1
            raise RedisConnectionError("connection reset by peer")
        entry = self._alive(key)
        if entry is None:
            return False
        self.data[key] = (entry[0], self.clock() + ttl)
        return True

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, redis):
        self.redis = redis
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def incr(self, key):
        self.commands.append(("incr", key))
        return self

    def ttl(self, key):
        self.commands.append(("ttl", key))
        return self

    async def execute(self):
        results = []
        for command, key in self.commands:
            entry = self.redis._alive(key)
            if command == "incr":
                value = (int(entry[0]) if entry else 0) + 1
                self.redis.data[key] = (value, entry[1] if entry else None)
                results.append(value)
            elif entry is None:
                results.append(-2)
            elif entry[1] is None:
                results.append(-1)
            else:
                results.append(int(entry[1] - self.redis.clock()))
        return results


@pytest.fixture
def limiter(cache, logger):
    """Limiter allowing 3 requests per 60s, deny-listing for 300s."""
    return RateLimiter(cache, limit=3, window_seconds=60, blacklist_seconds=300, logger=logger)


class TestRateLimiter:
    """Test fixed-window limiting and deny-listing."""

    @pytest.mark.asyncio
    async def test_within_limit(self, limiter):
        """Test exactly `limit` requests are accepted."""
        for _ in range(3):
            assert await limiter.check("1.2.3.4") is RateLimitDecision.ALLOWED

    @pytest.mark.asyncio
    async def test_over_limit_then_blacklisted(self, limiter):
        """Test request limit+1 is rate limited and later ones are blacklisted."""
        for _ in range(3):
            await limiter.check("1.2.3.4")

        assert await limiter.check("1.2.3.4") is RateLimitDecision.RATE_LIMITED
        assert await limiter.check("1.2.3.4") is RateLimitDecision.BLACKLISTED

    @pytest.mark.asyncio
    async def test_identities_are_independent(self, limiter):
        for _ in range(4):
            await limiter.check("1.2.3.4")

        assert await limiter.check("5.6.7.8") is RateLimitDecision.ALLOWED

    @pytest.mark.asyncio
    async def test_window_resets(self, limiter, clock):
        """Test the counter starts over after the window."""
        for _ in range(3):
            await limiter.check("1.2.3.4")

        clock.advance(60)

        for _ in range(3):
            assert await limiter.check("1.2.3.4") is RateLimitDecision.ALLOWED

    @pytest.mark.asyncio
    async def test_trickle_does_not_extend_window(self, limiter, clock):
        """Test the window is anchored at the first request."""
        await limiter.check("1.2.3.4")
        clock.advance(50)
        await limiter.check("1.2.3.4")
        await limiter.check("1.2.3.4")
        clock.advance(10)

        assert await limiter.check("1.2.3.4") is RateLimitDecision.ALLOWED

    @pytest.mark.asyncio
    async def test_blacklist_outlives_window(self, limiter, clock):
        """Test a deny-listed client stays blocked after its window resets."""
        for _ in range(4):
            await limiter.check("1.2.3.4")

        clock.advance(120)
        assert await limiter.check("1.2.3.4") is RateLimitDecision.BLACKLISTED

        clock.advance(180)
        assert await limiter.check("1.2.3.4") is RateLimitDecision.ALLOWED

    @pytest.mark.asyncio
    async def test_blacklisted_requests_not_counted(self, limiter, cache):
        for _ in range(4):
            await limiter.check("1.2.3.4")
        count_before = await cache.get(cache.get_rate_key("1.2.3.4"))

        for _ in range(10):
            await limiter.check("1.2.3.4")

        assert await cache.get(cache.get_rate_key("1.2.3.4")) == count_before

    @pytest.mark.asyncio
    async def test_fails_open(self, logger):
        """Test requests are allowed when the cache cannot answer."""
        cache = MagicMock()
        cache.get_deny_key.return_value = "tinylink:deny:1.2.3.4"
        cache.get_rate_key.return_value = "tinylink:rate:1.2.3.4"
        cache.exists = AsyncMock(return_value=None)
        cache.increment_window = AsyncMock(return_value=None)

        limiter = RateLimiter(cache, limit=1, window_seconds=60, blacklist_seconds=60, logger=logger)

        for _ in range(5):
            assert await limiter.check("1.2.3.4") is RateLimitDecision.ALLOWED


    @pytest.mark.asyncio
    async def test_memory_cache_does_not_keep_stale_windows(self, limiter, cache, clock):
        """Test windows of clients that never return are purged."""
        for i in range(1000):
            await limiter.check(f"10.0.{i // 256}.{i % 256}")

        clock.advance(3600)
        await limiter.check("192.168.0.1")

        assert len(cache) == 1


class TestRateLimiterWithRedis:
    """Test the limiter against Redis semantics."""

    @pytest.mark.asyncio
    async def test_lost_expire_does_not_lock_client_out(self, clock, logger):
        """Test a counter whose EXPIRE failed still gets a window TTL."""
        fake = FakeRedis(clock)
        fake.failing_expires = 1
        cache = RedisCache(redis_url="redis://localhost:6379/0", logger=logger, client=fake)
        limiter = RateLimiter(cache, limit=3, window_seconds=60, blacklist_seconds=300, logger=logger)

        decisions = [await limiter.check("1.2.3.4") for _ in range(4)]
        assert decisions == [RateLimitDecision.ALLOWED] * 3 + [RateLimitDecision.RATE_LIMITED]

        clock.advance(300)

        assert await limiter.check("1.2.3.4") is RateLimitDecision.ALLOWED

    @pytest.mark.asyncio
    async def test_window_not_extended(self, clock, logger):
        fake = FakeRedis(clock)
        cache = RedisCache(redis_url="redis://localhost:6379/0", logger=logger, client=fake)
        limiter = RateLimiter(cache, limit=3, window_seconds=60, blacklist_seconds=300, logger=logger)

        await limiter.check("1.2.3.4")
        clock.advance(50)
        await limiter.check("1.2.3.4")
        await limiter.check("1.2.3.4")
        clock.advance(10)

        assert await limiter.check("1.2.3.4") is RateLimitDecision.ALLOWED


class TestRateLimiterConfiguration:
    """Test configuration checks."""

    def test_blacklist_shorter_than_window(self, cache):
        with pytest.raises(ConfigurationError, match="Blacklist duration"):
            RateLimiter(cache, limit=10, window_seconds=60, blacklist_seconds=30)

    def test_invalid_limit(self, cache):
        with pytest.raises(ConfigurationError):
            RateLimiter(cache, limit=0)

    def test_invalid_window(self, cache):
        with pytest.raises(ConfigurationError):
            RateLimiter(cache, window_seconds=0)
