"""Pytest configuration and fixtures."""

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from config import Config
from tinylink.access_counter import AccessCountUpdater
from tinylink.common.logging_config import setup_logging
from tinylink.database.cache import MemoryCache
from tinylink.database.memory import InMemoryShortLinkStore
from tinylink.ratelimit import RateLimiter
from tinylink.service import ShortLinkService
from tinylink.shortcode import RandomCodeStrategy
from web_app import create_app


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(logger):
    """Create an isolated in-memory store."""
    return InMemoryShortLinkStore(logger=logger)


@pytest.fixture
def cache(clock, logger):
    """Create an in-process cache driven by the fake clock."""
    return MemoryCache(ttl_seconds=600, logger=logger, clock=clock)


@pytest.fixture
async def service(store, cache, logger) -> AsyncGenerator[ShortLinkService, None]:
    """Create service instance."""
    service = ShortLinkService(
        store=store,
        cache=cache,
        code_strategy=RandomCodeStrategy(length=6),
        access_counter=AccessCountUpdater(store, logger=logger),
        logger=logger,
    )

    yield service

    await service.close()


@pytest.fixture
def config():
    """Configuration with rate limiting off; tests that need it build their own."""
    return Config(
        storage_backend="memory",
        base_url="http://testserver",
        rate_limit_enabled=False,
    )


@pytest.fixture
def app(service, config):
    """Create test FastAPI app."""
    return create_app(service_instance=service, config=config)


@pytest.fixture
async def client(app):
    """Create test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def rate_limited_app(service, cache, logger):
    """App with a small request budget: 3 requests per 60s, blacklisted for 300s."""
    config = Config(
        storage_backend="memory",
        base_url="http://testserver",
        rate_limit_enabled=True,
        rate_limit_requests=3,
        rate_limit_window_seconds=60,
        blacklist_seconds=300,
    )
    limiter = RateLimiter(cache, limit=3, window_seconds=60, blacklist_seconds=300, logger=logger)
    return create_app(service_instance=service, config=config, rate_limiter=limiter)


@pytest.fixture
async def rate_limited_client(rate_limited_app):
    async with AsyncClient(transport=ASGITransport(app=rate_limited_app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def sample_urls():
    """Sample URLs for testing."""
    return [
        "https://example.com/test",
        "https://github.com/user/repo",
        "https://stackoverflow.com/questions/123456",
    ]
