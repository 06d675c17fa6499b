#!/usr/bin/env python3
"""
Main entry point for the tinylink service.

Concurrency: each uvicorn worker runs one event loop serving many connections
(FastAPI + asyncpg pool + redis.asyncio). The expiry sweeper and the
access-count worker are background tasks owned by the lifespan. With
WORKERS > 1 uvicorn spawns that many processes, each building its own app
through server_app(); this requires the postgres backend and Redis, since the
in-memory store and cache are per process.

Usage:
    python app.py

Environment variables:
    STORAGE_BACKEND - 'postgres' (default) or 'memory'
    DATABASE_URL - PostgreSQL connection URL
    DATABASE_CREATE_TABLES - Set to 'true' to create tables on startup
    REDIS_URL - Redis connection URL (optional)
    CODE_STRATEGY - 'random' (default) or 'encoded' (needs CODE_SALT)
    RETENTION_DAYS - Lifetime of a short link
    RATE_LIMIT_ENABLED - Per-client rate limiting on every route
    BASE_URL - Base URL for short links
    PORT - Port to listen on
    WORKERS - Number of uvicorn worker processes (default 1)
    LOG_LEVEL - Logging level
"""

import logging
import signal
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Tuple

import uvicorn
from fastapi import FastAPI

from config import Config, load_config
from tinylink.access_counter import AccessCountUpdater
from tinylink.common.logging_config import setup_logging
from tinylink.database.cache import MemoryCache, RedisCache
from tinylink.database.memory import InMemoryShortLinkStore
from tinylink.database.postgres import PostgresShortLinkStore
from tinylink.ratelimit import RateLimiter
from tinylink.service import ShortLinkService
from tinylink.shortcode import create_code_strategy
from tinylink.sweeper import ExpirySweeper
from web_app import create_app


@dataclass
class Components:
    """Everything the service needs at runtime, wired from one Config."""

    service: ShortLinkService
    sweeper: ExpirySweeper
    rate_limiter: Optional[RateLimiter]


async def build_components(config: Config, logger: logging.Logger) -> Components:
    """Create store, cache, workers and service from configuration."""
    if config.storage_backend == "memory":
        logger.info("Using in-memory store")
        store = InMemoryShortLinkStore(logger=logger)
    else:
        logger.info("Using PostgreSQL store")
        store = PostgresShortLinkStore(
            db_config=config.database_url,
            pool_max_size=config.database_pool_size,
            create_tables=config.database_create_tables,
            logger=logger,
        )

    if config.redis_url:
        logger.info("Connecting to Redis")
        cache = RedisCache(
            redis_url=config.redis_url,
            ttl_seconds=config.cache_ttl_seconds,
            logger=logger,
        )
    else:
        logger.info("REDIS_URL not set, using in-process cache")
        cache = MemoryCache(ttl_seconds=config.cache_ttl_seconds, logger=logger)
    await cache.connect()

    access_counter = AccessCountUpdater(
        store,
        max_queue_size=config.access_queue_size,
        logger=logger,
    )

    service = ShortLinkService(
        store=store,
        cache=cache,
        code_strategy=create_code_strategy(
            config.code_strategy,
            length=config.short_code_length,
            salt=config.code_salt,
        ),
        access_counter=access_counter,
        logger=logger,
        retention=timedelta(days=config.retention_days),
        cache_ttl_seconds=config.cache_ttl_seconds,
        max_collision_retries=config.max_collision_retries,
    )

    rate_limiter = None
    if config.rate_limit_enabled:
        rate_limiter = RateLimiter(
            cache,
            limit=config.rate_limit_requests,
            window_seconds=config.rate_limit_window_seconds,
            blacklist_seconds=config.blacklist_seconds,
            logger=logger,
        )

    sweeper = ExpirySweeper(store, interval_seconds=config.sweep_interval_seconds, logger=logger)

    return Components(service=service, sweeper=sweeper, rate_limiter=rate_limiter)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    config = app.state.config
    logger = app.state.logger

    logger.info("Starting tinylink service...")

    components = await build_components(config, logger)
    await components.service.access_counter.start()
    await components.sweeper.start()

    app.state.service = components.service
    app.state.rate_limiter = components.rate_limiter

    logger.info("Service started successfully")

    yield

    logger.info("Shutting down tinylink service...")

    await components.sweeper.stop()
    await components.service.close()

    logger.info("Service stopped")


def build_app(config: Config, logger: logging.Logger) -> FastAPI:
    """Create the app with service instances deferred to the lifespan."""
    app = create_app(service_instance=None, config=config)
    app.state.logger = logger
    app.router.lifespan_context = lifespan
    return app


def _configure() -> Tuple[Config, logging.Logger]:
    config = load_config()
    logger = setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_format=config.log_json,
    )
    return config, logger


def server_app() -> FastAPI:
    """App factory for uvicorn worker processes."""
    config, logger = _configure()
    return build_app(config, logger)


def main():
    """Main entry point."""
    config, logger = _configure()

    logger.info("tinylink URL shortener")
    logger.info(f"Configuration: {config.model_dump(exclude={'database_url', 'redis_url', 'code_salt'})}")

    if config.workers > 1:
        # uvicorn only forks workers when given an import string
        logger.info(f"Starting {config.workers} workers on {config.host}:{config.port}")
        uvicorn.run(
            "app:server_app",
            factory=True,
            host=config.host,
            port=config.port,
            workers=config.workers,
            log_level=config.log_level.lower(),
            access_log=False,
        )
        return

    uvicorn_config = uvicorn.Config(
        build_app(config, logger),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        access_log=False,
    )

    server = uvicorn.Server(uvicorn_config)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        server.should_exit = True

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        logger.info(f"Starting server on {config.host}:{config.port}")
        server.run()
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
