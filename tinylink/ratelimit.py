"""Fixed-window rate limiter with a temporary deny-list.

Per client identity the limiter moves between three states:

- Clear: no counter key.
- Counting: counter key present, count <= limit. The window TTL is set by
  the increment whenever the counter has none, and never extended, so a
  steady trickle cannot stretch the window and a lost EXPIRE cannot leave
  the counter without one.
- Blocked: deny flag present. The flag is checked before the counter, so a
  blocked client never touches the counter and stays blocked until the flag
  expires, whatever the counter does in the meantime.

State lives in the cache backend (Redis in production), never in the store.
"""

import enum
import logging
from typing import Optional

from .exceptions import ConfigurationError


class RateLimitDecision(enum.Enum):
    ALLOWED = "allowed"
    RATE_LIMITED = "rate_limited"
    BLACKLISTED = "blacklisted"


class RateLimiter:
    """Counts requests per identity and deny-lists abusive clients."""

    def __init__(
        self,
        cache,
        limit: int = 100,
        window_seconds: int = 60,
        blacklist_seconds: int = 600,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize rate limiter.

        Args:
            cache: Cache backend providing increment_window/exists/set
            limit: Requests accepted per window
            window_seconds: Counting window length
            blacklist_seconds: Deny-list duration, at least one window
            logger: Optional logger
        """
        if limit < 1:
            raise ConfigurationError("Rate limit must be at least 1 request")
        if window_seconds < 1:
            raise ConfigurationError("Rate limit window must be at least 1 second")
        if blacklist_seconds < window_seconds:
            raise ConfigurationError(
                f"Blacklist duration ({blacklist_seconds}s) must not be shorter "
                f"than the rate limit window ({window_seconds}s)"
            )

        self.cache = cache
        self.limit = limit
        self.window_seconds = window_seconds
        self.blacklist_seconds = blacklist_seconds
        self.logger = logger or logging.getLogger(__name__)

    async def check(self, identity: str) -> RateLimitDecision:
        """Record one request from ``identity`` and decide whether to serve it.

        If the cache cannot answer, the request is allowed.
        """
        deny_key = self.cache.get_deny_key(identity)
        if await self.cache.exists(deny_key):
            return RateLimitDecision.BLACKLISTED

        rate_key = self.cache.get_rate_key(identity)
        count = await self.cache.increment_window(rate_key, self.window_seconds)
        if count is None:
            self.logger.warning(f"Rate limiter unavailable, allowing request from {identity}")
            return RateLimitDecision.ALLOWED

        if count > self.limit:
            await self.cache.set(deny_key, "1", ttl=self.blacklist_seconds)
            self.logger.warning(
                f"Client {identity} exceeded {self.limit} requests per {self.window_seconds}s, "
                f"blacklisted for {self.blacklist_seconds}s"
            )
            return RateLimitDecision.RATE_LIMITED

        return RateLimitDecision.ALLOWED
