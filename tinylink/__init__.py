"""Core business logic for tinylink."""

from .access_counter import AccessCountUpdater
from .ratelimit import RateLimitDecision, RateLimiter
from .service import ShortLinkService
from .shortcode import EncodedIdStrategy, RandomCodeStrategy, create_code_strategy
from .sweeper import ExpirySweeper

__all__ = [
    "AccessCountUpdater",
    "ExpirySweeper",
    "RateLimiter",
    "RateLimitDecision",
    "ShortLinkService",
    "RandomCodeStrategy",
    "EncodedIdStrategy",
    "create_code_strategy",
]
