"""Middleware for tinylink web app."""

from .logging import LoggingMiddleware
from .ratelimit import RateLimitMiddleware

__all__ = ["LoggingMiddleware", "RateLimitMiddleware"]
