"""Storage layer for tinylink."""

from .base import ShortLinkStoreBase
from .cache import MemoryCache, RedisCache
from .memory import InMemoryShortLinkStore
from .models import ShortLink
from .postgres import PostgresShortLinkStore

__all__ = [
    "ShortLinkStoreBase",
    "InMemoryShortLinkStore",
    "PostgresShortLinkStore",
    "RedisCache",
    "MemoryCache",
    "ShortLink",
]
