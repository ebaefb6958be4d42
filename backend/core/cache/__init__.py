"""
Caching Package

Best-effort key/value caching for analytics results.
"""

import logging
from typing import Optional

from core.config import get_settings

from .base import CacheBackend, NullCache
from .memory_cache import InMemoryCache
from .redis_client import RedisCache, RedisClient

logger = logging.getLogger(__name__)

_cache: Optional[CacheBackend] = None


def get_cache() -> CacheBackend:
    """Return the process-wide cache backend chosen from settings."""
    global _cache
    if _cache is None:
        settings = get_settings()
        if not settings.cache_enabled:
            logger.info("Caching disabled by configuration")
            _cache = NullCache()
        else:
            _cache = RedisCache(prefix=settings.cache_key_prefix)
    return _cache


def reset_cache() -> None:
    """Drop the process-wide backend (used on shutdown and in tests)."""
    global _cache
    _cache = None
    RedisClient.close()


__all__ = [
    "CacheBackend",
    "InMemoryCache",
    "NullCache",
    "RedisCache",
    "RedisClient",
    "get_cache",
    "reset_cache",
]
