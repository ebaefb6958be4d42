"""Rate limiting for the vendor dashboard API.

Fixed-window counters keyed by scope, caller identity and window start.
Counters live in Redis so every worker shares them; an in-process
counter serves local runs and tests. Analytics endpoints are limited per
verified vendor, auth endpoints per client address.
"""

import threading
import time
import logging
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request
from redis import Redis
from redis.exceptions import RedisError

from core.auth import verify_token
from core.cache.redis_client import RedisClient
from core.config import get_settings
from core.exceptions import RateLimitError

logger = logging.getLogger(__name__)


def _window_key(scope: str, identifier: str, window: int, now: float) -> Tuple[str, int]:
    window_start = int(now // window) * window
    return f"rate_limit:{scope}:{identifier}:{window_start}", window_start


class RateLimiter:
    """In-process fixed-window request counter."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        # key -> (count, window end)
        self._counters: Dict[str, Tuple[int, int]] = {}
        self._lock = threading.Lock()

    def hit(self, scope: str, identifier: str, limit: int, window: int) -> Tuple[bool, int]:
        """
        Count one request.

        Returns:
            (allowed, remaining) for the current window
        """
        now = self._clock()
        key, window_start = _window_key(scope, identifier, window, now)
        with self._lock:
            self._purge_expired(now)
            count = self._counters.get(key, (0, 0))[0] + 1
            self._counters[key] = (count, window_start + window)
        return count <= limit, max(limit - count, 0)

    def _purge_expired(self, now: float) -> None:
        stale = [k for k, (_, expires_at) in self._counters.items() if expires_at <= now]
        for k in stale:
            del self._counters[k]

    def __len__(self) -> int:
        return len(self._counters)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()


class RedisRateLimiter:
    """
    Fixed-window counter shared through Redis.

    Each window key is incremented and given the window as expiry, so
    Redis drops finished windows on its own. A Redis outage lets requests
    through rather than failing them.
    """

    def __init__(self, client: Optional[Redis] = None, clock: Callable[[], float] = time.time):
        self.client = client if client is not None else RedisClient.get_client()
        self._clock = clock

    def hit(self, scope: str, identifier: str, limit: int, window: int) -> Tuple[bool, int]:
        key, _ = _window_key(scope, identifier, window, self._clock())
        try:
            pipe = self.client.pipeline()
            pipe.incr(key)
            pipe.expire(key, window)
            count = int(pipe.execute()[0])
        except RedisError as e:
            logger.warning(f"Rate limit check skipped for {scope}:{identifier}, Redis unavailable: {e}")
            return True, limit
        return count <= limit, max(limit - count, 0)


rate_limiter = RateLimiter()
_redis_limiter: Optional[RedisRateLimiter] = None


def get_rate_limiter():
    """Counter selected by ``rate_limit_storage``: ``redis`` or ``memory``."""
    global _redis_limiter
    if get_settings().rate_limit_storage == "memory":
        return rate_limiter
    if _redis_limiter is None:
        _redis_limiter = RedisRateLimiter()
    return _redis_limiter


def _client_identifier(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimit:
    """
    FastAPI dependency enforcing ``limit`` requests per ``window`` seconds.

    ``key_func`` picks the identity; by default the client address.
    """

    def __init__(
        self,
        scope: str,
        limit: int,
        window: int,
        key_func: Optional[Callable[[Request], str]] = None,
        limiter=None,
    ):
        self.scope = scope
        self.limit = limit
        self.window = window
        self.key_func = key_func or _client_identifier
        self.limiter = limiter

    def __call__(self, request: Request) -> None:
        if not get_settings().rate_limit_enabled:
            return

        identifier = self.key_func(request)
        limiter = self.limiter if self.limiter is not None else get_rate_limiter()
        allowed, _ = limiter.hit(self.scope, identifier, self.limit, self.window)
        if not allowed:
            logger.warning(f"Rate limit exceeded for {self.scope}:{identifier}")
            raise RateLimitError(retry_after=self.window)


def _vendor_or_client(request: Request) -> str:
    """Verified vendor id from the bearer token, else the client address."""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        token_data = verify_token(auth[len("Bearer "):])
        if token_data is not None:
            return f"vendor:{token_data.vendor_id}"
    return _client_identifier(request)


def analytics_rate_limit() -> RateLimit:
    settings = get_settings()
    return RateLimit(
        "analytics",
        settings.analytics_rate_limit,
        settings.analytics_rate_window_seconds,
        key_func=_vendor_or_client,
    )


def auth_rate_limit() -> RateLimit:
    settings = get_settings()
    return RateLimit("auth", settings.auth_rate_limit, settings.auth_rate_window_seconds)
