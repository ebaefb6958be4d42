"""
Redis Client with Connection Pool

Manages Redis connections and provides fail-open cache operations: a
Redis outage turns reads into misses and writes into no-ops.
"""

import logging
from typing import Any, Iterable, List, Optional

import redis
from redis import ConnectionPool, Redis
from redis.exceptions import RedisError

from core.config import get_settings

from .base import deserialize, serialize

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Redis client with connection pooling
    """

    _pool: Optional[ConnectionPool] = None
    _client: Optional[Redis] = None

    @classmethod
    def get_pool(cls) -> ConnectionPool:
        """Get or create Redis connection pool"""
        if cls._pool is None:
            settings = get_settings()

            pool_kwargs = {
                "host": settings.REDIS_HOST,
                "port": settings.REDIS_PORT,
                "db": settings.REDIS_DB,
                "password": settings.REDIS_PASSWORD,
                "decode_responses": False,
                "max_connections": 50,
                "socket_connect_timeout": settings.redis_connect_timeout_seconds,
                "socket_timeout": settings.redis_connect_timeout_seconds,
                "health_check_interval": 30,
            }

            if settings.redis_url:
                cls._pool = redis.ConnectionPool.from_url(
                    settings.redis_url,
                    **{
                        k: v
                        for k, v in pool_kwargs.items()
                        if k not in ["host", "port", "db", "password"]
                    },
                )
            else:
                cls._pool = redis.ConnectionPool(**pool_kwargs)

            logger.info(
                f"Redis connection pool created: {settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"
            )

        return cls._pool

    @classmethod
    def get_client(cls) -> Redis:
        """Get Redis client instance"""
        if cls._client is None:
            cls._client = Redis(connection_pool=cls.get_pool())
        return cls._client

    @classmethod
    def close(cls):
        """Close Redis connection pool"""
        if cls._pool:
            cls._pool.disconnect()
            cls._pool = None
            cls._client = None
            logger.info("Redis connection pool closed")


class RedisCache:
    """
    Key/value cache on Redis with JSON serialization.

    Every ``RedisError`` (connection refused, timeout, auth) is logged and
    swallowed here so that callers can keep serving uncached results.
    """

    def __init__(self, client: Optional[Redis] = None, prefix: str = ""):
        self.client = client if client is not None else RedisClient.get_client()
        self.prefix = prefix

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}:{key}" if self.prefix else key

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        try:
            value = self.client.get(self._make_key(key))
        except RedisError as e:
            logger.warning(f"Redis GET failed for {key}, continuing without cache: {e}")
            return None
        if value is None:
            logger.debug(f"Cache miss: {key}")
            return None
        logger.debug(f"Cache hit: {key}")
        return deserialize(value)

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """Set value in cache with an optional TTL"""
        try:
            payload = serialize(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Refusing to cache unserializable value for {key}: {e}")
            return False

        try:
            full_key = self._make_key(key)
            if ttl_seconds:
                return bool(self.client.setex(full_key, ttl_seconds, payload))
            return bool(self.client.set(full_key, payload))
        except RedisError as e:
            logger.warning(f"Redis SET failed for {key}, continuing without cache: {e}")
            return False

    def delete(self, keys: Iterable[str]) -> bool:
        """Delete keys; absent keys are not an error"""
        full_keys: List[str] = [self._make_key(k) for k in keys]
        if not full_keys:
            return True
        try:
            self.client.delete(*full_keys)
            return True
        except RedisError as e:
            logger.warning(f"Redis DELETE failed for {full_keys}: {e}")
            return False

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except RedisError:
            return False
