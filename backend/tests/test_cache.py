"""
Tests for the cache backends.

The Redis backend must fail open: any Redis error turns a read into a
miss and a write or delete into a no-op that reports ``False``.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

from bson import ObjectId
from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError

from core.cache import CacheBackend, InMemoryCache, NullCache, RedisCache, get_cache, reset_cache
from core.cache.base import deserialize, serialize


class TestSerialization:
    def test_encodes_decimal_datetime_and_object_id(self):
        oid = ObjectId()
        moment = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

        payload = serialize({"amount": Decimal("150.00"), "at": moment, "id": oid})

        assert deserialize(payload) == {
            "amount": "150.00",
            "at": "2024-03-15T12:00:00+00:00",
            "id": str(oid),
        }

    def test_undecodable_payload_is_a_miss(self):
        assert deserialize(b"{not json") is None
        assert deserialize(None) is None

    def test_unknown_type_is_rejected(self):
        with pytest.raises(TypeError):
            serialize({"value": object()})


class TestRedisCache:
    """Redis operations against a mocked client"""

    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.fixture
    def redis_cache(self, client):
        return RedisCache(client=client)

    def test_get_hit(self, redis_cache, client):
        client.get.return_value = b'{"total": "10.00"}'
        assert redis_cache.get("monthly_sales:abc") == {"total": "10.00"}
        client.get.assert_called_once_with("monthly_sales:abc")

    def test_get_miss(self, redis_cache, client):
        client.get.return_value = None
        assert redis_cache.get("monthly_sales:abc") is None

    def test_set_with_ttl_uses_setex(self, redis_cache, client):
        client.setex.return_value = True

        assert redis_cache.set("vendor_stats:abc", {"a": 1}, 300) is True

        client.setex.assert_called_once_with("vendor_stats:abc", 300, b'{"a": 1}')
        client.set.assert_not_called()

    def test_set_without_ttl(self, redis_cache, client):
        client.set.return_value = True
        assert redis_cache.set("key", [1, 2]) is True
        client.set.assert_called_once_with("key", b"[1, 2]")

    def test_delete_many(self, redis_cache, client):
        assert redis_cache.delete(["a", "b", "c"]) is True
        client.delete.assert_called_once_with("a", "b", "c")

    def test_delete_nothing(self, redis_cache, client):
        assert redis_cache.delete([]) is True
        client.delete.assert_not_called()

    def test_prefix(self, client):
        cache = RedisCache(client=client, prefix="dashboard")
        client.get.return_value = None

        cache.get("monthly_sales:abc")
        cache.delete(["monthly_sales:abc"])

        client.get.assert_called_once_with("dashboard:monthly_sales:abc")
        client.delete.assert_called_once_with("dashboard:monthly_sales:abc")

    def test_unserializable_value_is_not_written(self, redis_cache, client):
        assert redis_cache.set("key", {"bad": object()}, 60) is False
        client.setex.assert_not_called()


class TestRedisFailOpen:
    """Connectivity failures never reach the caller"""

    @pytest.fixture
    def broken_client(self):
        client = MagicMock()
        error = RedisConnectionError("Connection refused")
        client.get.side_effect = error
        client.set.side_effect = error
        client.setex.side_effect = error
        client.delete.side_effect = error
        client.ping.side_effect = RedisTimeoutError("Timeout")
        return client

    def test_get_returns_none(self, broken_client):
        assert RedisCache(client=broken_client).get("key") is None

    def test_set_returns_false(self, broken_client):
        assert RedisCache(client=broken_client).set("key", {"a": 1}, 300) is False

    def test_delete_returns_false(self, broken_client):
        assert RedisCache(client=broken_client).delete(["a", "b"]) is False

    def test_ping_returns_false(self, broken_client):
        assert RedisCache(client=broken_client).ping() is False

    def test_failures_are_logged(self, broken_client, caplog):
        with caplog.at_level("WARNING", logger="core.cache.redis_client"):
            RedisCache(client=broken_client).get("monthly_sales:abc")
        assert "continuing without cache" in caplog.text


class TestInMemoryCache:
    @pytest.fixture
    def clock(self):
        return MagicMock(return_value=1000.0)

    @pytest.fixture
    def memory_cache(self, clock):
        return InMemoryCache(max_size=3, default_ttl=60, clock=clock)

    def test_round_trip_matches_json(self, memory_cache):
        memory_cache.set("key", {"amount": Decimal("1.50"), "count": 2})
        assert memory_cache.get("key") == {"amount": "1.50", "count": 2}

    def test_entries_expire(self, memory_cache, clock):
        memory_cache.set("key", 1, ttl_seconds=10)
        clock.return_value = 1009.0
        assert memory_cache.get("key") == 1

        clock.return_value = 1010.0
        assert memory_cache.get("key") is None
        assert memory_cache.stats["expirations"] == 1

    def test_least_recently_used_is_evicted(self, memory_cache):
        for key in ("a", "b", "c"):
            memory_cache.set(key, key)
        memory_cache.get("a")
        memory_cache.set("d", "d")

        assert "b" not in memory_cache
        assert "a" in memory_cache
        assert len(memory_cache) == 3
        assert memory_cache.stats["evictions"] == 1

    def test_delete_ignores_absent_keys(self, memory_cache):
        memory_cache.set("a", 1)
        assert memory_cache.delete(["a", "missing"]) is True
        assert memory_cache.get("a") is None


class TestCacheSelection:
    def teardown_method(self):
        reset_cache()

    def test_backends_satisfy_protocol(self):
        assert isinstance(NullCache(), CacheBackend)
        assert isinstance(InMemoryCache(), CacheBackend)
        assert isinstance(RedisCache(client=MagicMock()), CacheBackend)

    def test_null_cache_when_disabled(self):
        settings = MagicMock(cache_enabled=False)
        with patch("core.cache.get_settings", return_value=settings):
            reset_cache()
            cache = get_cache()
        assert isinstance(cache, NullCache)
        assert cache.get("anything") is None
        assert cache.set("anything", 1, 10) is False

    def test_redis_cache_when_enabled(self):
        settings = MagicMock(cache_enabled=True, cache_key_prefix="vd")
        with patch("core.cache.get_settings", return_value=settings), \
             patch("core.cache.redis_client.RedisClient.get_client", return_value=MagicMock()):
            reset_cache()
            cache = get_cache()
            assert get_cache() is cache
        assert isinstance(cache, RedisCache)
        assert cache.prefix == "vd"
