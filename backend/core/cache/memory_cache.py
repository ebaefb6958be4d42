"""
In-process cache backend.

LRU with per-entry expiry. Values are stored serialized, so a read
returns exactly what a Redis round trip would.
"""

import threading
import time
import logging
from collections import OrderedDict
from typing import Any, Callable, Iterable, Optional, Tuple

from .base import deserialize, serialize

logger = logging.getLogger(__name__)


class InMemoryCache:
    """Thread-safe LRU cache with TTL."""

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[bytes, float]]" = OrderedDict()
        self._lock = threading.Lock()
        self.stats = {"hits": 0, "misses": 0, "evictions": 0, "expirations": 0}

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.stats["misses"] += 1
                return None

            payload, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self.stats["expirations"] += 1
                self.stats["misses"] += 1
                return None

            self._entries.move_to_end(key)
            self.stats["hits"] += 1
        return deserialize(payload)

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        try:
            payload = serialize(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Refusing to cache unserializable value for {key}: {e}")
            return False

        ttl = ttl_seconds or self.default_ttl
        with self._lock:
            self._entries[key] = (payload, self._clock() + ttl)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
                self.stats["evictions"] += 1
        return True

    def delete(self, keys: Iterable[str]) -> bool:
        with self._lock:
            for key in keys:
                self._entries.pop(key, None)
        return True

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
