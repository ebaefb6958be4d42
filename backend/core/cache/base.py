"""
Cache backend contract and shared serialization.

A cache backend is best effort: ``get`` returns ``None`` on a miss or on
any backend failure, ``set``/``delete`` report success as a bool and
never raise.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional, Protocol, runtime_checkable

from bson import ObjectId

logger = logging.getLogger(__name__)


@runtime_checkable
class CacheBackend(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool: ...

    def delete(self, keys: Iterable[str]) -> bool: ...


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, ObjectId):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize(value: Any) -> bytes:
    """Serialize value for storage"""
    return json.dumps(value, default=_json_default).encode("utf-8")


def deserialize(data: Optional[bytes]) -> Optional[Any]:
    """Deserialize value from storage; undecodable payloads count as a miss."""
    if data is None:
        return None
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error(f"Failed to deserialize cached value: {e}")
        return None


class NullCache:
    """Backend used when caching is disabled: every read misses."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        return False

    def delete(self, keys: Iterable[str]) -> bool:
        return True
