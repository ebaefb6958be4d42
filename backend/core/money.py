"""
Decimal helpers for monetary arithmetic.

All currency math goes through ``decimal.Decimal`` so that sums of
price x quantity x item_count never pick up binary floating point drift.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from bson.decimal128 import Decimal128

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Normalize any numeric input to ``Decimal``.

    Floats go through ``str()`` so 0.1 becomes Decimal("0.1") rather than
    its binary expansion. ``None`` is treated as zero.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, bool):
        raise TypeError("Boolean is not a monetary value")
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Cannot convert {value!r} to a decimal amount") from e


def to_decimal128(value: Any) -> Decimal128:
    """Convert to the document store's decimal type."""
    return Decimal128(to_decimal(value))


def quantize_money(value: Any) -> Decimal:
    """Round to two decimal places (half up)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_fixed(value: Any) -> str:
    """Render as a fixed 2-decimal string, e.g. ``"150.00"``."""
    return f"{quantize_money(value):.2f}"


def money_sum(values: Iterable[Any]) -> Decimal:
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def money_multiply(*factors: Any) -> Decimal:
    result = Decimal("1")
    for factor in factors:
        result *= to_decimal(factor)
    return result


def money_average(values: Iterable[Any]) -> Optional[Decimal]:
    items = [to_decimal(v) for v in values]
    if not items:
        return None
    return money_sum(items) / len(items)


def money_min(values: Iterable[Any]) -> Optional[Decimal]:
    items = [to_decimal(v) for v in values]
    return min(items) if items else None


def money_max(values: Iterable[Any]) -> Optional[Decimal]:
    items = [to_decimal(v) for v in values]
    return max(items) if items else None


def line_revenue(price: Any, quantity: int, item_count: int) -> Decimal:
    """Revenue contributed by one line item."""
    return money_multiply(price, quantity, item_count)
