"""
Tests for decimal money helpers.
"""

import pytest
from decimal import Decimal

from bson.decimal128 import Decimal128

from core.money import (
    line_revenue,
    money_average,
    money_max,
    money_min,
    money_multiply,
    money_sum,
    quantize_money,
    to_decimal,
    to_decimal128,
    to_fixed,
)


class TestToDecimal:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, Decimal("0")),
            (5, Decimal("5")),
            ("19.99", Decimal("19.99")),
            (0.1, Decimal("0.1")),
            (Decimal("2.50"), Decimal("2.50")),
            (Decimal128("7.25"), Decimal("7.25")),
        ],
    )
    def test_normalizes_inputs(self, value, expected):
        assert to_decimal(value) == expected

    def test_float_uses_shortest_repr(self):
        # Decimal(0.1) would carry the full binary expansion
        assert str(to_decimal(0.1)) == "0.1"

    def test_rejects_garbage(self):
        with pytest.raises(ValueError):
            to_decimal("abc")

    def test_rejects_booleans(self):
        with pytest.raises(TypeError):
            to_decimal(True)

    def test_decimal128_round_trip(self):
        assert to_decimal(to_decimal128("150.00")) == Decimal("150.00")


class TestFormatting:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (0, "0.00"),
            ("150", "150.00"),
            ("0.005", "0.01"),
            ("2.345", "2.35"),
            ("-1.005", "-1.01"),
            (Decimal("1234.5"), "1234.50"),
        ],
    )
    def test_to_fixed(self, value, expected):
        assert to_fixed(value) == expected

    def test_quantize_rounds_half_up(self):
        assert quantize_money("0.125") == Decimal("0.13")


class TestArithmetic:
    def test_float_drift_is_absent(self):
        assert money_sum([0.1, 0.2]) == Decimal("0.3")
        assert to_fixed(money_sum(["0.1"] * 10_000)) == "1000.00"

    def test_sum_is_order_independent(self):
        values = ["19.99", "0.01", "1234.56", "0.33", "7.77"]
        assert money_sum(values) == money_sum(reversed(values))

    def test_multiply(self):
        assert money_multiply("19.99", 3, 2) == Decimal("119.94")

    def test_line_revenue(self):
        assert line_revenue("100.00", 1, 1) == Decimal("100.00")
        assert line_revenue(Decimal128("2.50"), 4, 3) == Decimal("30.00")

    def test_average_min_max(self):
        values = ["100.00", "50.00", "25.50"]
        assert money_average(values) == Decimal("58.50")
        assert money_min(values) == Decimal("25.50")
        assert money_max(values) == Decimal("100.00")

    def test_empty_sequences(self):
        assert money_sum([]) == Decimal("0")
        assert money_average([]) is None
        assert money_min([]) is None
        assert money_max([]) is None
