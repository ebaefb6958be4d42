import pytest
from datetime import datetime, timezone
from decimal import Decimal

from bson import ObjectId

from modules.orders.models.order_models import LineItem


@pytest.fixture
def paid_at():
    return datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_line():
    def _make(price="10.00", quantity=1, item_count=1, **overrides):
        fields = dict(
            product=ObjectId(),
            series="S1",
            item_count=item_count,
            quantity=quantity,
            cogs=Decimal("4.00"),
            price=price,
            vendor_margin=Decimal("0.20"),
        )
        fields.update(overrides)
        return LineItem(**fields)

    return _make
