# backend/modules/analytics/tests/conftest.py

import pytest

from bson import ObjectId

from core.cache import InMemoryCache
from modules.analytics.services.analytics_service import AnalyticsService
from modules.analytics.services.pipeline_runner import InMemoryPipelineRunner
from modules.analytics.tests.factories import SalesStore, utc


@pytest.fixture
def vendor_id() -> ObjectId:
    return ObjectId()


@pytest.fixture
def other_vendor_id() -> ObjectId:
    return ObjectId()


@pytest.fixture
def runner() -> InMemoryPipelineRunner:
    return InMemoryPipelineRunner()


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache(max_size=100, default_ttl=300)


@pytest.fixture
def store(runner) -> SalesStore:
    return SalesStore(runner)


@pytest.fixture
def service(runner, cache) -> AnalyticsService:
    return AnalyticsService(runner, cache, ttl_seconds=300, month_locale="tr")


@pytest.fixture
def two_line_order(store, vendor_id):
    """One order with two lines of the vendor, paid 2024-03-15."""
    widget = store.add_product(vendor_id, "Widget")
    gadget = store.add_product(vendor_id, "Gadget")
    order = store.add_order(
        utc(2024, 3, 15),
        [(widget, "100.00", 1, 1), (gadget, "50.00", 1, 1)],
    )
    return order, widget, gadget
