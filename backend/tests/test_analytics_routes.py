"""
API tests for the vendor analytics endpoints.

Authentication is replaced through ``app.dependency_overrides``; the
service is either a mock (to check wiring and access control) or a real
``AnalyticsService`` over the in-memory runner.
"""

import pytest
from unittest.mock import MagicMock

from bson import ObjectId
from fastapi.testclient import TestClient

from app.main import app
from core.auth import CurrentUser, get_current_user
from core.cache import InMemoryCache
from core.database import get_db
from modules.analytics.exceptions import (
    AnalyticsQueryError,
    InvalidDateRangeError,
    InvalidVendorIdError,
)
from modules.analytics.routers.analytics_router import get_analytics_service
from modules.analytics.services.analytics_service import AnalyticsService
from modules.analytics.services.pipeline_runner import InMemoryPipelineRunner
from modules.analytics.tests.factories import SalesStore, utc

VENDOR_A = str(ObjectId())
VENDOR_B = str(ObjectId())
ADMIN = str(ObjectId())


def as_user(user_id: str, role: str = "vendor"):
    def override():
        return CurrentUser(id=user_id, email=f"{user_id}@example.com", role=role)

    return override


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = lambda: MagicMock()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mock_service():
    service = MagicMock(spec=AnalyticsService)
    service.get_monthly_sales.return_value = []
    service.get_product_sales.return_value = []
    app.dependency_overrides[get_analytics_service] = lambda: service
    return service


@pytest.fixture
def real_service():
    runner = InMemoryPipelineRunner()
    store = SalesStore(runner)
    vendor = ObjectId(VENDOR_A)
    widget = store.add_product(vendor, "Widget")
    gadget = store.add_product(vendor, "Gadget")
    store.add_order(utc(2024, 3, 15), [(widget, "100.00", 1, 1), (gadget, "50.00", 1, 1)])

    service = AnalyticsService(runner, InMemoryCache(), month_locale="tr")
    app.dependency_overrides[get_analytics_service] = lambda: service
    return service


class TestAccessControl:
    def test_requires_authentication(self, client, mock_service):
        app.dependency_overrides.pop(get_current_user, None)
        response = client.get("/api/analytics/monthly-sales")

        assert response.status_code == 401
        assert response.json()["detail"] == "Authentication required"
        mock_service.get_monthly_sales.assert_not_called()

    def test_rejects_malformed_token(self, client, mock_service):
        response = client.get(
            "/api/analytics/monthly-sales",
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401

    def test_defaults_to_own_vendor(self, client, mock_service):
        app.dependency_overrides[get_current_user] = as_user(VENDOR_A)

        response = client.get("/api/analytics/monthly-sales")

        assert response.status_code == 200
        mock_service.get_monthly_sales.assert_called_once_with(VENDOR_A)

    def test_vendor_may_name_itself(self, client, mock_service):
        app.dependency_overrides[get_current_user] = as_user(VENDOR_A)

        response = client.get(f"/api/analytics/product-sales/{VENDOR_A}")

        assert response.status_code == 200
        mock_service.get_product_sales.assert_called_once_with(VENDOR_A)

    @pytest.mark.parametrize(
        "path",
        [
            "/api/analytics/monthly-sales/{id}",
            "/api/analytics/product-sales/{id}",
            "/api/analytics/vendor-stats/{id}",
            "/api/analytics/detailed/{id}",
            "/api/analytics/validate/{id}",
            "/api/analytics/date-range/{id}",
        ],
    )
    def test_vendor_cannot_read_other_vendor(self, client, mock_service, path):
        app.dependency_overrides[get_current_user] = as_user(VENDOR_A)

        response = client.get(path.format(id=VENDOR_B))

        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied"
        assert mock_service.method_calls == []

    def test_admin_may_read_any_vendor(self, client, mock_service):
        app.dependency_overrides[get_current_user] = as_user(ADMIN, role="admin")

        response = client.get(f"/api/analytics/monthly-sales/{VENDOR_B}")

        assert response.status_code == 200
        mock_service.get_monthly_sales.assert_called_once_with(VENDOR_B)

    def test_cache_clear_is_admin_only(self, client, mock_service):
        app.dependency_overrides[get_current_user] = as_user(VENDOR_A)

        response = client.delete(f"/api/analytics/cache/{VENDOR_A}")

        assert response.status_code == 403
        mock_service.clear_cache.assert_not_called()

    def test_admin_clears_cache(self, client, mock_service):
        app.dependency_overrides[get_current_user] = as_user(ADMIN, role="admin")

        response = client.delete(f"/api/analytics/cache/{VENDOR_B}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Cache cleared successfully"}
        mock_service.clear_cache.assert_called_once_with(VENDOR_B)


class TestResponses:
    @pytest.fixture(autouse=True)
    def vendor_a(self):
        app.dependency_overrides[get_current_user] = as_user(VENDOR_A)

    def test_monthly_sales(self, client, real_service):
        response = client.get("/api/analytics/monthly-sales")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": [
                {
                    "month": "Mart",
                    "year": 2024,
                    "totalSales": "150.00",
                    "totalOrders": 2,
                    "totalQuantity": 2,
                }
            ],
        }

    def test_product_sales(self, client, real_service):
        data = client.get("/api/analytics/product-sales").json()["data"]

        assert [p["productName"] for p in data] == ["Widget", "Gadget"]
        assert set(data[0]) == {"productId", "productName", "totalQuantity", "totalSales", "totalOrders"}

    def test_vendor_stats(self, client, real_service):
        data = client.get("/api/analytics/vendor-stats").json()["data"]

        assert data["totalProducts"] == 2
        assert data["totalRevenue"] == "150.00"
        assert data["totalOrders"] == 2
        assert data["topProduct"]["productName"] == "Widget"
        assert "lastUpdated" in data

    def test_detailed(self, client, real_service):
        body = client.get("/api/analytics/detailed").json()

        assert body["success"] is True
        assert body["vendorId"] == VENDOR_A
        assert "timestamp" in body
        assert body["data"]["uniqueOrderCount"] == 1
        assert body["data"]["totalOrders"] == 2
        assert body["data"]["dateRange"] == {"days": 0}

    def test_validate(self, client, real_service):
        body = client.get("/api/analytics/validate").json()

        assert body["vendorId"] == VENDOR_A
        assert body["validation"]["validation"]["revenueMatch"] is True
        assert body["validation"]["validation"]["ordersMatch"] is False
        assert body["validation"]["validation"]["discrepancies"] == {"revenue": "0.00", "orders": -1}

    def test_date_range(self, client, real_service):
        response = client.get(
            "/api/analytics/date-range",
            params={"startDate": "2024-03-01", "endDate": "2024-03-31"},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["dateRange"] == {"startDate": "2024-03-01", "endDate": "2024-03-31"}
        assert body["data"]["dateRange"] == {"start": "2024-03-01", "end": "2024-03-31"}
        assert body["data"]["dailyBreakdown"] == [
            {"date": "2024-03-15", "revenue": "150.00", "orders": 2, "quantity": 2}
        ]
        assert body["data"]["summary"]["daysWithSales"] == 1

    def test_date_range_without_bounds(self, client, real_service):
        body = client.get("/api/analytics/date-range").json()

        assert body["dateRange"] == {"startDate": None, "endDate": None}
        assert body["data"]["dateRange"] == {"start": "all time", "end": "current"}


class TestErrorMapping:
    @pytest.fixture(autouse=True)
    def admin(self):
        app.dependency_overrides[get_current_user] = as_user(ADMIN, role="admin")

    def test_storage_failure_is_500(self, client, mock_service):
        mock_service.get_monthly_sales.side_effect = AnalyticsQueryError(
            "monthly_sales", VENDOR_A, "No servers available"
        )

        response = client.get(f"/api/analytics/monthly-sales/{VENDOR_A}")

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to fetch monthly sales"
        assert response.json()["error_code"] == "ANALYTICS_QUERY_ERROR"

    def test_invalid_vendor_id_is_400(self, client, mock_service):
        mock_service.get_vendor_stats.side_effect = InvalidVendorIdError("nope")

        response = client.get("/api/analytics/vendor-stats/nope")

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_VENDOR_ID"

    def test_invalid_date_range_is_400(self, client, mock_service):
        mock_service.get_date_range_analytics.side_effect = InvalidDateRangeError("startDate is after endDate")

        response = client.get(
            f"/api/analytics/date-range/{VENDOR_A}",
            params={"startDate": "2024-02-01", "endDate": "2024-01-01"},
        )

        assert response.status_code == 400
        assert "startDate is after endDate" in response.json()["detail"]
        mock_service.get_date_range_analytics.assert_called_once_with(VENDOR_A, "2024-02-01", "2024-01-01")


class TestRateLimit:
    def test_analytics_limit(self, client, mock_service):
        app.dependency_overrides[get_current_user] = as_user(VENDOR_A)

        statuses = [client.get("/api/analytics/monthly-sales").status_code for _ in range(31)]

        assert statuses[:30] == [200] * 30
        assert statuses[30] == 429

    def test_unverified_tokens_share_the_caller_limit(self, client, mock_service):
        app.dependency_overrides[get_current_user] = as_user(VENDOR_A)

        statuses = [
            client.get(
                "/api/analytics/monthly-sales",
                headers={"Authorization": f"Bearer bogus-token-{i}"},
            ).status_code
            for i in range(31)
        ]

        assert statuses[30] == 429
