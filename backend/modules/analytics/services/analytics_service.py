# backend/modules/analytics/services/analytics_service.py

"""
Vendor sales analytics.

Every report is scoped to the line items whose product belongs to the
vendor. Monthly sales, product sales and vendor stats are served through
the cache; detailed, validation and date-range reports are always live.

Note that ``totalOrders`` in the monthly and product views counts
matching line-item rows, while ``uniqueOrderCount`` in the detailed view
counts distinct orders. Consumers depend on both.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional, Tuple, TypeVar, Union

from bson import ObjectId
from pydantic import TypeAdapter, ValidationError
from pymongo.errors import PyMongoError

from core.cache import CacheBackend
from core.database import ORDERS_COLLECTION, PRODUCTS_COLLECTION
from core.money import money_sum, to_decimal, to_fixed

from ..constants import (
    CACHE_TTL_SECONDS,
    ISO_DATE_FORMAT,
    MONTH_NAMES,
    MONTHLY_SALES_CACHE_KEY,
    OPEN_END_LABEL,
    OPEN_START_LABEL,
    PRODUCT_SALES_CACHE_KEY,
    UNKNOWN_MONTH,
    VENDOR_CACHE_KEYS,
    VENDOR_STATS_CACHE_KEY,
)
from ..exceptions import AnalyticsQueryError, InvalidDateRangeError, InvalidVendorIdError
from ..pipelines import (
    Pipeline,
    daily_breakdown_pipeline,
    detailed_analytics_pipeline,
    monthly_sales_pipeline,
    payment_window,
    product_sales_pipeline,
)
from ..schemas.analytics_schemas import (
    CachedFigures,
    DailySales,
    DataValidationReport,
    DateRangeAnalytics,
    DateRangeEcho,
    DateRangeSummary,
    DetailedAnalytics,
    Discrepancies,
    MonthlyAggregation,
    MonthlySales,
    ProductSales,
    SaleSpan,
    ValidationChecks,
    VendorStats,
)
from .pipeline_runner import PipelineRunner

logger = logging.getLogger(__name__)

T = TypeVar("T")

_monthly_adapter = TypeAdapter(List[MonthlySales])
_product_adapter = TypeAdapter(List[ProductSales])
_stats_adapter = TypeAdapter(VendorStats)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def month_name(month: Any, locale: str = "tr") -> str:
    """Calendar name of a 1-based month number, ``Unknown`` outside 1..12."""
    names = MONTH_NAMES.get(locale, MONTH_NAMES["tr"])
    if isinstance(month, int) and not isinstance(month, bool) and 1 <= month <= 12:
        return names[month - 1]
    return UNKNOWN_MONTH


def parse_date_bound(value: Optional[str], field: str) -> Optional[datetime]:
    """Parse a ``YYYY-MM-DD`` bound as midnight UTC."""
    if not value:
        return None
    try:
        parsed = datetime.strptime(value.strip(), ISO_DATE_FORMAT)
    except ValueError:
        raise InvalidDateRangeError(f"{field} must be an ISO date (YYYY-MM-DD), got {value!r}")
    return parsed.replace(tzinfo=timezone.utc)


class AnalyticsService:
    """Computes vendor sales reports over the order store."""

    def __init__(
        self,
        runner: PipelineRunner,
        cache: CacheBackend,
        ttl_seconds: int = CACHE_TTL_SECONDS,
        month_locale: str = "tr",
    ):
        self.runner = runner
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.month_locale = month_locale

    # Cached reports

    def get_monthly_sales(self, vendor_id: Union[str, ObjectId]) -> List[MonthlySales]:
        """Sales per calendar month, newest month first."""
        oid = self._vendor_oid(vendor_id)
        key = MONTHLY_SALES_CACHE_KEY.format(vendor_id=oid)
        return self._cached(key, _monthly_adapter, lambda: self._compute_monthly_sales(oid))

    def get_product_sales(self, vendor_id: Union[str, ObjectId]) -> List[ProductSales]:
        """Sales per product, highest revenue first."""
        oid = self._vendor_oid(vendor_id)
        key = PRODUCT_SALES_CACHE_KEY.format(vendor_id=oid)
        return self._cached(key, _product_adapter, lambda: self._compute_product_sales(oid))

    def get_vendor_stats(self, vendor_id: Union[str, ObjectId]) -> VendorStats:
        """
        Headline numbers composed from the monthly and product reports.

        Revenue and order totals are summed from ``get_monthly_sales``,
        which may itself be served from the cache.
        """
        oid = self._vendor_oid(vendor_id)
        key = VENDOR_STATS_CACHE_KEY.format(vendor_id=oid)
        return self._cached(key, _stats_adapter, lambda: self._compute_vendor_stats(oid))

    def clear_cache(self, vendor_id: Union[str, ObjectId]) -> None:
        """Drop every cached report of the vendor; absent keys are fine."""
        oid = self._vendor_oid(vendor_id)
        keys = [template.format(vendor_id=oid) for template in VENDOR_CACHE_KEYS]
        self.cache.delete(keys)
        logger.info(f"Cleared analytics cache for vendor {oid}")

    # Live reports

    def get_detailed_analytics(self, vendor_id: Union[str, ObjectId]) -> DetailedAnalytics:
        """Single aggregation pass over all matching line items, never cached."""
        oid = self._vendor_oid(vendor_id)
        rows = self._aggregate("detailed_analytics", oid, detailed_analytics_pipeline(oid))
        catalog_size = self._count_products("detailed_analytics", oid)

        if not rows:
            return DetailedAnalytics(
                total_revenue=to_fixed(0),
                total_orders=0,
                unique_order_count=0,
                total_quantity_sold=0,
                average_order_value=to_fixed(0),
                min_order_value=to_fixed(0),
                max_order_value=to_fixed(0),
                first_sale_date=None,
                last_sale_date=None,
                unique_products_sold=0,
                total_products_in_catalog=catalog_size,
                date_range=SaleSpan(days=0),
            )

        row = rows[0]
        first_sale = row.get("firstOrderDate")
        last_sale = row.get("lastOrderDate")
        span_days = 0
        if first_sale is not None and last_sale is not None:
            # timedelta.days floors to whole days
            span_days = (last_sale - first_sale).days

        return DetailedAnalytics(
            total_revenue=to_fixed(row.get("totalRevenue")),
            total_orders=int(row.get("totalOrders") or 0),
            unique_order_count=len(row.get("uniqueOrders") or []),
            total_quantity_sold=int(row.get("totalQuantity") or 0),
            average_order_value=to_fixed(row.get("avgOrderValue")),
            min_order_value=to_fixed(row.get("minOrderValue")),
            max_order_value=to_fixed(row.get("maxOrderValue")),
            first_sale_date=first_sale,
            last_sale_date=last_sale,
            unique_products_sold=len(row.get("uniqueProducts") or []),
            total_products_in_catalog=catalog_size,
            date_range=SaleSpan(days=span_days),
        )

    def validate_vendor_data(self, vendor_id: Union[str, ObjectId]) -> DataValidationReport:
        """
        Reconcile the live detailed figures against the cache-eligible ones.

        ``ordersMatch`` compares distinct orders with the monthly row
        count, so it is false whenever an order has more than one line of
        the vendor. A mismatch is reported, never raised.
        """
        oid = self._vendor_oid(vendor_id)
        direct = self.get_detailed_analytics(oid)
        stats = self.get_vendor_stats(oid)
        monthly = self.get_monthly_sales(oid)

        monthly_revenue = money_sum(month.total_sales for month in monthly)
        monthly_orders = sum(month.total_orders for month in monthly)

        revenue_delta = to_decimal(direct.total_revenue) - to_decimal(stats.total_revenue)
        orders_delta = direct.unique_order_count - monthly_orders

        report = DataValidationReport(
            direct_calculation=direct,
            cached_data=CachedFigures(
                total_revenue=stats.total_revenue,
                total_orders=stats.total_orders,
                total_products=stats.total_products,
            ),
            monthly_aggregation=MonthlyAggregation(
                total_revenue=to_fixed(monthly_revenue),
                total_orders=monthly_orders,
                month_count=len(monthly),
            ),
            validation=ValidationChecks(
                revenue_match=direct.total_revenue == stats.total_revenue,
                orders_match=direct.unique_order_count == monthly_orders,
                discrepancies=Discrepancies(revenue=to_fixed(revenue_delta), orders=orders_delta),
            ),
        )

        if not (report.validation.revenue_match and report.validation.orders_match):
            logger.info(
                f"Analytics reconciliation mismatch for vendor {oid}: "
                f"revenue delta {report.validation.discrepancies.revenue}, "
                f"orders delta {orders_delta}"
            )
        return report

    def get_date_range_analytics(
        self,
        vendor_id: Union[str, ObjectId],
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> DateRangeAnalytics:
        """
        Daily breakdown inside an optional inclusive date range.

        Both bounds are ``YYYY-MM-DD`` calendar dates in UTC; ``end_date``
        covers the whole day. A missing bound means all time / up to now.
        """
        oid = self._vendor_oid(vendor_id)
        start, end_exclusive = self._date_window(start_date, end_date)

        pipeline = daily_breakdown_pipeline(oid, payment_window(start, end_exclusive))
        rows = self._aggregate("date_range_analytics", oid, pipeline)

        daily: List[DailySales] = []
        for row in rows:
            day = row["_id"]
            if not all(isinstance(day.get(part), int) for part in ("year", "month", "day")):
                logger.warning(f"Skipping sales without payment date for vendor {oid}")
                continue
            daily.append(
                DailySales(
                    date=f"{day['year']:04d}-{day['month']:02d}-{day['day']:02d}",
                    revenue=to_fixed(row.get("dailyRevenue")),
                    orders=int(row.get("dailyOrders") or 0),
                    quantity=int(row.get("dailyQuantity") or 0),
                )
            )
        daily.sort(key=lambda entry: entry.date)

        summary = DateRangeSummary(
            total_revenue=to_fixed(money_sum(entry.revenue for entry in daily)),
            total_orders=sum(entry.orders for entry in daily),
            total_quantity=sum(entry.quantity for entry in daily),
            days_with_sales=len(daily),
        )

        return DateRangeAnalytics(
            date_range=DateRangeEcho(
                start=start_date or OPEN_START_LABEL,
                end=end_date or OPEN_END_LABEL,
            ),
            summary=summary,
            daily_breakdown=daily,
        )

    # Computation

    def _compute_monthly_sales(self, oid: ObjectId) -> List[MonthlySales]:
        rows = self._aggregate("monthly_sales", oid, monthly_sales_pipeline(oid))
        return [
            MonthlySales(
                month=month_name(row["_id"].get("month"), self.month_locale),
                year=int(row["_id"].get("year") or 0),
                total_sales=to_fixed(row.get("totalSales")),
                total_orders=int(row.get("totalOrders") or 0),
                total_quantity=int(row.get("totalQuantity") or 0),
            )
            for row in rows
        ]

    def _compute_product_sales(self, oid: ObjectId) -> List[ProductSales]:
        rows = self._aggregate("product_sales", oid, product_sales_pipeline(oid))
        return [
            ProductSales(
                product_id=str(row["_id"]),
                product_name=row.get("productName"),
                total_quantity=int(row.get("totalQuantity") or 0),
                total_sales=to_fixed(row.get("totalSales")),
                total_orders=int(row.get("totalOrders") or 0),
            )
            for row in rows
        ]

    def _compute_vendor_stats(self, oid: ObjectId) -> VendorStats:
        total_products = self._count_products("vendor_stats", oid)
        monthly = self.get_monthly_sales(oid)
        products = self.get_product_sales(oid)

        return VendorStats(
            total_products=total_products,
            total_revenue=to_fixed(money_sum(month.total_sales for month in monthly)),
            total_orders=sum(month.total_orders for month in monthly),
            top_product=products[0] if products else None,
            last_updated=_utcnow(),
        )

    # Helpers

    @staticmethod
    def _vendor_oid(vendor_id: Union[str, ObjectId, None]) -> ObjectId:
        if isinstance(vendor_id, ObjectId):
            return vendor_id
        if not vendor_id or not isinstance(vendor_id, str) or not ObjectId.is_valid(vendor_id):
            raise InvalidVendorIdError(vendor_id)
        return ObjectId(vendor_id)

    @staticmethod
    def _date_window(
        start_date: Optional[str], end_date: Optional[str]
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        start = parse_date_bound(start_date, "startDate")
        end = parse_date_bound(end_date, "endDate")
        if start is not None and end is not None and start > end:
            raise InvalidDateRangeError("startDate is after endDate", start_date, end_date)
        end_exclusive = end + timedelta(days=1) if end is not None else None
        return start, end_exclusive

    def _cached(self, key: str, adapter: TypeAdapter, compute: Callable[[], T]) -> T:
        cached = self.cache.get(key)
        if cached is not None:
            try:
                value = adapter.validate_python(cached)
                logger.debug(f"Cache hit for {key}")
                return value
            except ValidationError as e:
                logger.warning(f"Discarding malformed cache entry {key}: {e}")

        logger.debug(f"Cache miss for {key}")
        value = compute()
        # best effort, backends log their own failures
        self.cache.set(
            key, adapter.dump_python(value, mode="json", by_alias=True), self.ttl_seconds
        )
        return value

    def _aggregate(self, operation: str, oid: ObjectId, pipeline: Pipeline) -> List[dict]:
        try:
            return self.runner.aggregate(ORDERS_COLLECTION, pipeline)
        except PyMongoError as e:
            logger.error(f"Analytics query {operation} failed for vendor {oid}: {e}")
            raise AnalyticsQueryError(operation, str(oid), str(e)) from e

    def _count_products(self, operation: str, oid: ObjectId) -> int:
        try:
            return self.runner.count_documents(PRODUCTS_COLLECTION, {"vendor": oid})
        except PyMongoError as e:
            logger.error(f"Product count for {operation} failed for vendor {oid}: {e}")
            raise AnalyticsQueryError(operation, str(oid), str(e)) from e
