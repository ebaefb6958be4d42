# backend/modules/analytics/schemas/analytics_schemas.py

"""
Response schemas for vendor analytics.

Fields are snake_case in Python and camelCase on the wire. Monetary
figures are fixed 2-decimal strings so a report read back from the cache
is identical to a freshly computed one.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MonthlySales(CamelModel):
    """Sales of one calendar month"""

    month: str = Field(description="Localized month name")
    year: int
    total_sales: str = Field(description="Revenue of the month, 2 decimals")
    total_orders: int = Field(description="Matching line-item rows, not distinct orders")
    total_quantity: int


class ProductSales(CamelModel):
    """Sales of one product"""

    product_id: str
    product_name: Optional[str] = None
    total_quantity: int
    total_sales: str
    total_orders: int = Field(description="Matching line-item rows, not distinct orders")


class VendorStats(CamelModel):
    """Headline numbers for a vendor"""

    total_products: int = Field(description="Catalog size, independent of sales")
    total_revenue: str
    total_orders: int
    top_product: Optional[ProductSales] = None
    last_updated: datetime


class SaleSpan(CamelModel):
    days: int = 0


class DetailedAnalytics(CamelModel):
    """Live single-pass analytics over every matching line item"""

    total_revenue: str
    total_orders: int = Field(description="Matching line-item rows")
    unique_order_count: int = Field(description="Distinct orders")
    total_quantity_sold: int
    average_order_value: str = Field(description="Mean revenue per line item")
    min_order_value: str
    max_order_value: str
    first_sale_date: Optional[datetime] = None
    last_sale_date: Optional[datetime] = None
    unique_products_sold: int
    total_products_in_catalog: int
    date_range: SaleSpan


class CachedFigures(CamelModel):
    total_revenue: str
    total_orders: int
    total_products: int


class MonthlyAggregation(CamelModel):
    total_revenue: str
    total_orders: int
    month_count: int


class Discrepancies(CamelModel):
    revenue: str = Field(description="Direct minus cached revenue")
    orders: int = Field(description="Distinct orders minus monthly row count")


class ValidationChecks(CamelModel):
    revenue_match: bool
    orders_match: bool
    discrepancies: Discrepancies


class DataValidationReport(CamelModel):
    """Side-by-side reconciliation of live and cache-eligible figures"""

    direct_calculation: DetailedAnalytics
    cached_data: CachedFigures
    monthly_aggregation: MonthlyAggregation
    validation: ValidationChecks


class DateRangeEcho(CamelModel):
    start: str
    end: str


class DateRangeSummary(CamelModel):
    total_revenue: str
    total_orders: int
    total_quantity: int
    days_with_sales: int


class DailySales(CamelModel):
    date: str = Field(description="YYYY-MM-DD")
    revenue: str
    orders: int
    quantity: int


class DateRangeAnalytics(CamelModel):
    date_range: DateRangeEcho
    summary: DateRangeSummary
    daily_breakdown: List[DailySales]


# Response envelopes


class MonthlySalesResponse(CamelModel):
    success: bool = True
    data: List[MonthlySales]


class ProductSalesResponse(CamelModel):
    success: bool = True
    data: List[ProductSales]


class VendorStatsResponse(CamelModel):
    success: bool = True
    data: VendorStats


class DetailedAnalyticsResponse(CamelModel):
    success: bool = True
    vendor_id: str
    timestamp: datetime
    data: DetailedAnalytics


class DataValidationResponse(CamelModel):
    success: bool = True
    vendor_id: str
    timestamp: datetime
    validation: DataValidationReport


class RequestedDateRange(CamelModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class DateRangeAnalyticsResponse(CamelModel):
    success: bool = True
    vendor_id: str
    date_range: RequestedDateRange
    data: DateRangeAnalytics


class CacheClearedResponse(CamelModel):
    success: bool = True
    message: str = "Cache cleared successfully"
