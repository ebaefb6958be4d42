# backend/modules/analytics/routers/analytics_router.py

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query, status
from pymongo.database import Database

from core.auth import ADMIN_ROLE, CurrentUser, get_current_user, require_roles, resolve_vendor_scope
from core.cache import CacheBackend, get_cache
from core.config import get_settings
from core.database import get_db
from core.exceptions import APIError, ValidationError
from core.rate_limiter import analytics_rate_limit

from ..exceptions import AnalyticsQueryError, InvalidDateRangeError, InvalidVendorIdError
from ..schemas.analytics_schemas import (
    CacheClearedResponse,
    DataValidationResponse,
    DateRangeAnalyticsResponse,
    DetailedAnalyticsResponse,
    MonthlySalesResponse,
    ProductSalesResponse,
    RequestedDateRange,
    VendorStatsResponse,
)
from ..services.analytics_service import AnalyticsService
from ..services.pipeline_runner import MongoPipelineRunner

router = APIRouter(
    prefix="/api/analytics",
    tags=["Vendor Analytics"],
    dependencies=[Depends(analytics_rate_limit())],
)
logger = logging.getLogger(__name__)


def get_analytics_service(
    db: Database = Depends(get_db),
    cache: CacheBackend = Depends(get_cache),
) -> AnalyticsService:
    settings = get_settings()
    return AnalyticsService(
        MongoPipelineRunner(db),
        cache,
        ttl_seconds=settings.analytics_cache_ttl_seconds,
        month_locale=settings.analytics_month_locale,
    )


@contextmanager
def analytics_errors(failure_message: str):
    """Map analytics exceptions onto API errors."""
    try:
        yield
    except (InvalidVendorIdError, InvalidDateRangeError) as e:
        raise ValidationError(e.message, e.error_code)
    except AnalyticsQueryError as e:
        logger.error(f"{failure_message}: {e.message}")
        raise APIError(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=failure_message,
            error_code=e.error_code,
        )


def _now() -> datetime:
    return datetime.now(timezone.utc)


@router.get("/monthly-sales", response_model=MonthlySalesResponse)
@router.get("/monthly-sales/{vendor_id}", response_model=MonthlySalesResponse)
def get_monthly_sales(
    vendor_id: Optional[str] = None,
    current_user: CurrentUser = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Sales per calendar month for a vendor, newest first.

    Plain vendors read their own data; admins may name any vendor.
    """
    scope = resolve_vendor_scope(vendor_id, current_user)
    with analytics_errors("Failed to fetch monthly sales"):
        data = service.get_monthly_sales(scope)
    return MonthlySalesResponse(data=data)


@router.get("/product-sales", response_model=ProductSalesResponse)
@router.get("/product-sales/{vendor_id}", response_model=ProductSalesResponse)
def get_product_sales(
    vendor_id: Optional[str] = None,
    current_user: CurrentUser = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Sales per product, highest revenue first."""
    scope = resolve_vendor_scope(vendor_id, current_user)
    with analytics_errors("Failed to fetch product sales"):
        data = service.get_product_sales(scope)
    return ProductSalesResponse(data=data)


@router.get("/vendor-stats", response_model=VendorStatsResponse)
@router.get("/vendor-stats/{vendor_id}", response_model=VendorStatsResponse)
def get_vendor_stats(
    vendor_id: Optional[str] = None,
    current_user: CurrentUser = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    scope = resolve_vendor_scope(vendor_id, current_user)
    with analytics_errors("Failed to fetch vendor stats"):
        data = service.get_vendor_stats(scope)
    return VendorStatsResponse(data=data)


@router.get("/detailed", response_model=DetailedAnalyticsResponse)
@router.get("/detailed/{vendor_id}", response_model=DetailedAnalyticsResponse)
def get_detailed_analytics(
    vendor_id: Optional[str] = None,
    current_user: CurrentUser = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Live analytics, never served from the cache."""
    scope = resolve_vendor_scope(vendor_id, current_user)
    with analytics_errors("Failed to fetch detailed analytics"):
        data = service.get_detailed_analytics(scope)
    return DetailedAnalyticsResponse(vendor_id=scope, timestamp=_now(), data=data)


@router.get("/validate", response_model=DataValidationResponse)
@router.get("/validate/{vendor_id}", response_model=DataValidationResponse)
def validate_vendor_data(
    vendor_id: Optional[str] = None,
    current_user: CurrentUser = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Reconcile live figures against the cached ones.

    A mismatch is part of the report, not an error.
    """
    scope = resolve_vendor_scope(vendor_id, current_user)
    with analytics_errors("Failed to validate data"):
        report = service.validate_vendor_data(scope)
    return DataValidationResponse(vendor_id=scope, timestamp=_now(), validation=report)


@router.get("/date-range", response_model=DateRangeAnalyticsResponse)
@router.get("/date-range/{vendor_id}", response_model=DateRangeAnalyticsResponse)
def get_date_range_analytics(
    vendor_id: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate", description="YYYY-MM-DD, inclusive"),
    end_date: Optional[str] = Query(None, alias="endDate", description="YYYY-MM-DD, inclusive"),
    current_user: CurrentUser = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    scope = resolve_vendor_scope(vendor_id, current_user)
    with analytics_errors("Failed to fetch date range analytics"):
        data = service.get_date_range_analytics(scope, start_date, end_date)
    return DateRangeAnalyticsResponse(
        vendor_id=scope,
        date_range=RequestedDateRange(start_date=start_date, end_date=end_date),
        data=data,
    )


@router.delete("/cache", response_model=CacheClearedResponse)
@router.delete("/cache/{vendor_id}", response_model=CacheClearedResponse)
def clear_cache(
    vendor_id: Optional[str] = None,
    current_user: CurrentUser = Depends(require_roles(ADMIN_ROLE)),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Drop a vendor's cached reports (admin only)."""
    scope = resolve_vendor_scope(vendor_id, current_user)
    with analytics_errors("Failed to clear cache"):
        service.clear_cache(scope)
    logger.info(f"Admin {current_user.id} cleared analytics cache of vendor {scope}")
    return CacheClearedResponse()
