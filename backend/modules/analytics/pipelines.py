# backend/modules/analytics/pipelines.py

"""
Aggregation pipeline descriptions for vendor analytics.

Every report starts from the same scoping prefix: unwind each order's
``cart_item`` array into one row per line item, join the line's product
from ``parent_products`` and keep only rows whose product belongs to the
vendor. Pipelines are plain data so they can run on MongoDB or on the
in-memory runner used by tests.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId

from core.database import PRODUCTS_COLLECTION

Pipeline = List[Dict[str, Any]]


def line_revenue_expr() -> Dict[str, Any]:
    """price x quantity x item_count of the current line item"""
    return {
        "$multiply": [
            "$cart_item.price",
            "$cart_item.quantity",
            "$cart_item.item_count",
        ]
    }


def line_quantity_expr() -> Dict[str, Any]:
    """Units sold on the current line: quantity x item_count"""
    return {"$multiply": ["$cart_item.quantity", "$cart_item.item_count"]}


def payment_window(
    start: Optional[datetime] = None, end_exclusive: Optional[datetime] = None
) -> Optional[Dict[str, Any]]:
    """Range filter on ``payment_at``; ``None`` when both bounds are open."""
    window: Dict[str, Any] = {}
    if start is not None:
        window["$gte"] = start
    if end_exclusive is not None:
        window["$lt"] = end_exclusive
    return window or None


def vendor_line_items(
    vendor_id: ObjectId, payment_filter: Optional[Dict[str, Any]] = None
) -> Pipeline:
    """Rows of (order, one line item, joined product) owned by the vendor."""
    stages: Pipeline = []
    # Date filtering happens before the unwind so it can use the payment_at index
    if payment_filter:
        stages.append({"$match": {"payment_at": payment_filter}})

    stages.extend(
        [
            {"$unwind": "$cart_item"},
            {
                "$lookup": {
                    "from": PRODUCTS_COLLECTION,
                    "localField": "cart_item.product",
                    "foreignField": "_id",
                    "as": "product",
                }
            },
            {"$unwind": "$product"},
            {"$match": {"product.vendor": vendor_id}},
        ]
    )
    return stages


def monthly_sales_pipeline(vendor_id: ObjectId) -> Pipeline:
    return vendor_line_items(vendor_id) + [
        {
            "$group": {
                "_id": {
                    "year": {"$year": "$payment_at"},
                    "month": {"$month": "$payment_at"},
                },
                "totalSales": {"$sum": line_revenue_expr()},
                # one per matching line item, not per distinct order
                "totalOrders": {"$sum": 1},
                "totalQuantity": {"$sum": line_quantity_expr()},
            }
        },
        {"$sort": {"_id.year": -1, "_id.month": -1}},
    ]


def product_sales_pipeline(vendor_id: ObjectId) -> Pipeline:
    return vendor_line_items(vendor_id) + [
        {
            "$group": {
                "_id": "$product._id",
                "productName": {"$first": "$product.name"},
                "totalQuantity": {"$sum": line_quantity_expr()},
                "totalSales": {"$sum": line_revenue_expr()},
                "totalOrders": {"$sum": 1},
            }
        },
        {"$sort": {"totalSales": -1, "_id": 1}},
    ]


def detailed_analytics_pipeline(vendor_id: ObjectId) -> Pipeline:
    return vendor_line_items(vendor_id) + [
        {
            "$group": {
                "_id": None,
                "totalRevenue": {"$sum": line_revenue_expr()},
                "totalOrders": {"$sum": 1},
                "uniqueOrders": {"$addToSet": "$_id"},
                "totalQuantity": {"$sum": line_quantity_expr()},
                "avgOrderValue": {"$avg": line_revenue_expr()},
                "minOrderValue": {"$min": line_revenue_expr()},
                "maxOrderValue": {"$max": line_revenue_expr()},
                "firstOrderDate": {"$min": "$payment_at"},
                "lastOrderDate": {"$max": "$payment_at"},
                "uniqueProducts": {"$addToSet": "$cart_item.product"},
            }
        }
    ]


def daily_breakdown_pipeline(
    vendor_id: ObjectId, payment_filter: Optional[Dict[str, Any]] = None
) -> Pipeline:
    return vendor_line_items(vendor_id, payment_filter) + [
        {
            "$group": {
                "_id": {
                    "year": {"$year": "$payment_at"},
                    "month": {"$month": "$payment_at"},
                    "day": {"$dayOfMonth": "$payment_at"},
                },
                "dailyRevenue": {"$sum": line_revenue_expr()},
                "dailyOrders": {"$sum": 1},
                "dailyQuantity": {"$sum": line_quantity_expr()},
            }
        },
        {"$sort": {"_id.year": 1, "_id.month": 1, "_id.day": 1}},
    ]
