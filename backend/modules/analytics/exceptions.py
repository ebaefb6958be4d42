# backend/modules/analytics/exceptions.py

"""
Custom exceptions for analytics module.

The cache layer has no exception type here; its failures degrade to a
miss.
"""

from typing import Optional, Dict, Any


class AnalyticsBaseException(Exception):
    """Base exception for all analytics errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidVendorIdError(AnalyticsBaseException):
    """Raised before any query runs when the vendor id is missing or malformed"""

    def __init__(self, vendor_id: Optional[str]):
        if not vendor_id:
            message = "Vendor ID is required"
        else:
            message = f"Invalid vendor ID: {vendor_id!r}"
        super().__init__(message, "INVALID_VENDOR_ID", {"vendor_id": vendor_id})


class InvalidDateRangeError(AnalyticsBaseException):
    """Raised when a date filter cannot be parsed or is inverted"""

    def __init__(self, reason: str, start_date: Optional[str] = None, end_date: Optional[str] = None):
        message = f"Invalid date range: {reason}"
        details = {
            "start_date": start_date,
            "end_date": end_date,
            "reason": reason
        }
        super().__init__(message, "INVALID_DATE_RANGE", details)


class AnalyticsQueryError(AnalyticsBaseException):
    """Raised when the document store fails while computing analytics"""

    def __init__(self, operation: str, vendor_id: str, reason: str):
        message = f"Analytics query '{operation}' failed for vendor {vendor_id}: {reason}"
        details = {
            "operation": operation,
            "vendor_id": vendor_id,
            "reason": reason
        }
        super().__init__(message, "ANALYTICS_QUERY_ERROR", details)
