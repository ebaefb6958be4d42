# backend/modules/analytics/constants.py

"""
Constants for analytics module.
"""

# Cache Configuration
CACHE_TTL_SECONDS = 300  # 5 minutes

MONTHLY_SALES_CACHE_KEY = "monthly_sales:{vendor_id}"
PRODUCT_SALES_CACHE_KEY = "product_sales:{vendor_id}"
VENDOR_STATS_CACHE_KEY = "vendor_stats:{vendor_id}"

# Every key clear_cache must remove for a vendor
VENDOR_CACHE_KEYS = (
    MONTHLY_SALES_CACHE_KEY,
    PRODUCT_SALES_CACHE_KEY,
    VENDOR_STATS_CACHE_KEY,
)

# Month names, index 0 is January
MONTH_NAMES = {
    "tr": (
        "Ocak", "Şubat", "Mart", "Nisan", "Mayıs", "Haziran",
        "Temmuz", "Ağustos", "Eylül", "Ekim", "Kasım", "Aralık",
    ),
    "en": (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ),
}
UNKNOWN_MONTH = "Unknown"

# Echoed in date-range responses when a bound is omitted
OPEN_START_LABEL = "all time"
OPEN_END_LABEL = "current"

ISO_DATE_FORMAT = "%Y-%m-%d"
