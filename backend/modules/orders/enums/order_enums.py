from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class LineItemStatus(str, Enum):
    """Per-line fulfillment state, independent of the order status."""

    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    RECEIVED = "Received"
