from .order_models import LineItem, Order, Product

__all__ = ["LineItem", "Order", "Product"]
