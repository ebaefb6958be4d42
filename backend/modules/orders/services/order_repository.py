# backend/modules/orders/services/order_repository.py

import logging
from typing import Optional

from bson import ObjectId
from pymongo.database import Database

from core.database import ORDERS_COLLECTION, PRODUCTS_COLLECTION

from ..models.order_models import Order, Product

logger = logging.getLogger(__name__)


class OrderRepository:
    """Persists orders; the stored total is always recomputed from line items."""

    def __init__(self, db: Database):
        self.collection = db[ORDERS_COLLECTION]

    def save(self, order: Order) -> Order:
        document = order.to_document()
        self.collection.replace_one({"_id": order.id}, document, upsert=True)
        logger.debug(f"Saved order {order.id} total={order.total_amount}")
        return order

    def get(self, order_id: ObjectId) -> Optional[Order]:
        doc = self.collection.find_one({"_id": order_id})
        return Order.from_document(doc) if doc else None


class ProductRepository:
    def __init__(self, db: Database):
        self.collection = db[PRODUCTS_COLLECTION]

    def create(self, product: Product) -> Product:
        self.collection.insert_one(product.to_document())
        return product

    def count_for_vendor(self, vendor_id: ObjectId) -> int:
        return self.collection.count_documents({"vendor": vendor_id})
