# backend/modules/orders/models/order_models.py

"""
Order, line item and product documents.

Field names in ``to_document`` follow the stored collections
(``orders`` with embedded ``cart_item`` entries, ``parent_products``);
money is stored as ``Decimal128`` and surfaces as ``Decimal``.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from core.money import line_revenue, money_sum, to_decimal, to_decimal128

from ..enums.order_enums import LineItemStatus, OrderStatus


class LineItem(BaseModel):
    """One product line inside an order."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: ObjectId = Field(default_factory=ObjectId)
    product: ObjectId
    variant_id: Optional[ObjectId] = None
    series: str
    item_count: int = Field(ge=0)
    quantity: int = Field(ge=0)
    cogs: Decimal
    price: Decimal
    vendor_margin: Decimal
    order_status: LineItemStatus = LineItemStatus.PENDING

    @field_validator("cogs", "price", "vendor_margin", mode="before")
    @classmethod
    def normalize_money(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @property
    def units(self) -> int:
        """Units sold: ``quantity`` sets of ``item_count`` items."""
        return self.quantity * self.item_count

    @property
    def revenue(self) -> Decimal:
        return line_revenue(self.price, self.quantity, self.item_count)

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "_id": self.id,
            "product": self.product,
            "series": self.series,
            "item_count": self.item_count,
            "quantity": self.quantity,
            "cogs": to_decimal128(self.cogs),
            "price": to_decimal128(self.price),
            "vendor_margin": to_decimal128(self.vendor_margin),
            "order_status": self.order_status.value,
        }
        if self.variant_id is not None:
            doc["variantId"] = self.variant_id
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "LineItem":
        return cls(
            id=doc.get("_id") or ObjectId(),
            product=doc["product"],
            variant_id=doc.get("variantId"),
            series=doc["series"],
            item_count=doc["item_count"],
            quantity=doc["quantity"],
            cogs=doc["cogs"],
            price=doc["price"],
            vendor_margin=doc["vendor_margin"],
            order_status=doc.get("order_status") or LineItemStatus.PENDING,
        )


class Order(BaseModel):
    """
    A sale transaction.

    ``total_amount`` is derived from the line items every time it is read
    and cannot be supplied by callers.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="ignore")

    id: ObjectId = Field(default_factory=ObjectId)
    payment_at: datetime
    line_items: List[LineItem] = Field(min_length=1)
    customer_id: Optional[ObjectId] = None
    status: OrderStatus = OrderStatus.PENDING

    @field_validator("payment_at")
    @classmethod
    def payment_at_in_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC, the way the store reads them."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @computed_field
    @property
    def total_amount(self) -> Decimal:
        return money_sum(item.revenue for item in self.line_items)

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "_id": self.id,
            "cart_item": [item.to_document() for item in self.line_items],
            "payment_at": self.payment_at,
            "total_amount": to_decimal128(self.total_amount),
            "status": self.status.value,
        }
        if self.customer_id is not None:
            doc["customer_id"] = self.customer_id
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Order":
        return cls(
            id=doc["_id"],
            payment_at=doc["payment_at"],
            line_items=[LineItem.from_document(item) for item in doc.get("cart_item", [])],
            customer_id=doc.get("customer_id"),
            status=doc.get("status") or OrderStatus.PENDING,
        )


class Product(BaseModel):
    """Catalog entry owned by exactly one vendor."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: ObjectId = Field(default_factory=ObjectId)
    name: str
    vendor: ObjectId
    sku: Optional[str] = None
    category: Optional[str] = None

    @field_validator("name", "sku", "category")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"_id": self.id, "name": self.name, "vendor": self.vendor}
        if self.sku:
            doc["sku"] = self.sku
        if self.category:
            doc["category"] = self.category
        return doc
