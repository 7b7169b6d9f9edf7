"""Order types: line items, shipping address, orders and pending orders."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from bazaar._types import (
    CouponId,
    Money,
    OrderId,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PendingOrderId,
    ProductId,
    UserId,
)
from bazaar.db import OrderHistoryTable, OrderTable, PendingOrderTable
from bazaar.errors import ValidationError

# ═══════════════════════════════════════════════════════════════════════════════
# Value types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class LineItem:
    """Line frozen at purchase time."""

    product_id: ProductId
    name: str
    variant_label: str
    price_at_add: Money
    quantity: int

    @property
    def line_total(self) -> Money:
        return self.price_at_add * self.quantity

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> LineItem:
        return cls(
            product_id=record["product_id"],
            name=record.get("name", ""),
            variant_label=record.get("variant_label", ""),
            price_at_add=record["price_at_add"],
            quantity=record["quantity"],
        )


_REQUIRED_ADDRESS = ("name", "phone", "line1", "city", "state", "pincode")


@dataclass(frozen=True, slots=True)
class ShippingAddress:
    name: str
    phone: str
    line1: str
    city: str
    state: str
    pincode: str
    line2: str = ""
    email: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ShippingAddress:
        missing = [f for f in _REQUIRED_ADDRESS if not str(data.get(f) or "").strip()]
        if missing:
            raise ValidationError(f"shippingAddress.{missing[0]} is required")
        email = str(data.get("email") or "").strip() or None
        return cls(
            name=str(data["name"]).strip(),
            phone=str(data["phone"]).strip(),
            line1=str(data["line1"]).strip(),
            city=str(data["city"]).strip(),
            state=str(data["state"]).strip(),
            pincode=str(data["pincode"]).strip(),
            line2=str(data.get("line2") or "").strip(),
            email=email,
        )

    def as_record(self) -> dict[str, Any]:
        return asdict(self)


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Order:
    """
    Confirmed order, active or archived.

    Archived orders (``is_history``) carry a terminal status and
    ``completed_at``; both kinds keep their 4-digit ``order_code``.
    """

    id: OrderId
    order_code: str
    user_id: UserId
    items: tuple[LineItem, ...]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    total_amount: Money
    payment_status: PaymentStatus
    order_status: OrderStatus
    created_at: datetime
    coupon_id: CouponId | None = None
    payment_intent_id: str | None = None
    completed_at: datetime | None = None
    is_history: bool = False

    @property
    def sort_date(self) -> datetime:
        return self.completed_at or self.created_at

    @classmethod
    def from_row(cls, row: OrderTable) -> Order:
        return cls(
            id=row.id,
            order_code=row.order_code,
            user_id=row.user_id,
            items=tuple(LineItem.from_record(i) for i in row.items),
            shipping_address=ShippingAddress.from_mapping(row.shipping_address),
            payment_method=PaymentMethod(row.payment_method),
            total_amount=row.total_amount,
            payment_status=PaymentStatus(row.payment_status),
            order_status=OrderStatus(row.order_status),
            created_at=row.created_at,
            coupon_id=row.coupon_id,
            payment_intent_id=row.payment_intent_id,
        )

    @classmethod
    def from_history_row(cls, row: OrderHistoryTable) -> Order:
        return cls(
            id=row.id,
            order_code=row.order_code,
            user_id=row.user_id,
            items=tuple(LineItem.from_record(i) for i in row.items),
            shipping_address=ShippingAddress.from_mapping(row.shipping_address),
            payment_method=PaymentMethod(row.payment_method),
            total_amount=row.total_amount,
            payment_status=PaymentStatus(row.payment_status),
            order_status=OrderStatus(row.status),
            created_at=row.created_at,
            coupon_id=row.coupon_id,
            payment_intent_id=row.payment_intent_id,
            completed_at=row.completed_at,
            is_history=True,
        )


@dataclass(frozen=True, slots=True)
class PendingOrder:
    """Online order waiting for the gateway to report the payment outcome."""

    id: PendingOrderId
    user_id: UserId
    items: tuple[LineItem, ...]
    shipping_address: ShippingAddress
    total_amount: Money
    expires_at: datetime
    created_at: datetime
    coupon_id: CouponId | None = None
    payment_intent_id: str | None = None

    @classmethod
    def from_row(cls, row: PendingOrderTable) -> PendingOrder:
        return cls(
            id=row.id,
            user_id=row.user_id,
            items=tuple(LineItem.from_record(i) for i in row.items),
            shipping_address=ShippingAddress.from_mapping(row.shipping_address),
            total_amount=row.total_amount,
            expires_at=row.expires_at,
            created_at=row.created_at,
            coupon_id=row.coupon_id,
            payment_intent_id=row.payment_intent_id,
        )


__all__ = (
    "LineItem",
    "ShippingAddress",
    "Order",
    "PendingOrder",
)
