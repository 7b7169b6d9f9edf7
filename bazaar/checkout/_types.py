"""Checkout request and outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

from bazaar._types import PaymentMethod, UserId
from bazaar.catalog import RequestedLine
from bazaar.orders import Order, PendingOrder, ShippingAddress
from bazaar.payments import PaymentIntent


@dataclass(frozen=True, slots=True)
class CheckoutRequest:
    """Client-supplied prices never get this far: lines carry ids, labels and quantities only."""

    user_id: UserId
    items: tuple[RequestedLine, ...]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    coupon_code: str | None = None


@dataclass(frozen=True, slots=True)
class PlacedOrder:
    """COD: the order exists, stock and coupon are consumed."""

    order: Order


@dataclass(frozen=True, slots=True)
class AwaitingPayment:
    """ONLINE: a pending order waits for the gateway webhook."""

    pending_order: PendingOrder
    intent: PaymentIntent


CheckoutOutcome: TypeAlias = PlacedOrder | AwaitingPayment


__all__ = ("CheckoutRequest", "PlacedOrder", "AwaitingPayment", "CheckoutOutcome")
