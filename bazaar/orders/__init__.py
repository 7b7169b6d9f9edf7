"""
Orders: confirmed orders, pending online orders, history and order codes.

    orders = OrderService(sessions)
    await orders.get_order(user_id, "0427")       # by 4-digit code
    await orders.get_order(user_id, "ord_…")      # or by id
    await orders.archive("0427", OrderStatus.DELIVERED)
"""

from bazaar.orders._codes import (
    CODE_SPACE,
    DEFAULT_ATTEMPTS,
    RandomSource,
    code_in_use,
    generate_order_code,
)
from bazaar.orders._service import ORDER_CODE, TERMINAL, OrderService
from bazaar.orders._types import LineItem, Order, PendingOrder, ShippingAddress

__all__ = (
    # Types
    "LineItem",
    "ShippingAddress",
    "Order",
    "PendingOrder",
    # Codes
    "RandomSource",
    "code_in_use",
    "generate_order_code",
    "CODE_SPACE",
    "DEFAULT_ATTEMPTS",
    # Queries
    "OrderService",
    "ORDER_CODE",
    "TERMINAL",
)
