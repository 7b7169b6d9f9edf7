"""
bazaar: e-commerce backend.

    from bazaar import catalog as Cat    # Products, variants, combos, pricing
    from bazaar import checkout as Co    # COD and online checkout
    from bazaar import payments as Pay   # Gateway, webhook, pending-order sweep

    app = bazaar.api.create_app(Settings.from_env())
"""

from bazaar import api, cart, catalog, checkout, coupons, ledger, ops, orders, payments, wire
from bazaar._types import (
    ComboPriceMode,
    CouponStatus,
    Money,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ProductType,
    format_amount,
)
from bazaar.config import Settings, configure_logging
from bazaar.errors import ErrorKind, ShopError

__version__ = "0.1.0"

__all__ = (
    "api",
    "cart",
    "catalog",
    "checkout",
    "coupons",
    "ledger",
    "ops",
    "orders",
    "payments",
    "wire",
    "Money",
    "format_amount",
    "ProductType",
    "ComboPriceMode",
    "CouponStatus",
    "PaymentMethod",
    "PaymentStatus",
    "OrderStatus",
    "Settings",
    "configure_logging",
    "ErrorKind",
    "ShopError",
)
