"""
Ledgers for shared mutable resources: variant stock and coupon usage.

    from bazaar.ledger import StockLedger, CouponLedger

    async with transaction(sessions) as session:
        await StockLedger(session).reserve(cart.stock_keys)
        coupon = await CouponLedger(session).reserve("SAVE10", cart.subtotal)

Both work purely through conditional UPDATEs inside the caller's
transaction; neither commits.
"""

from bazaar.ledger._coupon import (
    Coupon,
    CouponLedger,
    applicable,
    coupon_discount,
    normalize_code,
)
from bazaar.ledger._stock import StockLedger

__all__ = (
    "StockLedger",
    "Coupon",
    "CouponLedger",
    "applicable",
    "coupon_discount",
    "normalize_code",
)
