"""
Coupons: admin CRUD, non-binding preview and verification.

    coupons = CouponService(sessions)
    await coupons.create("save10", 10, usage_limit=100)   # stored as SAVE10
    preview = await coupons.preview("SAVE10", cart_total=100000)
    preview.discount, preview.final_total                   # 10000, 90000
"""

from bazaar.coupons._service import CouponPreview, CouponService

__all__ = ("CouponPreview", "CouponService")
