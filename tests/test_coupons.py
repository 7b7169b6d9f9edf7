from __future__ import annotations

import pytest

from bazaar._types import CouponStatus
from bazaar.db import MAX_PURCHASE
from bazaar.errors import Conflict, CouponNotApplicable, NotFound, ValidationError


async def test_create_normalizes_code(coupons):
    coupon = await coupons.create(" welcome ", 15)
    assert coupon.code == "WELCOME"
    assert coupon.usage_limit == 1
    assert coupon.max_purchase == MAX_PURCHASE
    assert coupon.status is CouponStatus.ACTIVE


async def test_create_validation(coupons, save10):
    with pytest.raises(Conflict):
        await coupons.create("SAVE10", 5)
    with pytest.raises(ValidationError):
        await coupons.create("HUGE", 101)
    with pytest.raises(ValidationError):
        await coupons.create("", 10)
    with pytest.raises(ValidationError):
        await coupons.create("WINDOW", 10, min_purchase=5000, max_purchase=1000)


async def test_preview_does_not_consume(coupons, save10):
    preview = await coupons.preview("save10", 100000)
    assert (preview.discount, preview.final_total) == (10000, 90000)
    assert (await coupons.list_coupons())[0].usage_limit == 3


async def test_preview_messages(coupons, save10):
    with pytest.raises(CouponNotApplicable, match="Minimum purchase is ₹500.00"):
        await coupons.preview("SAVE10", 1000)

    await coupons.create("CAPPED", 5, max_purchase=20000)
    with pytest.raises(CouponNotApplicable, match="Maximum purchase"):
        await coupons.preview("CAPPED", 20001)

    with pytest.raises(NotFound):
        await coupons.preview("NOPE", 1000)


async def test_inactive_coupons_are_invisible(coupons, save10):
    await coupons.set_status(save10.id, CouponStatus.INACTIVE)
    with pytest.raises(NotFound):
        await coupons.preview("SAVE10", 100000)
    with pytest.raises(CouponNotApplicable):
        await coupons.verify("SAVE10", 100000)

    coupon = await coupons.set_status(save10.id, CouponStatus.ACTIVE)
    assert coupon.status is CouponStatus.ACTIVE
    assert (await coupons.verify("SAVE10", 100000)).id == save10.id


async def test_delete(coupons, save10):
    await coupons.delete(save10.id)
    assert await coupons.list_coupons() == []
    with pytest.raises(NotFound):
        await coupons.delete(save10.id)
    with pytest.raises(NotFound):
        await coupons.set_status(save10.id, CouponStatus.ACTIVE)
