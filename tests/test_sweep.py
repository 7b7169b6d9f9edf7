from __future__ import annotations

from datetime import timedelta

from sqlalchemy import select

from bazaar._types import PaymentMethod, utcnow
from bazaar.catalog import RequestedLine
from bazaar.checkout import CheckoutRequest
from bazaar.db import CouponTable, PendingOrderTable, transaction
from bazaar.payments import PendingOrderSweeper, claim

from tests.conftest import ADDRESS


async def _online(checkout, product_id: str, coupon: str | None = None):
    outcome = await checkout.create_order(
        CheckoutRequest(
            user_id="u1",
            items=(RequestedLine(product_id, 3),),
            shipping_address=ADDRESS,
            payment_method=PaymentMethod.ONLINE,
            coupon_code=coupon,
        )
    )
    return outcome.pending_order


async def test_expired_pending_order_is_swept(checkout, sweeper, sessions, tea, save10):
    pending = await _online(checkout, tea.product.id, coupon="SAVE10")

    swept = await sweeper.sweep(pending.expires_at)

    assert swept == 1
    async with sessions() as session:
        assert await session.get(PendingOrderTable, pending.id) is None
        uses = await session.scalar(select(CouponTable.usage_limit).where(CouponTable.id == save10.id))
    assert uses == 3


async def test_fresh_pending_orders_survive(checkout, sweeper, sessions, tea):
    pending = await _online(checkout, tea.product.id)

    assert await sweeper.sweep(utcnow()) == 0
    async with sessions() as session:
        assert await session.get(PendingOrderTable, pending.id) is not None


async def test_sweep_without_coupon(checkout, sweeper, tea):
    await _online(checkout, tea.product.id)
    await _online(checkout, tea.product.id)
    assert await sweeper.sweep(utcnow() + timedelta(days=1)) == 2
    assert await sweeper.sweep(utcnow() + timedelta(days=1)) == 0


async def test_deleted_coupon_does_not_block_sweep(checkout, sweeper, coupons, sessions, tea, save10):
    pending = await _online(checkout, tea.product.id, coupon="SAVE10")
    await coupons.delete(save10.id)

    assert await sweeper.sweep(pending.expires_at + timedelta(seconds=1)) == 1
    async with sessions() as session:
        assert await session.get(PendingOrderTable, pending.id) is None


async def test_sweep_skips_rows_claimed_elsewhere(checkout, sessions, tea, save10):
    pending = await _online(checkout, tea.product.id, coupon="SAVE10")
    async with transaction(sessions) as session:
        assert await claim(session, pending.id) is True

    assert await PendingOrderSweeper(sessions).sweep(pending.expires_at) == 0
    async with sessions() as session:
        uses = await session.scalar(select(CouponTable.usage_limit).where(CouponTable.id == save10.id))
    assert uses == 2
