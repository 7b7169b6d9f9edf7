"""
Coupon admin, preview and verification.

Neither ``preview`` nor ``verify`` consumes a use: the binding decrement
happens only in checkout through the coupon ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from bazaar._types import CouponId, CouponStatus, Money, format_amount, new_id, utcnow
from bazaar.db import MAX_PURCHASE, CouponTable, SessionFactory, transaction
from bazaar.errors import Conflict, CouponNotApplicable, NotFound, ValidationError
from bazaar.ledger import Coupon, applicable, coupon_discount, normalize_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CouponPreview:
    code: str
    discount_percentage: int
    discount: Money
    final_total: Money


class CouponService:
    def __init__(self, sessions: SessionFactory) -> None:
        self._sessions = sessions

    async def create(
        self,
        code: str,
        discount_percentage: int,
        *,
        min_purchase: Money = 0,
        max_purchase: Money | None = None,
        usage_limit: int | None = None,
    ) -> Coupon:
        code = normalize_code(code)
        if not code:
            raise ValidationError("Code and discount percentage are required")
        if not 0 <= discount_percentage <= 100:
            raise ValidationError("discountPercentage must be between 0 and 100")
        if min_purchase < 0:
            raise ValidationError("minPurchase must be >= 0")
        max_purchase = max_purchase or MAX_PURCHASE
        if max_purchase < min_purchase:
            raise ValidationError("maxPurchase must be >= minPurchase")
        usage_limit = usage_limit or 1
        if usage_limit < 0:
            raise ValidationError("usageLimit must be >= 0")

        async with transaction(self._sessions) as session:
            taken = await session.scalar(select(CouponTable.id).where(CouponTable.code == code))
            if taken is not None:
                raise Conflict("Coupon code already exists")
            row = CouponTable(
                id=new_id("cpn"),
                code=code,
                discount_percentage=discount_percentage,
                min_purchase=min_purchase,
                max_purchase=max_purchase,
                usage_limit=usage_limit,
                status=CouponStatus.ACTIVE.value,
                created_at=utcnow(),
            )
            session.add(row)
            try:
                await session.flush()
            except IntegrityError as exc:
                raise Conflict("Coupon code already exists") from exc
            coupon = Coupon.from_row(row)

        logger.info("Coupon %s created (%d%%, %d use(s))", code, discount_percentage, usage_limit)
        return coupon

    async def set_status(self, coupon_id: CouponId, status: CouponStatus) -> Coupon:
        async with transaction(self._sessions) as session:
            row = await session.get(CouponTable, coupon_id)
            if row is None:
                raise NotFound("Coupon", coupon_id)
            row.status = status.value
            await session.flush()
            return Coupon.from_row(row)

    async def delete(self, coupon_id: CouponId) -> None:
        async with transaction(self._sessions) as session:
            row = await session.get(CouponTable, coupon_id)
            if row is None:
                raise NotFound("Coupon", coupon_id)
            await session.delete(row)
        logger.info("Coupon %s deleted", coupon_id)

    async def list_coupons(self) -> list[Coupon]:
        async with self._sessions() as session:
            rows = await session.scalars(select(CouponTable).order_by(CouponTable.created_at.desc()))
            return [Coupon.from_row(r) for r in rows.all()]

    async def preview(self, code: str, cart_total: Money) -> CouponPreview:
        """Discount a coupon would give on ``cart_total``. Binds nothing."""
        code = normalize_code(code)
        if not code:
            raise ValidationError("Coupon code is required")

        async with self._sessions() as session:
            row = await session.scalar(
                select(CouponTable).where(
                    CouponTable.code == code, CouponTable.status == CouponStatus.ACTIVE.value
                )
            )
            if row is None:
                raise NotFound("Coupon", code)
            coupon = Coupon.from_row(row)

        if coupon.usage_limit <= 0:
            raise CouponNotApplicable("Coupon usage limit reached")
        if cart_total < coupon.min_purchase:
            raise CouponNotApplicable(f"Minimum purchase is ₹{format_amount(coupon.min_purchase)}")
        if cart_total > coupon.max_purchase:
            raise CouponNotApplicable(
                f"Maximum purchase for this coupon is ₹{format_amount(coupon.max_purchase)}"
            )

        discount = coupon_discount(cart_total, coupon.discount_percentage)
        return CouponPreview(
            code=coupon.code,
            discount_percentage=coupon.discount_percentage,
            discount=discount,
            final_total=max(cart_total - discount, 0),
        )

    async def verify(self, code: str, total: Money) -> Coupon:
        """Same predicate as the binding reservation, without the decrement."""
        if not normalize_code(code):
            raise ValidationError("Coupon code is required")
        async with self._sessions() as session:
            row = await session.scalar(select(CouponTable).where(*applicable(code, total)))
            if row is None:
                raise CouponNotApplicable()
            return Coupon.from_row(row)


__all__ = ("CouponPreview", "CouponService")
