"""
Coupon ledger.

usage_limit counts remaining uses. Reservation is a compare-and-swap
decrement guarded by the full applicability predicate; release adds the
use back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import ColumnElement, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar._types import CouponId, CouponStatus, Money
from bazaar.db import CouponTable
from bazaar.errors import CouponNotApplicable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Coupon:
    id: CouponId
    code: str
    discount_percentage: int
    min_purchase: Money
    max_purchase: Money
    usage_limit: int
    status: CouponStatus
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: CouponTable) -> Coupon:
        return cls(
            id=row.id,
            code=row.code,
            discount_percentage=row.discount_percentage,
            min_purchase=row.min_purchase,
            max_purchase=row.max_purchase,
            usage_limit=row.usage_limit,
            status=CouponStatus(row.status),
            created_at=row.created_at,
        )


def normalize_code(code: str) -> str:
    return code.strip().upper()


def coupon_discount(total: Money, percentage: int) -> Money:
    """
    round(total × pct / 100), half-up to whole major units.

    >>> coupon_discount(100000, 10)
    10000
    >>> coupon_discount(19950, 10)
    2000
    """
    return (total * percentage + 5000) // 10000 * 100


def applicable(code: str, total: Money) -> tuple[ColumnElement[bool], ...]:
    """Predicate shared by the binding reservation and the non-binding verify."""
    return (
        CouponTable.code == normalize_code(code),
        CouponTable.status == CouponStatus.ACTIVE.value,
        CouponTable.usage_limit > 0,
        CouponTable.min_purchase <= total,
        CouponTable.max_purchase >= total,
    )


class CouponLedger:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def reserve(self, code: str, total: Money) -> Coupon:
        """Consume one use or raise CouponNotApplicable."""
        predicate = applicable(code, total)
        row = await self._session.scalar(select(CouponTable).where(*predicate))
        if row is None:
            raise CouponNotApplicable()

        result = await self._session.execute(
            update(CouponTable)
            .where(CouponTable.id == row.id, *predicate)
            .values(usage_limit=CouponTable.usage_limit - 1)
        )
        if result.rowcount != 1:
            raise CouponNotApplicable()

        await self._session.refresh(row)
        logger.debug("Reserved coupon %s, %d use(s) left", row.code, row.usage_limit)
        return Coupon.from_row(row)

    async def release(self, coupon_id: CouponId) -> bool:
        """Give one use back. False when the coupon has since been deleted."""
        result = await self._session.execute(
            update(CouponTable)
            .where(CouponTable.id == coupon_id)
            .values(usage_limit=CouponTable.usage_limit + 1)
        )
        if result.rowcount != 1:
            logger.warning("Cannot release coupon %s: it no longer exists", coupon_id)
            return False
        return True


__all__ = (
    "Coupon",
    "normalize_code",
    "coupon_discount",
    "applicable",
    "CouponLedger",
)
