"""Pending-order claims shared by the webhook and the expiry sweep."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar._types import PendingOrderId
from bazaar.db import PendingOrderTable


async def find_by_intent(session: AsyncSession, gateway_order_id: str) -> PendingOrderTable | None:
    return await session.scalar(
        select(PendingOrderTable).where(PendingOrderTable.payment_intent_id == gateway_order_id)
    )


async def claim(session: AsyncSession, pending_id: PendingOrderId) -> bool:
    """
    Delete the pending order; True if this transaction removed it.

    Whoever claims the row owns its follow-up (order creation or coupon
    release), so a racing webhook and sweep can never both act on it.
    """
    result = await session.execute(delete(PendingOrderTable).where(PendingOrderTable.id == pending_id))
    return result.rowcount == 1


__all__ = ("find_by_intent", "claim")
