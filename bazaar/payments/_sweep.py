"""
Expiry sweep for pending orders.

Online checkouts that never hear back from the gateway would otherwise
hold their coupon use forever. The sweep deletes every pending order past
``expires_at`` and releases its coupon.

    sweeper = PendingOrderSweeper(sessions)
    await sweeper.sweep()                       # one pass, returns count
    await sweeper.run_forever(interval=3600.0)  # background loop
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import select

from bazaar._types import utcnow
from bazaar.db import PendingOrderTable, SessionFactory, transaction
from bazaar.ledger import CouponLedger
from bazaar.payments._pending import claim

logger = logging.getLogger(__name__)


class PendingOrderSweeper:
    def __init__(self, sessions: SessionFactory, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._sessions = sessions
        self._clock = clock

    async def sweep(self, now: datetime | None = None) -> int:
        """Expire pending orders with ``expires_at <= now``. Each one is its own transaction."""
        now = now or self._clock()
        async with self._sessions() as session:
            expired = (
                await session.execute(
                    select(PendingOrderTable.id, PendingOrderTable.coupon_id).where(
                        PendingOrderTable.expires_at <= now
                    )
                )
            ).all()

        swept = 0
        for pending_id, coupon_id in expired:
            async with transaction(self._sessions) as session:
                # Lost the race to a webhook: nothing left to release.
                if not await claim(session, pending_id):
                    continue
                if coupon_id:
                    await CouponLedger(session).release(coupon_id)
            swept += 1

        if swept:
            logger.info("Expired %d pending order(s)", swept)
        return swept

    async def run_forever(self, interval: float) -> None:
        while True:
            try:
                await self.sweep()
            except Exception:
                logger.exception("Pending order sweep failed")
            await asyncio.sleep(interval)


__all__ = ("PendingOrderSweeper",)
