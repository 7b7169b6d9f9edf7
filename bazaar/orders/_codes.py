"""
4-digit order codes.

Codes are drawn uniformly from 0000-9999 and must be unused by both active
and archived orders. The unique column on each table is the final guard.
"""

from __future__ import annotations

import random
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar.db import OrderHistoryTable, OrderTable
from bazaar.errors import OrderCodeExhausted

CODE_SPACE = 10_000
DEFAULT_ATTEMPTS = 30


class RandomSource(Protocol):
    def randrange(self, stop: int, /) -> int: ...


_system_random = random.SystemRandom()


async def code_in_use(session: AsyncSession, code: str) -> bool:
    active = await session.scalar(select(OrderTable.id).where(OrderTable.order_code == code).limit(1))
    if active is not None:
        return True
    archived = await session.scalar(
        select(OrderHistoryTable.id).where(OrderHistoryTable.order_code == code).limit(1)
    )
    return archived is not None


async def generate_order_code(
    session: AsyncSession,
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    rng: RandomSource | None = None,
) -> str:
    rng = rng or _system_random
    for _ in range(attempts):
        code = f"{rng.randrange(CODE_SPACE):04d}"
        if not await code_in_use(session, code):
            return code
    raise OrderCodeExhausted()


__all__ = ("RandomSource", "code_in_use", "generate_order_code", "CODE_SPACE", "DEFAULT_ATTEMPTS")
