"""
Stock ledger.

Every decrement is a conditional UPDATE: ``stock = stock - q WHERE stock >= q``.
Zero affected rows means someone else got there first; the caller's
transaction is aborted by the raised InsufficientStock.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar._types import ProductId
from bazaar.catalog import StockKey, aggregate_stock_keys
from bazaar.db import ProductTable, VariantTable
from bazaar.errors import InsufficientStock, ValidationError

logger = logging.getLogger(__name__)


class StockLedger:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def reserve(self, adjustments: Iterable[StockKey]) -> None:
        """Decrement every key or raise. Partial effects roll back with the transaction."""
        batch = aggregate_stock_keys(adjustments)
        for key in batch:
            _check_quantity(key)
            result = await self._session.execute(
                update(VariantTable)
                .where(
                    VariantTable.product_id == key.product_id,
                    VariantTable.label == key.variant_label,
                    VariantTable.stock >= key.quantity,
                )
                .values(stock=VariantTable.stock - key.quantity)
            )
            if result.rowcount != 1:
                raise InsufficientStock(key.product_id, key.variant_label)

        await self._refresh(batch)
        if batch:
            logger.debug("Reserved stock for %d variant(s)", len(batch))

    async def release(self, adjustments: Iterable[StockKey]) -> None:
        batch = aggregate_stock_keys(adjustments)
        for key in batch:
            _check_quantity(key)
            result = await self._session.execute(
                update(VariantTable)
                .where(VariantTable.product_id == key.product_id, VariantTable.label == key.variant_label)
                .values(stock=VariantTable.stock + key.quantity)
            )
            if result.rowcount != 1:
                # Variant removed by an admin since the reservation.
                logger.warning(
                    "Cannot release stock for %s/%s: variant no longer exists",
                    key.product_id,
                    key.variant_label,
                )
        await self._refresh(batch)

    async def _refresh(self, batch: Iterable[StockKey]) -> None:
        seen: set[ProductId] = set()
        for key in batch:
            if key.product_id not in seen:
                seen.add(key.product_id)
                await self.refresh_product(key.product_id)

    async def refresh_product(self, product_id: ProductId) -> None:
        """Recompute the aggregate in-stock flag and mirror the default variant price."""
        rows = (
            await self._session.execute(
                select(VariantTable.stock, VariantTable.price, VariantTable.is_default)
                .where(VariantTable.product_id == product_id)
                .order_by(VariantTable.position)
            )
        ).all()
        if not rows:
            return

        default = next((r for r in rows if r.is_default), rows[0])
        await self._session.execute(
            update(ProductTable)
            .where(ProductTable.id == product_id)
            .values(in_stock=any(r.stock > 0 for r in rows), price=default.price)
        )


def _check_quantity(key: StockKey) -> None:
    if key.quantity < 1:
        raise ValidationError("Invalid quantity")


__all__ = ("StockLedger",)
