"""
Order queries and archiving.

A reference is either a 4-digit order code or an order id; lookups try
active orders first and fall back to history.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar._types import OrderStatus, PaymentMethod, UserId, utcnow
from bazaar.db import OrderHistoryTable, OrderTable, SessionFactory, transaction
from bazaar.errors import NotFound, ValidationError
from bazaar.orders._types import Order

logger = logging.getLogger(__name__)

ORDER_CODE = re.compile(r"^\d{4}$")
TERMINAL = (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


def _methods(include_online: bool, include_cod: bool) -> tuple[str, ...]:
    methods = []
    if include_cod:
        methods.append(PaymentMethod.COD.value)
    if include_online:
        methods.append(PaymentMethod.ONLINE.value)
    return tuple(methods)


class OrderService:
    def __init__(self, sessions: SessionFactory) -> None:
        self._sessions = sessions

    async def list_user_orders(
        self,
        user_id: UserId,
        *,
        include_all: bool = True,
        include_online: bool = True,
        include_cod: bool = True,
    ) -> list[Order]:
        """Active orders merged with history, newest first. No method selected means all methods."""
        methods = _methods(include_online, include_cod)
        async with self._sessions() as session:
            active_stmt = select(OrderTable).where(OrderTable.user_id == user_id)
            if methods:
                active_stmt = active_stmt.where(OrderTable.payment_method.in_(methods))
            orders = [Order.from_row(r) for r in (await session.scalars(active_stmt)).all()]

            if include_all:
                history_stmt = select(OrderHistoryTable).where(OrderHistoryTable.user_id == user_id)
                if methods:
                    history_stmt = history_stmt.where(OrderHistoryTable.payment_method.in_(methods))
                orders.extend(Order.from_history_row(r) for r in (await session.scalars(history_stmt)).all())

        orders.sort(key=lambda o: o.sort_date, reverse=True)
        return orders

    async def get_order(self, user_id: UserId, ref: str) -> Order:
        ref = ref.strip()
        if not ref:
            raise ValidationError("Order id is required")
        async with self._sessions() as session:
            row = await session.scalar(
                select(OrderTable).where(OrderTable.user_id == user_id, _match(OrderTable, ref))
            )
            if row is not None:
                return Order.from_row(row)
            history = await self._find_history(session, user_id, ref)
        if history is None:
            raise NotFound("Order", ref)
        return history

    async def list_history(self, user_id: UserId) -> list[Order]:
        async with self._sessions() as session:
            rows = await session.scalars(
                select(OrderHistoryTable)
                .where(OrderHistoryTable.user_id == user_id)
                .order_by(OrderHistoryTable.completed_at.desc(), OrderHistoryTable.created_at.desc())
            )
            return [Order.from_history_row(r) for r in rows.all()]

    async def get_history(self, user_id: UserId, ref: str) -> Order:
        ref = ref.strip()
        if not ref:
            raise ValidationError("Order id is required")
        async with self._sessions() as session:
            history = await self._find_history(session, user_id, ref)
        if history is None:
            raise NotFound("Order", ref)
        return history

    async def archive(self, order_code: str, status: OrderStatus) -> Order:
        """Move an active order into history with a terminal status."""
        if status not in TERMINAL:
            raise ValidationError("status must be Delivered or Cancelled")

        async with transaction(self._sessions) as session:
            row = await session.scalar(select(OrderTable).where(OrderTable.order_code == order_code))
            if row is None:
                raise NotFound("Order", order_code)

            history = OrderHistoryTable(
                id=row.id,
                order_code=row.order_code,
                user_id=row.user_id,
                items=list(row.items),
                shipping_address=dict(row.shipping_address),
                payment_method=row.payment_method,
                total_amount=row.total_amount,
                coupon_id=row.coupon_id,
                payment_status=row.payment_status,
                status=status.value,
                payment_intent_id=row.payment_intent_id,
                created_at=row.created_at,
                completed_at=utcnow(),
            )
            await session.execute(delete(OrderTable).where(OrderTable.id == row.id))
            session.add(history)
            await session.flush()
            archived = Order.from_history_row(history)

        logger.info("Order %s archived as %s", order_code, status.value)
        return archived

    async def _find_history(self, session: AsyncSession, user_id: UserId, ref: str) -> Order | None:
        row = await session.scalar(
            select(OrderHistoryTable).where(
                OrderHistoryTable.user_id == user_id, _match(OrderHistoryTable, ref)
            )
        )
        return Order.from_history_row(row) if row is not None else None


def _match(table: type[OrderTable] | type[OrderHistoryTable], ref: str):
    if ORDER_CODE.match(ref):
        return table.order_code == ref
    return table.id == ref


__all__ = ("OrderService", "ORDER_CODE", "TERMINAL")
