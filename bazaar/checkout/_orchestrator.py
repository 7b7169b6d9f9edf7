"""
Checkout orchestrator.

    START → VALIDATE_ITEMS → RESERVE_STOCK (COD only) → RESERVE_COUPON
          → COD:    CREATE_ORDER → CLEAR_CART → commit
          → ONLINE: CREATE_PENDING_ORDER → commit
                    → CREATE_PAYMENT_INTENT → ATTACH_INTENT_ID

Everything up to the commit happens in one transaction; any failure there
leaves no trace. The gateway is called only after the commit so a slow
gateway never holds the writer lock.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar._types import Money, OrderStatus, PaymentMethod, PaymentStatus, new_id, utcnow
from bazaar.cart import clear_cart
from bazaar.catalog import PricingResolver, ResolvedCart
from bazaar.checkout._types import AwaitingPayment, CheckoutOutcome, CheckoutRequest, PlacedOrder
from bazaar.config import Settings
from bazaar.db import OrderTable, PendingOrderTable, SessionFactory, transaction
from bazaar.errors import EmptyCart, ExternalServiceError
from bazaar.ledger import Coupon, CouponLedger, StockLedger, coupon_discount
from bazaar.notify import Notifier, notify_quietly
from bazaar.orders import Order, PendingOrder, RandomSource, generate_order_code
from bazaar.payments import PaymentGateway

logger = logging.getLogger(__name__)


class CheckoutService:
    def __init__(
        self,
        sessions: SessionFactory,
        gateway: PaymentGateway,
        notifier: Notifier,
        settings: Settings,
        *,
        rng: RandomSource | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._sessions = sessions
        self._gateway = gateway
        self._notifier = notifier
        self._settings = settings
        self._rng = rng
        self._clock = clock

    async def create_order(self, request: CheckoutRequest) -> CheckoutOutcome:
        if not request.items:
            raise EmptyCart()
        if request.payment_method is PaymentMethod.COD:
            return await self._place_cod(request)
        return await self._start_online(request)

    # ─── COD ─────────────────────────────────────────────────────────────────────

    async def _place_cod(self, request: CheckoutRequest) -> PlacedOrder:
        async with transaction(self._sessions) as session:
            cart = await PricingResolver(session).resolve_cart(request.items, check_stock=True)
            await StockLedger(session).reserve(cart.stock_keys)
            total, coupon = await self._apply_coupon(session, request, cart)
            total += self._settings.cod_fee

            code = await generate_order_code(
                session, attempts=self._settings.order_code_attempts, rng=self._rng
            )
            row = OrderTable(
                id=new_id("ord"),
                order_code=code,
                user_id=request.user_id,
                items=[line.as_record() for line in cart.lines],
                shipping_address=request.shipping_address.as_record(),
                payment_method=PaymentMethod.COD.value,
                total_amount=total,
                coupon_id=coupon.id if coupon else None,
                payment_status=PaymentStatus.PENDING.value,
                order_status=OrderStatus.PLACED.value,
                created_at=self._clock(),
            )
            session.add(row)
            await clear_cart(session, request.user_id)
            await session.flush()
            order = Order.from_row(row)

        logger.info("COD order %s placed for user %s, total %d", order.order_code, order.user_id, total)
        await notify_quietly(
            self._notifier,
            order.order_code,
            "placed",
            order.total_amount,
            request.shipping_address.email,
            timeout=self._settings.notify_timeout_seconds,
        )
        return PlacedOrder(order)

    # ─── ONLINE ──────────────────────────────────────────────────────────────────

    async def _start_online(self, request: CheckoutRequest) -> AwaitingPayment:
        now = self._clock()
        async with transaction(self._sessions) as session:
            # Stock is only taken once the payment is captured.
            cart = await PricingResolver(session).resolve_cart(request.items, check_stock=False)
            total, coupon = await self._apply_coupon(session, request, cart)

            row = PendingOrderTable(
                id=new_id("tmp"),
                user_id=request.user_id,
                items=[line.as_record() for line in cart.lines],
                shipping_address=request.shipping_address.as_record(),
                payment_method=PaymentMethod.ONLINE.value,
                total_amount=total,
                coupon_id=coupon.id if coupon else None,
                expires_at=now + self._settings.pending_order_ttl,
                created_at=now,
            )
            session.add(row)
            await session.flush()
            pending = PendingOrder.from_row(row)

        logger.info("Pending order %s created for user %s, total %d", pending.id, pending.user_id, total)

        try:
            intent = await self._gateway.create_intent(total, self._settings.currency, receipt=pending.id)
        except ExternalServiceError:
            # The pending order (and its coupon use) stays until the sweep expires it.
            logger.warning("Payment intent failed for pending order %s", pending.id)
            raise

        async with transaction(self._sessions) as session:
            await session.execute(
                update(PendingOrderTable)
                .where(PendingOrderTable.id == pending.id)
                .values(payment_intent_id=intent.id)
            )

        logger.info("Pending order %s attached to payment intent %s", pending.id, intent.id)
        return AwaitingPayment(pending_order=replace(pending, payment_intent_id=intent.id), intent=intent)

    # ─── Shared ──────────────────────────────────────────────────────────────────

    async def _apply_coupon(
        self, session: AsyncSession, request: CheckoutRequest, cart: ResolvedCart
    ) -> tuple[Money, Coupon | None]:
        total = cart.subtotal
        code = (request.coupon_code or "").strip()
        if not code:
            return total, None
        coupon = await CouponLedger(session).reserve(code, total)
        return total - coupon_discount(total, coupon.discount_percentage), coupon


__all__ = ("CheckoutService",)
