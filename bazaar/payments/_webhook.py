"""
Payment reconciliation.

The gateway reports payment outcomes to a webhook. ``payment.captured``
promotes the pending order into a paid order; ``payment.failed`` gives the
reserved coupon use back. Any other event is acknowledged and ignored.

    reconciler = PaymentReconciler(sessions, webhook_secret, notifier)
    outcome = await reconciler.handle(raw_body, signature_header)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from bazaar._types import OrderStatus, PaymentMethod, PaymentStatus, new_id, utcnow
from bazaar.cart import clear_cart
from bazaar.catalog import PricingResolver, RequestedLine
from bazaar.db import OrderTable, SessionFactory, TransactionTable, transaction
from bazaar.errors import PendingOrderNotFound, ValidationError
from bazaar.ledger import CouponLedger, StockLedger
from bazaar.notify import Notifier, notify_quietly
from bazaar.orders import Order, PendingOrder, RandomSource, generate_order_code
from bazaar.payments._pending import claim, find_by_intent
from bazaar.payments._signature import verify_signature

logger = logging.getLogger(__name__)

PAYMENT_CAPTURED = "payment.captured"
PAYMENT_FAILED = "payment.failed"


class WebhookAction(StrEnum):
    ORDER_CREATED = "order_created"
    PENDING_DISCARDED = "pending_discarded"
    IGNORED = "ignored"


@dataclass(frozen=True, slots=True)
class WebhookOutcome:
    event: str
    action: WebhookAction
    order: Order | None = None


@dataclass(frozen=True, slots=True)
class PaymentEvent:
    event: str
    gateway_order_id: str
    payment_id: str

    @classmethod
    def parse(cls, body: bytes) -> PaymentEvent:
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationError("Malformed webhook body") from exc
        if not isinstance(payload, Mapping):
            raise ValidationError("Malformed webhook body")

        event = str(payload.get("event") or "")
        entity = _entity(payload)
        return cls(
            event=event,
            gateway_order_id=str(entity.get("order_id") or ""),
            payment_id=str(entity.get("id") or ""),
        )


def _entity(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    node: Any = payload
    for key in ("payload", "payment", "entity"):
        node = node.get(key) if isinstance(node, Mapping) else None
    return node if isinstance(node, Mapping) else {}


class PaymentReconciler:
    def __init__(
        self,
        sessions: SessionFactory,
        webhook_secret: str,
        notifier: Notifier,
        *,
        order_code_attempts: int = 30,
        notify_timeout: float = 5.0,
        rng: RandomSource | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._sessions = sessions
        self._secret = webhook_secret
        self._notifier = notifier
        self._notify_timeout = notify_timeout
        self._attempts = order_code_attempts
        self._rng = rng
        self._clock = clock

    async def handle(self, body: bytes, signature: str | None) -> WebhookOutcome:
        verify_signature(self._secret, body, signature)
        event = PaymentEvent.parse(body)

        if event.event == PAYMENT_CAPTURED:
            return await self.captured(event)
        if event.event == PAYMENT_FAILED:
            return await self.failed(event)

        logger.info("Ignoring webhook event %r", event.event)
        return WebhookOutcome(event.event, WebhookAction.IGNORED)

    async def captured(self, event: PaymentEvent) -> WebhookOutcome:
        """
        Promote the pending order. Runs as one transaction.

        Lines are re-priced and stock is reserved against the catalog as it
        is now; the amount charged stays the pending order's total.
        """
        if not event.gateway_order_id:
            raise ValidationError("Webhook payment entity is missing order_id")

        async with transaction(self._sessions) as session:
            row = await find_by_intent(session, event.gateway_order_id)
            if row is None:
                raise PendingOrderNotFound(event.gateway_order_id)
            pending = PendingOrder.from_row(row)
            if not await claim(session, pending.id):
                raise PendingOrderNotFound(event.gateway_order_id)

            lines = [RequestedLine(i.product_id, i.quantity, i.variant_label) for i in pending.items]
            cart = await PricingResolver(session).resolve_cart(lines, check_stock=True)
            await StockLedger(session).reserve(cart.stock_keys)

            code = await generate_order_code(session, attempts=self._attempts, rng=self._rng)
            items = [line.as_record() for line in cart.lines]
            order_row = OrderTable(
                id=new_id("ord"),
                order_code=code,
                user_id=pending.user_id,
                items=items,
                shipping_address=pending.shipping_address.as_record(),
                payment_method=PaymentMethod.ONLINE.value,
                total_amount=pending.total_amount,
                coupon_id=pending.coupon_id,
                payment_status=PaymentStatus.PAID.value,
                order_status=OrderStatus.PLACED.value,
                payment_intent_id=pending.payment_intent_id,
                created_at=self._clock(),
            )
            session.add(order_row)
            session.add(
                TransactionTable(
                    id=new_id("txn"),
                    order_id=order_row.id,
                    user_id=order_row.user_id,
                    items=items,
                    amount=order_row.total_amount,
                    payment_method=PaymentMethod.ONLINE.value,
                    payment_status="Success",
                    transaction_id=event.payment_id,
                    created_at=self._clock(),
                )
            )
            await clear_cart(session, pending.user_id)
            await session.flush()
            order = Order.from_row(order_row)

        logger.info(
            "Payment %s captured: order %s created for user %s",
            event.payment_id,
            order.order_code,
            order.user_id,
        )
        await notify_quietly(
            self._notifier,
            order.order_code,
            "paid",
            order.total_amount,
            pending.shipping_address.email,
            timeout=self._notify_timeout,
        )
        return WebhookOutcome(event.event, WebhookAction.ORDER_CREATED, order)

    async def failed(self, event: PaymentEvent) -> WebhookOutcome:
        async with transaction(self._sessions) as session:
            pending = await find_by_intent(session, event.gateway_order_id) if event.gateway_order_id else None
            if pending is None:
                logger.info("payment.failed for unknown gateway order %r", event.gateway_order_id)
                return WebhookOutcome(event.event, WebhookAction.IGNORED)

            coupon_id = pending.coupon_id
            if not await claim(session, pending.id):
                return WebhookOutcome(event.event, WebhookAction.IGNORED)
            if coupon_id:
                await CouponLedger(session).release(coupon_id)

        logger.info("Payment failed for gateway order %s, pending order discarded", event.gateway_order_id)
        return WebhookOutcome(event.event, WebhookAction.PENDING_DISCARDED)


__all__ = (
    "PAYMENT_CAPTURED",
    "PAYMENT_FAILED",
    "WebhookAction",
    "WebhookOutcome",
    "PaymentEvent",
    "PaymentReconciler",
)
