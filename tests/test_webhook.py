from __future__ import annotations

import asyncio
import json
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from bazaar._types import PaymentMethod, PaymentStatus, utcnow
from bazaar.catalog import RequestedLine
from bazaar.checkout import CheckoutRequest
from bazaar.db import CouponTable, OrderTable, PendingOrderTable, TransactionTable, VariantTable
from bazaar.errors import InsufficientStock, InvalidSignature, PendingOrderNotFound, ValidationError
from bazaar.payments import PaymentEvent, PaymentReconciler, WebhookAction, sign, verify_signature

from tests.conftest import ADDRESS, WEBHOOK_SECRET, HangingNotifier


def _payload(event: str, gateway_order_id: str, payment_id: str = "pay_1") -> bytes:
    return json.dumps(
        {"event": event, "payload": {"payment": {"entity": {"id": payment_id, "order_id": gateway_order_id}}}}
    ).encode()


async def _start_online(checkout, carts, product_id: str, quantity: int, label: str = "", coupon=None):
    await carts.add("u1", product_id, label)
    outcome = await checkout.create_order(
        CheckoutRequest(
            user_id="u1",
            items=(RequestedLine(product_id, quantity, label),),
            shipping_address=ADDRESS,
            payment_method=PaymentMethod.ONLINE,
            coupon_code=coupon,
        )
    )
    return outcome.pending_order


def test_signature_roundtrip_and_rejections():
    body = b'{"event":"payment.captured"}'
    verify_signature("s3cret", body, sign("s3cret", body))
    with pytest.raises(InvalidSignature):
        verify_signature("s3cret", body, sign("other", body))
    with pytest.raises(InvalidSignature):
        verify_signature("", body, sign("", body))
    with pytest.raises(InvalidSignature):
        verify_signature("s3cret", body, None)
    with pytest.raises(InvalidSignature):
        verify_signature("s3cret", body, "\xff" * 64)
    with pytest.raises(InvalidSignature):
        verify_signature("s3cret", body, "\udcff" + sign("s3cret", body)[1:])


def test_event_parsing():
    event = PaymentEvent.parse(_payload("payment.captured", "order_9", "pay_7"))
    assert (event.event, event.gateway_order_id, event.payment_id) == ("payment.captured", "order_9", "pay_7")

    with pytest.raises(ValidationError):
        PaymentEvent.parse(b"not json")
    with pytest.raises(ValidationError):
        PaymentEvent.parse(b"[1, 2]")


async def test_bad_signature_changes_nothing(reconciler, checkout, carts, sessions, tea):
    pending = await _start_online(checkout, carts, tea.product.id, 1)
    body = _payload("payment.captured", pending.payment_intent_id)

    with pytest.raises(InvalidSignature):
        await reconciler.handle(body, "deadbeef")

    async with sessions() as session:
        assert await session.get(PendingOrderTable, pending.id) is not None


async def test_captured_promotes_pending_order(reconciler, checkout, carts, sessions, pickle, notifier):
    pending = await _start_online(checkout, carts, pickle.product.id, 2, "250g")
    body = _payload("payment.captured", pending.payment_intent_id, "pay_42")

    outcome = await reconciler.handle(body, sign(WEBHOOK_SECRET, body))

    assert outcome.action is WebhookAction.ORDER_CREATED
    order = outcome.order
    assert order.payment_status is PaymentStatus.PAID
    assert order.payment_method is PaymentMethod.ONLINE
    assert order.total_amount == pending.total_amount == 30000
    assert order.payment_intent_id == pending.payment_intent_id

    async with sessions() as session:
        assert await session.get(PendingOrderTable, pending.id) is None
        stock = await session.scalar(
            select(VariantTable.stock).where(
                VariantTable.product_id == pickle.product.id, VariantTable.label == "250g"
            )
        )
        receipt = await session.scalar(select(TransactionTable).where(TransactionTable.order_id == order.id))
    assert stock == 3
    assert receipt.transaction_id == "pay_42"
    assert receipt.amount == 30000
    assert (await carts.get("u1")).items == ()
    assert notifier.sent == [(order.order_code, "paid", 30000, ADDRESS.email)]


async def test_captured_replay_is_not_found(reconciler, checkout, carts, sessions, pickle):
    pending = await _start_online(checkout, carts, pickle.product.id, 1, "250g")
    body = _payload("payment.captured", pending.payment_intent_id)
    signature = sign(WEBHOOK_SECRET, body)

    await reconciler.handle(body, signature)
    with pytest.raises(PendingOrderNotFound):
        await reconciler.handle(body, signature)

    async with sessions() as session:
        assert await session.scalar(select(func.count()).select_from(OrderTable)) == 1
        stock = await session.scalar(
            select(VariantTable.stock).where(
                VariantTable.product_id == pickle.product.id, VariantTable.label == "250g"
            )
        )
    assert stock == 4


async def test_captured_without_stock_keeps_pending(reconciler, checkout, carts, sessions, pickle):
    pending = await _start_online(checkout, carts, pickle.product.id, 1, "500g")
    async with sessions() as session, session.begin():
        variant = await session.scalar(
            select(VariantTable).where(VariantTable.product_id == pickle.product.id, VariantTable.label == "500g")
        )
        variant.stock = 0

    body = _payload("payment.captured", pending.payment_intent_id)
    with pytest.raises(InsufficientStock):
        await reconciler.handle(body, sign(WEBHOOK_SECRET, body))

    async with sessions() as session:
        assert await session.get(PendingOrderTable, pending.id) is not None
        assert await session.scalar(select(func.count()).select_from(OrderTable)) == 0


async def test_failed_releases_coupon(reconciler, checkout, carts, sessions, tea, save10):
    pending = await _start_online(checkout, carts, tea.product.id, 3, coupon="SAVE10")
    body = _payload("payment.failed", pending.payment_intent_id)

    outcome = await reconciler.handle(body, sign(WEBHOOK_SECRET, body))
    again = await reconciler.handle(body, sign(WEBHOOK_SECRET, body))

    assert outcome.action is WebhookAction.PENDING_DISCARDED
    assert again.action is WebhookAction.IGNORED
    async with sessions() as session:
        assert await session.get(PendingOrderTable, pending.id) is None
        uses = await session.scalar(select(CouponTable.usage_limit).where(CouponTable.id == save10.id))
    assert uses == 3


async def test_unknown_event_is_ignored(reconciler):
    body = _payload("refund.processed", "order_x")
    outcome = await reconciler.handle(body, sign(WEBHOOK_SECRET, body))
    assert outcome.action is WebhookAction.IGNORED
    assert outcome.event == "refund.processed"


async def test_sweep_then_captured_finds_nothing(reconciler, checkout, carts, sweeper, tea):
    pending = await _start_online(checkout, carts, tea.product.id, 1)
    assert await sweeper.sweep(utcnow() + timedelta(hours=1)) == 1

    body = _payload("payment.captured", pending.payment_intent_id)
    with pytest.raises(PendingOrderNotFound):
        await reconciler.handle(body, sign(WEBHOOK_SECRET, body))


async def test_hanging_notifier_does_not_block_webhook(checkout, carts, sessions, tea):
    notifier = HangingNotifier()
    reconciler = PaymentReconciler(sessions, WEBHOOK_SECRET, notifier, notify_timeout=0.05)
    pending = await _start_online(checkout, carts, tea.product.id, 1)
    body = _payload("payment.captured", pending.payment_intent_id)

    outcome = await asyncio.wait_for(reconciler.handle(body, sign(WEBHOOK_SECRET, body)), 5)

    assert outcome.action is WebhookAction.ORDER_CREATED
    assert notifier.started == [outcome.order.order_code]
