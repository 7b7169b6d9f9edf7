from __future__ import annotations

import json

import pytest

from bazaar._types import OrderStatus, PaymentMethod
from bazaar.catalog import RequestedLine
from bazaar.checkout import CheckoutRequest
from bazaar.errors import NotFound, ValidationError
from bazaar.orders import ShippingAddress
from bazaar.payments import sign

from tests.conftest import ADDRESS, WEBHOOK_SECRET


async def _cod(checkout, product_id: str, user: str = "u1"):
    outcome = await checkout.create_order(
        CheckoutRequest(
            user_id=user,
            items=(RequestedLine(product_id, 1),),
            shipping_address=ADDRESS,
            payment_method=PaymentMethod.COD,
        )
    )
    return outcome.order


def test_shipping_address_requires_fields():
    with pytest.raises(ValidationError, match="shippingAddress.phone is required"):
        ShippingAddress.from_mapping({"name": "A", "line1": "x", "city": "c", "state": "s", "pincode": "1"})

    address = ShippingAddress.from_mapping(
        {"name": " A ", "phone": "1", "line1": "x", "city": "c", "state": "s", "pincode": "1", "email": ""}
    )
    assert address.name == "A"
    assert address.email is None


async def test_lookup_by_code_or_id(checkout, orders, tea):
    order = await _cod(checkout, tea.product.id)

    assert (await orders.get_order("u1", order.order_code)).id == order.id
    assert (await orders.get_order("u1", order.id)).order_code == order.order_code
    with pytest.raises(NotFound):
        await orders.get_order("u2", order.order_code)
    with pytest.raises(ValidationError):
        await orders.get_order("u1", " ")


async def test_archive_moves_order_to_history(checkout, orders, tea):
    order = await _cod(checkout, tea.product.id)

    archived = await orders.archive(order.order_code, OrderStatus.DELIVERED)

    assert archived.is_history
    assert archived.order_status is OrderStatus.DELIVERED
    assert archived.completed_at is not None
    assert (await orders.get_history("u1", order.order_code)).id == order.id
    found = await orders.get_order("u1", order.order_code)
    assert found.is_history

    with pytest.raises(NotFound):
        await orders.archive(order.order_code, OrderStatus.CANCELLED)


async def test_archive_requires_terminal_status(checkout, orders, tea):
    order = await _cod(checkout, tea.product.id)
    with pytest.raises(ValidationError):
        await orders.archive(order.order_code, OrderStatus.PLACED)


async def test_list_merges_active_and_history(checkout, orders, reconciler, tea):
    first = await _cod(checkout, tea.product.id)
    await orders.archive(first.order_code, OrderStatus.DELIVERED)
    second = await _cod(checkout, tea.product.id)
    await _cod(checkout, tea.product.id, user="u2")

    pending = (
        await checkout.create_order(
            CheckoutRequest(
                user_id="u1",
                items=(RequestedLine(tea.product.id, 1),),
                shipping_address=ADDRESS,
                payment_method=PaymentMethod.ONLINE,
            )
        )
    ).pending_order
    body = json.dumps(
        {
            "event": "payment.captured",
            "payload": {"payment": {"entity": {"id": "pay_1", "order_id": pending.payment_intent_id}}},
        }
    ).encode()
    online = (await reconciler.handle(body, sign(WEBHOOK_SECRET, body))).order

    everything = await orders.list_user_orders("u1")
    assert {o.id for o in everything} == {first.id, second.id, online.id}
    dates = [o.sort_date for o in everything]
    assert dates == sorted(dates, reverse=True)

    active_only = await orders.list_user_orders("u1", include_all=False)
    assert {o.id for o in active_only} == {second.id, online.id}

    cod_only = await orders.list_user_orders("u1", include_online=False)
    assert {o.id for o in cod_only} == {first.id, second.id}

    none_selected = await orders.list_user_orders("u1", include_online=False, include_cod=False)
    assert len(none_selected) == 3

    history = await orders.list_history("u1")
    assert [o.id for o in history] == [first.id]
