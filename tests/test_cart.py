from __future__ import annotations

import pytest

from bazaar.catalog import ProductDraft, ProductPatch
from bazaar.db import ProductTable, transaction
from bazaar.errors import InsufficientStock, InvalidVariant, NotFound, ProductNotFound, ValidationError

from tests.conftest import PHOTO


async def test_empty_cart(carts):
    cart = await carts.get("nobody")
    assert cart.items == ()
    assert cart.total_amount == 0


async def test_add_merges_same_variant(carts, pickle):
    pid = pickle.product.id
    await carts.add("u1", pid, "250g")
    await carts.add("u1", pid, "250g")
    cart = await carts.add("u1", pid, "500g")

    assert [(i.variant_label, i.quantity) for i in cart.items] == [("250g", 2), ("500g", 1)]
    assert cart.total_amount == 2 * 15000 + 28000
    assert cart.item_count == 3
    assert cart.distinct_item_count == 2


async def test_add_defaults_to_default_variant(carts, pickle):
    cart = await carts.add("u1", pickle.product.id)
    assert cart.items[0].variant_label == "250g"
    assert cart.items[0].image == PHOTO


async def test_add_checks_stock_and_variant(carts, pickle):
    pid = pickle.product.id
    await carts.add("u1", pid, "500g")
    with pytest.raises(InsufficientStock):
        await carts.add("u1", pid, "500g")
    with pytest.raises(InvalidVariant):
        await carts.add("u1", pid, "2kg")


async def test_price_is_frozen_at_add(carts, catalog, tea):
    await carts.add("u1", tea.product.id)
    await catalog.update_product(tea.product.id, ProductPatch(price=99900))

    cart = await carts.add("u1", tea.product.id)
    assert cart.items[0].price_at_add == 20000
    assert cart.items[0].quantity == 2


async def test_update_quantity_and_remove(carts, pickle, tea):
    await carts.add("u1", pickle.product.id, "250g")
    await carts.add("u1", tea.product.id)

    cart = await carts.update("u1", pickle.product.id, "250g", 4)
    assert cart.items[0].quantity == 4

    with pytest.raises(InsufficientStock):
        await carts.update("u1", pickle.product.id, "250g", 6)

    cart = await carts.update("u1", pickle.product.id, "250g", 0)
    assert [i.product_id for i in cart.items] == [tea.product.id]

    cart = await carts.update("u1", tea.product.id, "", 0)
    assert cart.items == ()
    assert (await carts.get("u1")).items == ()


async def test_update_errors(carts, pickle):
    with pytest.raises(NotFound, match="Cart not found"):
        await carts.update("u1", pickle.product.id, "250g", 1)

    await carts.add("u1", pickle.product.id, "250g")
    with pytest.raises(NotFound, match="Cart item not found"):
        await carts.update("u1", pickle.product.id, "500g", 1)
    with pytest.raises(ValidationError):
        await carts.update("u1", pickle.product.id, "250g", -1)


async def test_clear(carts, tea):
    await carts.add("u1", tea.product.id)
    assert (await carts.clear("u1")).items == ()
    assert (await carts.get("u1")).items == ()


async def test_missing_product(carts):
    with pytest.raises(ProductNotFound):
        await carts.add("u1", "prd_missing")
    with pytest.raises(ValidationError):
        await carts.add("u1", "")


async def test_product_without_photos_cannot_be_added(carts, sessions, catalog):
    view = await catalog.create_product(ProductDraft(name="Plain", photos=(PHOTO,), price=100))
    async with transaction(sessions) as session:
        row = await session.get(ProductTable, view.product.id)
        row.photos = []

    with pytest.raises(ValidationError, match="no images"):
        await carts.add("u1", view.product.id)
