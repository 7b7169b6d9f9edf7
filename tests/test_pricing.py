from __future__ import annotations

import pytest

from bazaar._types import ComboPriceMode, ProductType
from bazaar.catalog import (
    ComboItem,
    PricingResolver,
    ProductDraft,
    RequestedLine,
    StockKey,
    VariantDraft,
    aggregate_stock_keys,
)
from bazaar.errors import InsufficientStock, InvalidVariant, ProductNotFound, ValidationError

from tests.conftest import PHOTO


def test_aggregate_stock_keys_sums_per_variant():
    keys = aggregate_stock_keys(
        [StockKey("a", "1kg", 2), StockKey("b", "", 1), StockKey("a", "1kg", 3)]
    )
    assert keys == (StockKey("a", "1kg", 5), StockKey("b", "", 1))


async def test_variant_line_uses_variant_price(sessions, pickle):
    async with sessions() as session:
        line = await PricingResolver(session).resolve(RequestedLine(pickle.product.id, 2, "500g"))
    assert line.unit_price == 28000
    assert line.line_total == 56000
    assert line.stock_keys == (StockKey(pickle.product.id, "500g", 2),)


async def test_empty_label_selects_default_variant(sessions, pickle):
    async with sessions() as session:
        line = await PricingResolver(session).resolve(RequestedLine(pickle.product.id, 1))
    assert line.variant_label == "250g"
    assert line.unit_price == 15000


async def test_unknown_variant_is_rejected(sessions, pickle):
    async with sessions() as session:
        with pytest.raises(InvalidVariant):
            await PricingResolver(session).resolve(RequestedLine(pickle.product.id, 1, "1kg"))


async def test_stock_checked_only_on_request(sessions, pickle):
    async with sessions() as session:
        resolver = PricingResolver(session)
        await resolver.resolve(RequestedLine(pickle.product.id, 3, "500g"))
        with pytest.raises(InsufficientStock):
            await resolver.resolve(RequestedLine(pickle.product.id, 3, "500g"), check_stock=True)


async def test_legacy_line_has_no_stock_keys(sessions, tea):
    async with sessions() as session:
        line = await PricingResolver(session).resolve(RequestedLine(tea.product.id, 4), check_stock=True)
    assert line.unit_price == 20000
    assert line.stock_keys == ()


async def test_legacy_out_of_stock(sessions, catalog):
    view = await catalog.create_product(
        ProductDraft(name="Sold Out", photos=(PHOTO,), price=100, in_stock=False)
    )
    async with sessions() as session:
        with pytest.raises(InsufficientStock, match="out of stock"):
            await PricingResolver(session).resolve(RequestedLine(view.product.id, 1))


async def test_bad_quantity_and_missing_product(sessions, tea):
    async with sessions() as session:
        resolver = PricingResolver(session)
        with pytest.raises(ValidationError):
            await resolver.resolve(RequestedLine(tea.product.id, 0))
        with pytest.raises(ProductNotFound):
            await resolver.resolve(RequestedLine("prd_missing", 1))


async def test_sum_minus_discount_combo(sessions, catalog, tea, pickle):
    combo = await catalog.create_product(
        ProductDraft(
            name="Breakfast Box",
            photos=(PHOTO,),
            product_type=ProductType.COMBO,
            combo_items=(
                ComboItem(tea.product.id, quantity=2),
                ComboItem(pickle.product.id, "250g", 1),
            ),
            combo_price_mode=ComboPriceMode.SUM_MINUS_DISCOUNT,
            combo_discount=5000,
        )
    )
    assert combo.computed_price == 2 * 20000 + 15000 - 5000

    async with sessions() as session:
        line = await PricingResolver(session).resolve(RequestedLine(combo.product.id, 2), check_stock=True)

    assert line.unit_price == 50000
    assert line.stock_keys == (StockKey(pickle.product.id, "250g", 2),)


async def test_fixed_combo_checks_children_stock(sessions, catalog, pickle):
    combo = await catalog.create_product(
        ProductDraft(
            name="Pickle Trio",
            photos=(PHOTO,),
            price=40000,
            product_type=ProductType.COMBO,
            combo_items=(ComboItem(pickle.product.id, "250g", 3),),
        )
    )
    async with sessions() as session:
        resolver = PricingResolver(session)
        line = await resolver.resolve(RequestedLine(combo.product.id, 1), check_stock=True)
        assert line.unit_price == 40000
        assert line.stock_keys == (StockKey(pickle.product.id, "250g", 3),)

        with pytest.raises(InsufficientStock):
            await resolver.resolve(RequestedLine(combo.product.id, 2), check_stock=True)


async def test_combo_variant_only_sets_price(sessions, catalog, tea):
    combo = await catalog.create_product(
        ProductDraft(
            name="Tea Pack",
            photos=(PHOTO,),
            product_type=ProductType.COMBO,
            combo_items=(ComboItem(tea.product.id, quantity=1),),
            variants=(VariantDraft("gift", price=25000, stock=0),),
        )
    )
    async with sessions() as session:
        line = await PricingResolver(session).resolve(RequestedLine(combo.product.id, 1, "gift"), check_stock=True)
    assert line.unit_price == 25000
    assert line.variant_label == "gift"
    assert line.stock_keys == ()
