from __future__ import annotations

from dataclasses import replace

import pytest
from sqlalchemy import func, select

from bazaar._types import ComboPriceMode, ProductType
from bazaar.catalog import (
    ComboItem,
    ProductDraft,
    ProductPatch,
    ProductQuery,
    ReviewDraft,
    VariantDraft,
    normalize_combo,
    normalize_variants,
)
from bazaar.db import ReviewTable
from bazaar.errors import (
    Conflict,
    InvalidCombo,
    InvalidComboQuantity,
    ProductNotFound,
    ValidationError,
)

from tests.conftest import PHOTO


def test_first_flagged_variant_is_the_only_default():
    variants = normalize_variants(
        [
            VariantDraft("S", 100, 1),
            VariantDraft("M", 200, 1, is_default=True),
            VariantDraft("L", 300, 1, is_default=True),
        ]
    )
    assert [v.is_default for v in variants] == [False, True, False]


def test_first_variant_defaults_when_none_flagged():
    variants = normalize_variants([VariantDraft(" S ", 100), VariantDraft("M", 200)])
    assert variants[0].label == "S"
    assert variants[0].is_default


@pytest.mark.parametrize(
    "drafts",
    [
        [VariantDraft("", 100)],
        [VariantDraft("S", -1)],
        [VariantDraft("S", 100, -2)],
        [VariantDraft("S", 100), VariantDraft("s", 120)],
    ],
)
def test_variant_validation(drafts):
    with pytest.raises(ValidationError):
        normalize_variants(drafts)


def test_combo_normalization():
    single = normalize_combo("p1", ProductType.SINGLE, [ComboItem("x")], ComboPriceMode.FIXED, 0)
    assert single.items == ()

    with pytest.raises(ValidationError):
        normalize_combo("p1", ProductType.COMBO, [], ComboPriceMode.FIXED, 0)
    with pytest.raises(InvalidComboQuantity):
        normalize_combo("p1", ProductType.COMBO, [ComboItem("x", quantity=0)], ComboPriceMode.FIXED, 0)
    with pytest.raises(InvalidCombo):
        normalize_combo("p1", ProductType.COMBO, [ComboItem("p1")], ComboPriceMode.FIXED, 0)
    with pytest.raises(ValidationError):
        normalize_combo("p1", ProductType.COMBO, [ComboItem("x")], ComboPriceMode.FIXED, -5)


async def test_variant_product_mirrors_default(pickle):
    product = pickle.product
    assert product.price == 15000
    assert product.in_stock
    assert [v.label for v in product.variants] == ["250g", "500g"]


async def test_names_are_unique_case_insensitively(catalog, tea):
    with pytest.raises(Conflict):
        await catalog.create_product(ProductDraft(name="masala tea", photos=(PHOTO,), price=1))


async def test_photos_and_name_are_required(catalog):
    with pytest.raises(ValidationError):
        await catalog.create_product(ProductDraft(name="No Photo", photos=(" ",)))
    with pytest.raises(ValidationError):
        await catalog.create_product(ProductDraft(name="  ", photos=(PHOTO,)))


async def test_combo_children_must_exist(catalog):
    with pytest.raises(ProductNotFound):
        await catalog.create_product(
            ProductDraft(
                name="Ghost Box",
                photos=(PHOTO,),
                product_type=ProductType.COMBO,
                combo_items=(ComboItem("prd_missing"),),
            )
        )


async def test_combo_cycles_are_rejected(catalog, tea):
    outer = await catalog.create_product(
        ProductDraft(
            name="Outer",
            photos=(PHOTO,),
            product_type=ProductType.COMBO,
            combo_items=(ComboItem(tea.product.id),),
        )
    )
    inner = await catalog.create_product(
        ProductDraft(
            name="Inner",
            photos=(PHOTO,),
            product_type=ProductType.COMBO,
            combo_items=(ComboItem(outer.product.id),),
        )
    )
    with pytest.raises(InvalidCombo):
        await catalog.update_product(outer.product.id, ProductPatch(combo_items=(ComboItem(inner.product.id),)))


async def test_update_replaces_variants(catalog, pickle):
    view = await catalog.update_product(
        pickle.product.id,
        ProductPatch(variants=(VariantDraft("250G", 16000, 0), VariantDraft("1kg", 50000, 2, is_default=True))),
    )
    assert [v.label for v in view.product.variants] == ["250G", "1kg"]
    assert view.product.price == 50000
    assert view.product.in_stock


async def test_legacy_fields_ignored_for_variant_products(catalog, pickle, tea):
    view = await catalog.update_product(pickle.product.id, ProductPatch(price=1, in_stock=False))
    assert view.product.price == 15000
    assert view.product.in_stock

    view = await catalog.update_product(tea.product.id, ProductPatch(price=25000, in_stock=False))
    assert view.product.price == 25000
    assert not view.product.in_stock


async def test_rename_conflict(catalog, tea, pickle):
    with pytest.raises(Conflict):
        await catalog.update_product(pickle.product.id, ProductPatch(name="MASALA TEA"))
    view = await catalog.update_product(tea.product.id, ProductPatch(name="Masala Chai"))
    assert view.product.name == "Masala Chai"


async def test_delete_product(catalog, tea):
    await catalog.delete_product(tea.product.id)
    with pytest.raises(ProductNotFound):
        await catalog.get_product(tea.product.id)
    with pytest.raises(ProductNotFound):
        await catalog.delete_product(tea.product.id)


async def test_reviews_one_per_user_newest_first(catalog, tea):
    first = await catalog.add_review(ReviewDraft(tea.product.id, "u1", 4, "  Good chai  ", city=" Pune "))
    second = await catalog.add_review(ReviewDraft(tea.product.id, "u2", 5, "Best tea", user_name="Ravi"))

    assert first.comment == "Good chai"
    assert first.city == "Pune"
    assert first.user_name == "Customer"
    assert second.user_name == "Ravi"

    with pytest.raises(Conflict, match="One review per product"):
        await catalog.add_review(ReviewDraft(tea.product.id, "u1", 3, "Changed my mind"))

    reviews = await catalog.list_reviews(tea.product.id)
    assert [r.user_id for r in reviews] == ["u2", "u1"]


@pytest.mark.parametrize(
    ("draft", "message"),
    [
        (ReviewDraft("", "u1", 0, "ok"), "Rating must be 1 to 5"),
        (ReviewDraft("", "u1", 6, "ok"), "Rating must be 1 to 5"),
        (ReviewDraft("", "u1", 3, "   "), "Review comment is required"),
        (ReviewDraft("", "u1", 3, "ok", city="x" * 61), "City must be 60 characters or less"),
    ],
)
async def test_review_validation(catalog, tea, draft, message):
    with pytest.raises(ValidationError, match=message):
        await catalog.add_review(replace(draft, product_id=tea.product.id))


async def test_reviews_need_a_product_and_go_with_it(catalog, sessions, tea):
    with pytest.raises(ProductNotFound):
        await catalog.add_review(ReviewDraft("prd_missing", "u1", 5, "Nice"))
    with pytest.raises(ProductNotFound):
        await catalog.list_reviews("prd_missing")

    await catalog.add_review(ReviewDraft(tea.product.id, "u1", 5, "Nice"))
    await catalog.delete_product(tea.product.id)
    again = await catalog.create_product(ProductDraft(name="Masala Tea", photos=(PHOTO,), price=20000))

    assert await catalog.list_reviews(again.product.id) == ()
    async with sessions() as session:
        assert await session.scalar(select(func.count()).select_from(ReviewTable)) == 0


async def test_display_order_and_listing(catalog, tea, pickle):
    matched = await catalog.update_display_order([(pickle.product.id, 1), (tea.product.id, 2), ("prd_x", 3)])
    assert matched == 2

    page = await catalog.list_products(ProductQuery())
    assert [v.product.name for v in page.items] == ["Mango Pickle", "Masala Tea"]

    with pytest.raises(ValidationError):
        await catalog.update_display_order([])


async def test_listing_filters_and_pagination(catalog, tea, pickle):
    combo = await catalog.create_product(
        ProductDraft(
            name="Tea Duo",
            photos=(PHOTO,),
            product_type=ProductType.COMBO,
            combo_items=(ComboItem(tea.product.id, quantity=2),),
            combo_price_mode=ComboPriceMode.SUM_MINUS_DISCOUNT,
            combo_discount=1000,
            show_in_combos_section=True,
        )
    )

    page = await catalog.list_products(ProductQuery(q="tea", sort="price_asc"))
    assert {v.product.id for v in page.items} == {tea.product.id, combo.product.id}

    combos = await catalog.list_products(ProductQuery(only_combos=True))
    assert [v.product.id for v in combos.items] == [combo.product.id]
    assert combos.items[0].computed_price == 39000
    assert combos.items[0].computed_in_stock

    first = await catalog.list_products(ProductQuery(limit=2, page=1, sort="newest"))
    second = await catalog.list_products(ProductQuery(limit=2, page=2, sort="newest"))
    assert (first.total, first.pages) == (3, 2)
    assert len(first.items) == 2 and len(second.items) == 1


async def test_search_escapes_wildcards(catalog, tea):
    page = await catalog.list_products(ProductQuery(q="%"))
    assert page.total == 0
    assert page.pages == 1


async def test_combo_meta_tolerates_missing_children(catalog, tea):
    combo = await catalog.create_product(
        ProductDraft(
            name="Lonely Box",
            photos=(PHOTO,),
            price=5000,
            product_type=ProductType.COMBO,
            combo_items=(ComboItem(tea.product.id),),
        )
    )
    await catalog.delete_product(tea.product.id)

    view = await catalog.get_product(combo.product.id)
    assert view.computed_price == 5000
    assert not view.computed_in_stock
