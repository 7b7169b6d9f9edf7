"""Admin-input normalization for variants and combo composition."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from bazaar._types import ComboPriceMode, Money, ProductId, ProductType
from bazaar.catalog._types import ComboItem, Variant, VariantDraft
from bazaar.errors import InvalidCombo, InvalidComboQuantity, ValidationError


def normalize_variants(drafts: Iterable[VariantDraft]) -> tuple[Variant, ...]:
    """
    Validate variants and enforce exactly one default.

    The first variant flagged default wins; with none flagged the first
    variant becomes the default.
    """
    variants = [
        Variant(
            label=d.label.strip(),
            price=d.price,
            stock=d.stock,
            is_default=d.is_default,
            sku=d.sku.strip(),
        )
        for d in drafts
    ]

    for v in variants:
        if not v.label:
            raise ValidationError("Variant label is required")
        if v.price < 0:
            raise ValidationError("Variant price must be >= 0")
        if v.stock < 0:
            raise ValidationError("Variant stock must be >= 0")

    keys = [v.label.casefold() for v in variants]
    if len(set(keys)) != len(keys):
        raise ValidationError("Variant labels must be unique")

    if not variants:
        return ()

    default_idx = next((i for i, v in enumerate(variants) if v.is_default), 0)
    return tuple(replace(v, is_default=(i == default_idx)) for i, v in enumerate(variants))


@dataclass(frozen=True, slots=True)
class ComboSpec:
    product_type: ProductType
    items: tuple[ComboItem, ...]
    price_mode: ComboPriceMode
    discount: Money


def normalize_combo(
    product_id: ProductId | None,
    product_type: ProductType,
    items: Iterable[ComboItem],
    price_mode: ComboPriceMode,
    discount: Money,
) -> ComboSpec:
    """Single products carry no items; combos need at least one, none of them itself."""
    if discount < 0:
        raise ValidationError("comboDiscount must be >= 0")

    if product_type is not ProductType.COMBO:
        return ComboSpec(ProductType.SINGLE, (), price_mode, discount)

    normalized = tuple(
        ComboItem(ci.product_id.strip(), ci.variant_label.strip(), ci.quantity) for ci in items
    )
    if not normalized:
        raise ValidationError("comboItems must be a non-empty array for combo products")

    for ci in normalized:
        if not ci.product_id:
            raise ValidationError("comboItems.product is required")
        if ci.quantity < 1:
            raise InvalidComboQuantity(product_id or "")
        if product_id is not None and ci.product_id == product_id:
            raise InvalidCombo(product_id)

    return ComboSpec(ProductType.COMBO, normalized, price_mode, discount)


__all__ = ("normalize_variants", "ComboSpec", "normalize_combo")
