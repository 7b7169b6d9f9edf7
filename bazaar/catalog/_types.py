"""
Catalog types.

Availability is a closed sum: a product either carries a plain in-stock
flag (legacy) or a list of sized variants with numeric stock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TypeAlias

from bazaar._types import ComboPriceMode, Money, ProductId, ProductType, UserId
from bazaar.db import ProductTable, ReviewTable

# ═══════════════════════════════════════════════════════════════════════════════
# Variants and availability
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Variant:
    label: str
    price: Money
    stock: int
    is_default: bool = False
    sku: str = ""


@dataclass(frozen=True, slots=True)
class LegacyAvailability:
    """No numeric counter; overselling is possible."""

    in_stock: bool


@dataclass(frozen=True, slots=True)
class VariantStock:
    variants: tuple[Variant, ...]

    @property
    def default(self) -> Variant:
        for v in self.variants:
            if v.is_default:
                return v
        return self.variants[0]

    def select(self, label: str) -> Variant | None:
        """Explicit label match, or the default variant when no label is given."""
        if not label:
            return self.default
        for v in self.variants:
            if v.label == label:
                return v
        return None

    @property
    def in_stock(self) -> bool:
        return any(v.stock > 0 for v in self.variants)


Availability: TypeAlias = LegacyAvailability | VariantStock


# ═══════════════════════════════════════════════════════════════════════════════
# Product
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ComboItem:
    product_id: ProductId
    variant_label: str = ""
    quantity: int = 1


@dataclass(frozen=True, slots=True)
class Product:
    id: ProductId
    name: str
    description: str
    photos: tuple[str, ...]
    price: Money
    availability: Availability
    product_type: ProductType = ProductType.SINGLE
    combo_items: tuple[ComboItem, ...] = ()
    combo_price_mode: ComboPriceMode = ComboPriceMode.FIXED
    combo_discount: Money = 0
    show_in_combos_section: bool = False
    display_order: int = 9999
    created_at: datetime | None = None

    @property
    def is_combo(self) -> bool:
        return self.product_type is ProductType.COMBO

    @property
    def in_stock(self) -> bool:
        return self.availability.in_stock

    @property
    def variants(self) -> tuple[Variant, ...]:
        if isinstance(self.availability, VariantStock):
            return self.availability.variants
        return ()

    @property
    def image(self) -> str:
        return self.photos[0] if self.photos else ""

    @classmethod
    def from_row(cls, row: ProductTable) -> Product:
        availability: Availability
        if row.variants:
            availability = VariantStock(
                tuple(
                    Variant(label=v.label, price=v.price, stock=v.stock, is_default=v.is_default, sku=v.sku)
                    for v in row.variants
                )
            )
        else:
            availability = LegacyAvailability(row.in_stock)
        return cls(
            id=row.id,
            name=row.name,
            description=row.description,
            photos=tuple(row.photos or ()),
            price=row.price,
            availability=availability,
            product_type=ProductType(row.product_type),
            combo_items=tuple(
                ComboItem(ci.child_product_id, ci.variant_label, ci.quantity) for ci in row.combo_items
            ),
            combo_price_mode=ComboPriceMode(row.combo_price_mode),
            combo_discount=row.combo_discount,
            show_in_combos_section=row.show_in_combos_section,
            display_order=row.display_order,
            created_at=row.created_at,
        )


@dataclass(frozen=True, slots=True)
class ProductView:
    """Product plus the storefront's computed combo meta."""

    product: Product
    computed_price: Money
    computed_in_stock: bool


@dataclass(frozen=True, slots=True)
class ProductPage:
    items: tuple[ProductView, ...]
    total: int
    page: int
    pages: int


# ═══════════════════════════════════════════════════════════════════════════════
# Admin input
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class VariantDraft:
    label: str
    price: Money
    stock: int = 0
    is_default: bool = False
    sku: str = ""


@dataclass(frozen=True, slots=True)
class ProductDraft:
    name: str
    photos: tuple[str, ...]
    description: str = ""
    price: Money = 0
    in_stock: bool = True
    variants: tuple[VariantDraft, ...] = ()
    product_type: ProductType = ProductType.SINGLE
    combo_items: tuple[ComboItem, ...] = ()
    combo_price_mode: ComboPriceMode = ComboPriceMode.FIXED
    combo_discount: Money = 0
    show_in_combos_section: bool = False
    display_order: int = 9999


@dataclass(frozen=True, slots=True)
class ProductPatch:
    """Partial update. ``None`` keeps the stored value."""

    name: str | None = None
    description: str | None = None
    photos: tuple[str, ...] | None = None
    price: Money | None = None
    in_stock: bool | None = None
    variants: tuple[VariantDraft, ...] | None = None
    product_type: ProductType | None = None
    combo_items: tuple[ComboItem, ...] | None = None
    combo_price_mode: ComboPriceMode | None = None
    combo_discount: Money | None = None
    show_in_combos_section: bool | None = None
    display_order: int | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Reviews
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ReviewDraft:
    product_id: ProductId
    user_id: UserId
    rating: int
    comment: str
    city: str = ""
    user_name: str = ""


@dataclass(frozen=True, slots=True)
class Review:
    id: str
    product_id: ProductId
    user_id: UserId
    user_name: str
    city: str
    rating: int
    comment: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: ReviewTable) -> Review:
        return cls(
            id=row.id,
            product_id=row.product_id,
            user_id=row.user_id,
            user_name=row.user_name,
            city=row.city,
            rating=row.rating,
            comment=row.comment,
            created_at=row.created_at,
        )


SORTS = ("display_order", "newest", "oldest", "price_asc", "price_desc")


@dataclass(frozen=True, slots=True)
class ProductQuery:
    q: str = ""
    page: int = 1
    limit: int = 24
    sort: str = "display_order"
    in_stock: bool | None = None
    product_type: ProductType | None = None
    only_combos: bool = False
    show_in_combos_section: bool | None = None


__all__ = (
    "Variant",
    "LegacyAvailability",
    "VariantStock",
    "Availability",
    "ComboItem",
    "Product",
    "ProductView",
    "ProductPage",
    "VariantDraft",
    "ProductDraft",
    "ProductPatch",
    "ProductQuery",
    "ReviewDraft",
    "Review",
    "SORTS",
)
