"""
Pricing resolver.

Turns a requested line (product, optional variant label, quantity) into a
frozen unit price and the stock keys a reservation has to decrement.

    resolver = PricingResolver(session)
    cart = await resolver.resolve_cart(lines, check_stock=True)
    cart.subtotal            # Σ unit_price × quantity
    cart.stock_keys          # aggregated per (product, variant)

Combos resolve every child at ``child_quantity × quantity``; their stock
keys are merged into the parent line.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from bazaar._types import ComboPriceMode, Money, ProductId
from bazaar.catalog._types import Product, VariantStock
from bazaar.db import ProductTable
from bazaar.errors import (
    ComboEmpty,
    InsufficientStock,
    InvalidCombo,
    InvalidComboQuantity,
    InvalidVariant,
    ProductNotFound,
    ValidationError,
)

# ═══════════════════════════════════════════════════════════════════════════════
# Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class RequestedLine:
    product_id: ProductId
    quantity: int
    variant_label: str = ""


@dataclass(frozen=True, slots=True)
class StockKey:
    product_id: ProductId
    variant_label: str
    quantity: int


def aggregate_stock_keys(keys: Iterable[StockKey]) -> tuple[StockKey, ...]:
    """Sum quantities per (product, variant), first-seen order."""
    totals: dict[tuple[ProductId, str], int] = {}
    for key in keys:
        slot = (key.product_id, key.variant_label)
        totals[slot] = totals.get(slot, 0) + key.quantity
    return tuple(StockKey(pid, label, qty) for (pid, label), qty in totals.items())


@dataclass(frozen=True, slots=True)
class ResolvedLine:
    product_id: ProductId
    name: str
    variant_label: str
    unit_price: Money
    quantity: int
    image: str = ""
    stock_keys: tuple[StockKey, ...] = ()

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity

    def as_record(self) -> dict[str, Any]:
        """Line as stored on pending orders, orders and receipts."""
        return {
            "product_id": self.product_id,
            "name": self.name,
            "variant_label": self.variant_label,
            "price_at_add": self.unit_price,
            "quantity": self.quantity,
        }


@dataclass(frozen=True, slots=True)
class ResolvedCart:
    lines: tuple[ResolvedLine, ...]

    @property
    def subtotal(self) -> Money:
        return sum(line.line_total for line in self.lines)

    @property
    def stock_keys(self) -> tuple[StockKey, ...]:
        return aggregate_stock_keys(key for line in self.lines for key in line.stock_keys)


# ═══════════════════════════════════════════════════════════════════════════════
# Resolver
# ═══════════════════════════════════════════════════════════════════════════════


class PricingResolver:
    """
    Resolves lines against the catalog as seen by ``session``.

    Products are loaded once per resolver. Resolve inside the same
    transaction that reserves, so prices and stock are read under the
    writer lock.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._products: dict[ProductId, Product] = {}

    async def product(self, product_id: ProductId) -> Product:
        cached = self._products.get(product_id)
        if cached is None:
            row = await self._session.get(ProductTable, product_id)
            if row is None:
                raise ProductNotFound(product_id)
            cached = self._products[product_id] = Product.from_row(row)
        return cached

    async def resolve(self, line: RequestedLine, *, check_stock: bool = False) -> ResolvedLine:
        if line.quantity < 1:
            raise ValidationError("Invalid quantity")
        if not line.product_id:
            raise ValidationError("productId is required")
        return await self._resolve(
            line.product_id, line.variant_label.strip(), line.quantity, check_stock, frozenset()
        )

    async def resolve_cart(
        self, lines: Iterable[RequestedLine], *, check_stock: bool = False
    ) -> ResolvedCart:
        return ResolvedCart(tuple([await self.resolve(line, check_stock=check_stock) for line in lines]))

    async def _resolve(
        self,
        product_id: ProductId,
        label: str,
        quantity: int,
        check_stock: bool,
        ancestors: frozenset[ProductId],
    ) -> ResolvedLine:
        if product_id in ancestors:
            raise InvalidCombo(product_id)

        product = await self.product(product_id)
        if product.is_combo:
            return await self._resolve_combo(product, label, quantity, check_stock, ancestors)

        avail = product.availability
        if isinstance(avail, VariantStock):
            variant = avail.select(label)
            if variant is None:
                raise InvalidVariant(product.id, label)
            if check_stock and variant.stock < quantity:
                raise InsufficientStock(product.id, variant.label)
            return ResolvedLine(
                product_id=product.id,
                name=product.name,
                variant_label=variant.label,
                unit_price=variant.price,
                quantity=quantity,
                image=product.image,
                stock_keys=(StockKey(product.id, variant.label, quantity),),
            )

        if not avail.in_stock:
            raise InsufficientStock(product.id, message="Product is out of stock")
        return ResolvedLine(
            product_id=product.id,
            name=product.name,
            variant_label="",
            unit_price=product.price,
            quantity=quantity,
            image=product.image,
        )

    async def _resolve_combo(
        self,
        combo: Product,
        label: str,
        quantity: int,
        check_stock: bool,
        ancestors: frozenset[ProductId],
    ) -> ResolvedLine:
        if not combo.combo_items:
            raise ComboEmpty(combo.id)

        path = ancestors | {combo.id}
        per_combo = 0
        keys = []
        for item in combo.combo_items:
            if item.quantity < 1:
                raise InvalidComboQuantity(combo.id)
            child = await self._resolve(
                item.product_id, item.variant_label, item.quantity * quantity, check_stock, path
            )
            per_combo += child.unit_price * item.quantity
            keys.extend(child.stock_keys)

        chosen_label = ""
        if combo.combo_price_mode is ComboPriceMode.SUM_MINUS_DISCOUNT:
            unit_price = max(per_combo - combo.combo_discount, 0)
        elif isinstance(combo.availability, VariantStock):
            # Combo variants only pick a price; stock lives on the children.
            variant = combo.availability.select(label)
            if variant is None:
                raise InvalidVariant(combo.id, label)
            unit_price, chosen_label = variant.price, variant.label
        else:
            unit_price = combo.price

        return ResolvedLine(
            product_id=combo.id,
            name=combo.name,
            variant_label=chosen_label,
            unit_price=unit_price,
            quantity=quantity,
            image=combo.image,
            stock_keys=aggregate_stock_keys(keys),
        )


__all__ = (
    "RequestedLine",
    "StockKey",
    "aggregate_stock_keys",
    "ResolvedLine",
    "ResolvedCart",
    "PricingResolver",
)
