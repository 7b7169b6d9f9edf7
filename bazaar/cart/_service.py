"""
Cart service.

Prices are frozen when a line is first added: later catalog price changes
do not touch ``price_at_add``. Stock is checked, never reserved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar._types import Money, ProductId, UserId, utcnow
from bazaar.catalog import PricingResolver, RequestedLine
from bazaar.db import CartItemTable, CartTable, SessionFactory, transaction
from bazaar.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartLine:
    product_id: ProductId
    variant_label: str
    quantity: int
    price_at_add: Money
    name: str
    image: str = ""

    @property
    def line_total(self) -> Money:
        return self.price_at_add * self.quantity


@dataclass(frozen=True, slots=True)
class Cart:
    user_id: UserId
    items: tuple[CartLine, ...] = ()

    @property
    def total_amount(self) -> Money:
        return sum(line.line_total for line in self.items)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    @property
    def distinct_item_count(self) -> int:
        return len(self.items)

    @classmethod
    def from_row(cls, row: CartTable | None, user_id: UserId) -> Cart:
        if row is None:
            return cls(user_id)
        return cls(
            user_id=row.user_id,
            items=tuple(
                CartLine(
                    product_id=i.product_id,
                    variant_label=i.variant_label,
                    quantity=i.quantity,
                    price_at_add=i.price_at_add,
                    name=i.name,
                    image=i.image,
                )
                for i in row.items
            ),
        )


async def clear_cart(session: AsyncSession, user_id: UserId) -> None:
    """Delete the user's cart inside the caller's transaction."""
    await session.execute(delete(CartItemTable).where(CartItemTable.user_id == user_id))
    await session.execute(delete(CartTable).where(CartTable.user_id == user_id))


def _recompute_total(row: CartTable) -> None:
    row.total_amount = sum(i.price_at_add * i.quantity for i in row.items)
    row.updated_at = utcnow()


# ═══════════════════════════════════════════════════════════════════════════════
# Service
# ═══════════════════════════════════════════════════════════════════════════════


class CartService:
    def __init__(self, sessions: SessionFactory) -> None:
        self._sessions = sessions

    async def get(self, user_id: UserId) -> Cart:
        async with self._sessions() as session:
            return Cart.from_row(await session.get(CartTable, user_id), user_id)

    async def add(self, user_id: UserId, product_id: ProductId, variant_label: str = "") -> Cart:
        """Add one unit. Repeated adds of the same (product, variant) increase its quantity."""
        if not product_id:
            raise ValidationError("Product ID is required")

        async with transaction(self._sessions) as session:
            resolver = PricingResolver(session)
            product = await resolver.product(product_id)
            if not product.photos:
                raise ValidationError("Product has no images")

            first = await resolver.resolve(
                RequestedLine(product_id, 1, variant_label), check_stock=True
            )

            row = await session.get(CartTable, user_id)
            if row is None:
                row = CartTable(user_id=user_id, total_amount=0, created_at=utcnow(), updated_at=utcnow())
                session.add(row)
                row.items = []

            existing = next(
                (
                    i
                    for i in row.items
                    if i.product_id == product_id and i.variant_label == first.variant_label
                ),
                None,
            )
            if existing is not None:
                await resolver.resolve(
                    RequestedLine(product_id, existing.quantity + 1, first.variant_label),
                    check_stock=True,
                )
                existing.quantity += 1
            else:
                row.items.append(
                    CartItemTable(
                        position=max((i.position for i in row.items), default=-1) + 1,
                        product_id=product_id,
                        variant_label=first.variant_label,
                        quantity=1,
                        price_at_add=first.unit_price,
                        name=product.name,
                        image=product.image,
                    )
                )

            _recompute_total(row)
            await session.flush()
            cart = Cart.from_row(row, user_id)

        logger.debug("User %s added %s/%s to cart", user_id, product_id, first.variant_label)
        return cart

    async def update(self, user_id: UserId, product_id: ProductId, variant_label: str, quantity: int) -> Cart:
        """Set a line's quantity; zero removes it. The cart goes away with its last line."""
        if not product_id or quantity < 0:
            raise ValidationError("Invalid product or quantity")
        variant_label = variant_label.strip()

        async with transaction(self._sessions) as session:
            row = await session.get(CartTable, user_id)
            if row is None:
                raise NotFound("Cart")

            line = next(
                (i for i in row.items if i.product_id == product_id and i.variant_label == variant_label),
                None,
            )
            if line is None:
                raise NotFound("Cart item")

            if quantity == 0:
                row.items.remove(line)
            else:
                resolver = PricingResolver(session)
                product = await resolver.product(product_id)
                if product.variants and not variant_label:
                    raise ValidationError("variantLabel is required for variant products")
                await resolver.resolve(RequestedLine(product_id, quantity, variant_label), check_stock=True)
                line.quantity = quantity

            if not row.items:
                await session.delete(row)
                await session.flush()
                return Cart(user_id)

            _recompute_total(row)
            await session.flush()
            return Cart.from_row(row, user_id)

    async def clear(self, user_id: UserId) -> Cart:
        async with transaction(self._sessions) as session:
            await clear_cart(session, user_id)
        return Cart(user_id)


__all__ = ("CartLine", "Cart", "CartService", "clear_cart")
