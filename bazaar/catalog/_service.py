"""
Catalog service: product admin, storefront reads and reviews.

    catalog = CatalogService(sessions)
    view = await catalog.create_product(ProductDraft(name="Mango Pickle", photos=(url,), ...))
    page = await catalog.list_products(ProductQuery(q="pickle", sort="price_asc"))
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bazaar._types import ComboPriceMode, Money, ProductId, ProductType, new_id, utcnow
from bazaar.catalog._normalize import normalize_combo, normalize_variants
from bazaar.catalog._types import (
    SORTS,
    ComboItem,
    Product,
    ProductDraft,
    ProductPage,
    ProductPatch,
    ProductQuery,
    ProductView,
    Review,
    ReviewDraft,
    Variant,
    VariantStock,
)
from bazaar.db import ComboItemTable, ProductTable, ReviewTable, SessionFactory, VariantTable, transaction
from bazaar.errors import Conflict, InvalidCombo, ProductNotFound, ValidationError

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
MAX_REVIEWS = 50
MAX_CITY_LENGTH = 60
DUPLICATE_REVIEW = "You already reviewed this product. (One review per product)"


# ═══════════════════════════════════════════════════════════════════════════════
# Combo meta
# ═══════════════════════════════════════════════════════════════════════════════


def combo_meta(product: Product, children: Mapping[ProductId, Product]) -> tuple[Money, bool]:
    """
    Storefront price and availability.

    A missing child or unknown child variant marks the combo out of stock
    rather than failing the read.
    """
    avail = product.availability
    base = avail.default.price if isinstance(avail, VariantStock) else product.price

    if not product.is_combo:
        return base, product.in_stock

    total = 0
    in_stock = True
    for item in product.combo_items:
        child = children.get(item.product_id)
        if child is None:
            in_stock = False
            continue
        child_avail = child.availability
        if isinstance(child_avail, VariantStock):
            variant = child_avail.select(item.variant_label)
            if variant is None:
                in_stock = False
                continue
            if variant.stock < item.quantity:
                in_stock = False
            total += variant.price * item.quantity
        else:
            if not child_avail.in_stock:
                in_stock = False
            total += child.price * item.quantity

    if product.combo_price_mode is ComboPriceMode.SUM_MINUS_DISCOUNT:
        return max(total - product.combo_discount, 0), in_stock
    return base, in_stock


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _ordering(sort: str) -> tuple:
    match sort:
        case "price_asc":
            return (ProductTable.price.asc(),)
        case "price_desc":
            return (ProductTable.price.desc(),)
        case "oldest":
            return (ProductTable.created_at.asc(),)
        case "display_order":
            return (ProductTable.display_order.asc(), ProductTable.created_at.desc())
        case _:
            return (ProductTable.created_at.desc(),)


def _clean_photos(photos: Iterable[str]) -> list[str]:
    cleaned = [p.strip() for p in photos if p and p.strip()]
    if not cleaned:
        raise ValidationError("At least one image is required")
    return cleaned


def _variant_rows(variants: Sequence[Variant]) -> list[VariantTable]:
    return [
        VariantTable(
            position=i,
            label=v.label,
            label_key=v.label.casefold(),
            price=v.price,
            stock=v.stock,
            is_default=v.is_default,
            sku=v.sku,
        )
        for i, v in enumerate(variants)
    ]


def _combo_rows(items: Sequence[ComboItem]) -> list[ComboItemTable]:
    return [
        ComboItemTable(
            position=i,
            child_product_id=ci.product_id,
            variant_label=ci.variant_label,
            quantity=ci.quantity,
        )
        for i, ci in enumerate(items)
    ]


def _mirror_default(row: ProductTable, variants: Sequence[Variant]) -> None:
    default = next(v for v in variants if v.is_default)
    row.price = default.price
    row.in_stock = any(v.stock > 0 for v in variants)


# ═══════════════════════════════════════════════════════════════════════════════
# Service
# ═══════════════════════════════════════════════════════════════════════════════


class CatalogService:
    def __init__(self, sessions: SessionFactory) -> None:
        self._sessions = sessions

    # ─── Admin ───────────────────────────────────────────────────────────────────

    async def create_product(self, draft: ProductDraft) -> ProductView:
        name = draft.name.strip()
        if not name:
            raise ValidationError("Name is required")
        if draft.price < 0:
            raise ValidationError("Price must be >= 0")
        photos = _clean_photos(draft.photos)
        variants = normalize_variants(draft.variants)
        product_id = new_id("prd")
        combo = normalize_combo(
            product_id, draft.product_type, draft.combo_items, draft.combo_price_mode, draft.combo_discount
        )

        async with transaction(self._sessions) as session:
            await self._ensure_unique_name(session, name)
            await self._ensure_acyclic(session, product_id, combo.items)

            row = ProductTable(
                id=product_id,
                name=name,
                name_key=name.casefold(),
                description=draft.description.strip(),
                photos=photos,
                price=draft.price,
                in_stock=draft.in_stock,
                product_type=combo.product_type.value,
                combo_price_mode=combo.price_mode.value,
                combo_discount=combo.discount,
                show_in_combos_section=draft.show_in_combos_section,
                display_order=draft.display_order,
                created_at=utcnow(),
                variants=_variant_rows(variants),
                combo_items=_combo_rows(combo.items),
            )
            if variants:
                _mirror_default(row, variants)
            session.add(row)
            await self._flush_unique(session, name)
            view = await self._view(session, Product.from_row(row))

        logger.info("Product %s created (%s)", product_id, name)
        return view

    async def update_product(self, product_id: ProductId, patch: ProductPatch) -> ProductView:
        async with transaction(self._sessions) as session:
            row = await session.get(ProductTable, product_id)
            if row is None:
                raise ProductNotFound(product_id)

            if patch.name is not None:
                name = patch.name.strip()
                if not name:
                    raise ValidationError("Name is required")
                if name.casefold() != row.name_key:
                    await self._ensure_unique_name(session, name)
                row.name, row.name_key = name, name.casefold()
            if patch.description is not None:
                row.description = patch.description.strip()
            if patch.photos is not None:
                row.photos = _clean_photos(patch.photos)

            await self._apply_combo(session, row, patch)

            if patch.variants is not None:
                variants = normalize_variants(patch.variants)
                row.variants.clear()
                await session.flush()
                row.variants.extend(_variant_rows(variants))
                if variants:
                    _mirror_default(row, variants)

            # Legacy fields are only authoritative without variants.
            if not row.variants:
                if patch.price is not None:
                    if patch.price < 0:
                        raise ValidationError("Price must be >= 0")
                    row.price = patch.price
                if patch.in_stock is not None:
                    row.in_stock = patch.in_stock

            if patch.show_in_combos_section is not None:
                row.show_in_combos_section = patch.show_in_combos_section
            if patch.display_order is not None:
                row.display_order = patch.display_order

            await self._flush_unique(session, row.name)
            view = await self._view(session, Product.from_row(row))

        logger.info("Product %s updated", product_id)
        return view

    async def delete_product(self, product_id: ProductId) -> None:
        async with transaction(self._sessions) as session:
            row = await session.get(ProductTable, product_id)
            if row is None:
                raise ProductNotFound(product_id)
            await session.execute(delete(ReviewTable).where(ReviewTable.product_id == product_id))
            await session.delete(row)
        logger.info("Product %s deleted", product_id)

    async def update_display_order(self, entries: Sequence[tuple[ProductId, int]]) -> int:
        """Bulk set display order. Returns how many products matched."""
        if not entries:
            raise ValidationError("orders must be a non-empty array")
        matched = 0
        async with transaction(self._sessions) as session:
            for product_id, display_order in entries:
                if not product_id:
                    raise ValidationError("productId is required for each order row")
                result = await session.execute(
                    update(ProductTable)
                    .where(ProductTable.id == product_id)
                    .values(display_order=display_order)
                )
                matched += result.rowcount
        return matched

    # ─── Storefront ──────────────────────────────────────────────────────────────

    async def get_product(self, product_id: ProductId) -> ProductView:
        async with self._sessions() as session:
            row = await session.get(ProductTable, product_id)
            if row is None:
                raise ProductNotFound(product_id)
            return await self._view(session, Product.from_row(row))

    async def list_products(self, query: ProductQuery) -> ProductPage:
        page = max(query.page, 1)
        limit = min(max(query.limit, 1), MAX_PAGE_SIZE)
        sort = query.sort if query.sort in SORTS else "newest"

        conds = []
        term = query.q.strip()
        if term:
            pattern = f"%{_escape_like(term)}%"
            conds.append(
                or_(
                    ProductTable.name.ilike(pattern, escape="\\"),
                    ProductTable.description.ilike(pattern, escape="\\"),
                )
            )
        if query.in_stock is not None:
            conds.append(ProductTable.in_stock == query.in_stock)
        if query.only_combos:
            conds.append(ProductTable.product_type == ProductType.COMBO.value)
        elif query.product_type is not None:
            conds.append(ProductTable.product_type == query.product_type.value)
        if query.show_in_combos_section is not None:
            conds.append(ProductTable.show_in_combos_section == query.show_in_combos_section)

        async with self._sessions() as session:
            total = await session.scalar(select(func.count()).select_from(ProductTable).where(*conds)) or 0
            rows = (
                await session.scalars(
                    select(ProductTable)
                    .where(*conds)
                    .order_by(*_ordering(sort))
                    .offset((page - 1) * limit)
                    .limit(limit)
                )
            ).all()
            cache: dict[ProductId, Product | None] = {}
            items = tuple([await self._view(session, Product.from_row(r), cache) for r in rows])

        return ProductPage(items=items, total=total, page=page, pages=max(-(-total // limit), 1))

    # ─── Reviews ─────────────────────────────────────────────────────────────────

    async def list_reviews(self, product_id: ProductId) -> tuple[Review, ...]:
        """Newest first, at most ``MAX_REVIEWS``."""
        async with self._sessions() as session:
            if await session.get(ProductTable, product_id) is None:
                raise ProductNotFound(product_id)
            rows = (
                await session.scalars(
                    select(ReviewTable)
                    .where(ReviewTable.product_id == product_id)
                    .order_by(ReviewTable.created_at.desc())
                    .limit(MAX_REVIEWS)
                )
            ).all()
        return tuple(Review.from_row(r) for r in rows)

    async def add_review(self, draft: ReviewDraft) -> Review:
        if not 1 <= draft.rating <= 5:
            raise ValidationError("Rating must be 1 to 5")
        comment = draft.comment.strip()
        if not comment:
            raise ValidationError("Review comment is required")
        city = draft.city.strip()
        if len(city) > MAX_CITY_LENGTH:
            raise ValidationError(f"City must be {MAX_CITY_LENGTH} characters or less")

        async with transaction(self._sessions) as session:
            if await session.get(ProductTable, draft.product_id) is None:
                raise ProductNotFound(draft.product_id)
            existing = await session.scalar(
                select(ReviewTable.id).where(
                    ReviewTable.product_id == draft.product_id, ReviewTable.user_id == draft.user_id
                )
            )
            if existing is not None:
                raise Conflict(DUPLICATE_REVIEW)
            row = ReviewTable(
                id=new_id("rev"),
                product_id=draft.product_id,
                user_id=draft.user_id,
                user_name=draft.user_name.strip() or "Customer",
                city=city,
                rating=draft.rating,
                comment=comment,
                created_at=utcnow(),
            )
            session.add(row)
            try:
                await session.flush()
            except IntegrityError as exc:
                raise Conflict(DUPLICATE_REVIEW) from exc
            review = Review.from_row(row)

        logger.info("Review %s added to product %s by %s", review.id, review.product_id, review.user_id)
        return review

    # ─── Helpers ─────────────────────────────────────────────────────────────────

    async def _view(
        self,
        session: AsyncSession,
        product: Product,
        cache: dict[ProductId, Product | None] | None = None,
    ) -> ProductView:
        cache = {} if cache is None else cache
        children: dict[ProductId, Product] = {}
        for item in product.combo_items:
            if item.product_id not in cache:
                row = await session.get(ProductTable, item.product_id)
                cache[item.product_id] = Product.from_row(row) if row is not None else None
            child = cache[item.product_id]
            if child is not None:
                children[item.product_id] = child
        price, in_stock = combo_meta(product, children)
        return ProductView(product=product, computed_price=price, computed_in_stock=in_stock)

    async def _apply_combo(self, session: AsyncSession, row: ProductTable, patch: ProductPatch) -> None:
        touched = (
            patch.product_type,
            patch.combo_items,
            patch.combo_price_mode,
            patch.combo_discount,
        )
        if all(field is None for field in touched):
            return

        existing = tuple(ComboItem(ci.child_product_id, ci.variant_label, ci.quantity) for ci in row.combo_items)
        spec = normalize_combo(
            row.id,
            patch.product_type or ProductType(row.product_type),
            patch.combo_items if patch.combo_items is not None else existing,
            patch.combo_price_mode or ComboPriceMode(row.combo_price_mode),
            patch.combo_discount if patch.combo_discount is not None else row.combo_discount,
        )
        await self._ensure_acyclic(session, row.id, spec.items)

        row.product_type = spec.product_type.value
        row.combo_price_mode = spec.price_mode.value
        row.combo_discount = spec.discount
        row.combo_items.clear()
        await session.flush()
        row.combo_items.extend(_combo_rows(spec.items))

    async def _ensure_unique_name(self, session: AsyncSession, name: str) -> None:
        taken = await session.scalar(select(ProductTable.id).where(ProductTable.name_key == name.casefold()))
        if taken is not None:
            raise Conflict("Product name already exists")

    async def _flush_unique(self, session: AsyncSession, name: str) -> None:
        try:
            await session.flush()
        except IntegrityError as exc:
            raise Conflict("Product name already exists") from exc

    async def _ensure_acyclic(
        self, session: AsyncSession, product_id: ProductId, items: Iterable[ComboItem]
    ) -> None:
        """Children must exist and must not lead back to ``product_id``."""
        frontier = [ci.product_id for ci in items]
        seen: set[ProductId] = set()
        first_level = set(frontier)
        while frontier:
            current = frontier.pop()
            if current == product_id:
                raise InvalidCombo(product_id)
            if current in seen:
                continue
            seen.add(current)
            if current in first_level:
                exists = await session.scalar(select(ProductTable.id).where(ProductTable.id == current))
                if exists is None:
                    raise ProductNotFound(current)
            children = await session.scalars(
                select(ComboItemTable.child_product_id).where(ComboItemTable.combo_id == current)
            )
            frontier.extend(children.all())


__all__ = ("CatalogService", "combo_meta", "MAX_PAGE_SIZE")
