"""
Catalog: products, variants, combos and pricing.

    from bazaar.catalog import PricingResolver, RequestedLine

    resolver = PricingResolver(session)
    line = await resolver.resolve(RequestedLine("prd_1", quantity=2, variant_label="500g"))
    line.unit_price, line.stock_keys

Availability is either ``LegacyAvailability(in_stock)`` or
``VariantStock(variants)``; product-level price and in-stock mirror the
default variant when variants exist.
"""

from bazaar.catalog._normalize import ComboSpec, normalize_combo, normalize_variants
from bazaar.catalog._pricing import (
    PricingResolver,
    RequestedLine,
    ResolvedCart,
    ResolvedLine,
    StockKey,
    aggregate_stock_keys,
)
from bazaar.catalog._service import CatalogService, combo_meta
from bazaar.catalog._types import (
    SORTS,
    Availability,
    ComboItem,
    LegacyAvailability,
    Product,
    ProductDraft,
    ProductPage,
    ProductPatch,
    ProductQuery,
    ProductView,
    Review,
    ReviewDraft,
    Variant,
    VariantDraft,
    VariantStock,
)

__all__ = (
    # Types
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
    # Normalization
    "normalize_variants",
    "normalize_combo",
    "ComboSpec",
    # Pricing
    "RequestedLine",
    "StockKey",
    "aggregate_stock_keys",
    "ResolvedLine",
    "ResolvedCart",
    "PricingResolver",
    # Service
    "CatalogService",
    "combo_meta",
)
