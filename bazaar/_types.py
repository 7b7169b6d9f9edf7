"""
Core types for bazaar.

Identifier aliases, enums shared across packages and money helpers.

All money is an integer amount of minor currency units (paise for INR).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import TypeAlias

# ═══════════════════════════════════════════════════════════════════════════════
# Identity
# ═══════════════════════════════════════════════════════════════════════════════

UserId: TypeAlias = str
ProductId: TypeAlias = str
CouponId: TypeAlias = str
OrderId: TypeAlias = str
PendingOrderId: TypeAlias = str

Money: TypeAlias = int
"""Amount in minor currency units."""


def new_id(prefix: str) -> str:
    """Opaque record id, e.g. ``prd_1f2e3d4c5b6a``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ═══════════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════════


class ProductType(StrEnum):
    SINGLE = "single"
    COMBO = "combo"


class ComboPriceMode(StrEnum):
    FIXED = "fixed"
    SUM_MINUS_DISCOUNT = "sum_minus_discount"


class CouponStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class PaymentMethod(StrEnum):
    COD = "COD"
    ONLINE = "ONLINE"


class PaymentStatus(StrEnum):
    PENDING = "Pending"
    PAID = "Paid"


class OrderStatus(StrEnum):
    PLACED = "Placed"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

MINOR_PER_MAJOR = 100


def format_amount(amount: Money) -> str:
    """Render minor units as a major-unit string: ``50000`` → ``"500.00"``."""
    sign = "-" if amount < 0 else ""
    major, minor = divmod(abs(amount), MINOR_PER_MAJOR)
    return f"{sign}{major}.{minor:02d}"


__all__ = (
    "UserId",
    "ProductId",
    "CouponId",
    "OrderId",
    "PendingOrderId",
    "Money",
    "new_id",
    "utcnow",
    "ProductType",
    "ComboPriceMode",
    "CouponStatus",
    "PaymentMethod",
    "PaymentStatus",
    "OrderStatus",
    "MINOR_PER_MAJOR",
    "format_amount",
)
