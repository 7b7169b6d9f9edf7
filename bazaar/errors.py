"""
Error taxonomy.

Every business failure is a ShopError carrying a kind and a terse,
user-safe message. Raising one inside ``bazaar.db.transaction`` aborts the
whole transaction; the wire layer turns it into ``{success: false, message}``.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import ClassVar


class ErrorKind(Enum):
    """Kinds of shop errors (drive the HTTP status)."""

    VALIDATION = auto()  # Malformed or missing request fields
    UNAUTHENTICATED = auto()  # No caller identity
    NOT_FOUND = auto()  # Product / coupon / order / pending order absent
    CONFLICT = auto()  # Unique name or code already taken
    INSUFFICIENT_STOCK = auto()
    COUPON_NOT_APPLICABLE = auto()
    INVALID_SIGNATURE = auto()  # Webhook signature mismatch
    ORDER_CODE_EXHAUSTED = auto()
    EXTERNAL_SERVICE = auto()  # Payment gateway unreachable or erroring


class ShopError(Exception):
    kind: ClassVar[ErrorKind] = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ═══════════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════════


class ValidationError(ShopError):
    kind = ErrorKind.VALIDATION


class EmptyCart(ValidationError):
    def __init__(self) -> None:
        super().__init__("Cart is empty")


class InvalidVariant(ValidationError):
    def __init__(self, product_id: str, label: str) -> None:
        super().__init__("Invalid variantLabel")
        self.product_id = product_id
        self.label = label


class ComboEmpty(ValidationError):
    def __init__(self, product_id: str) -> None:
        super().__init__("Combo has no items")
        self.product_id = product_id


class InvalidComboQuantity(ValidationError):
    def __init__(self, product_id: str) -> None:
        super().__init__("comboItems.quantity must be >= 1")
        self.product_id = product_id


class InvalidCombo(ValidationError):
    def __init__(self, product_id: str) -> None:
        super().__init__("Combo cannot include itself")
        self.product_id = product_id


class Unauthenticated(ShopError):
    kind = ErrorKind.UNAUTHENTICATED

    def __init__(self) -> None:
        super().__init__("Not authenticated")


# ═══════════════════════════════════════════════════════════════════════════════
# Lookup
# ═══════════════════════════════════════════════════════════════════════════════


class NotFound(ShopError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, id: str | None = None) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.id = id


class ProductNotFound(NotFound):
    def __init__(self, product_id: str) -> None:
        super().__init__("Product", product_id)


class PendingOrderNotFound(NotFound):
    """
    No pending order for a gateway order id.

    On a replayed ``payment.captured`` this is a benign duplicate.
    """

    def __init__(self, gateway_order_id: str) -> None:
        super().__init__("Pending order", gateway_order_id)


class Conflict(ShopError):
    kind = ErrorKind.CONFLICT


# ═══════════════════════════════════════════════════════════════════════════════
# Business rules
# ═══════════════════════════════════════════════════════════════════════════════


class InsufficientStock(ShopError):
    kind = ErrorKind.INSUFFICIENT_STOCK

    def __init__(self, product_id: str, variant_label: str = "", message: str | None = None) -> None:
        super().__init__(message or "Not enough stock for selected variant")
        self.product_id = product_id
        self.variant_label = variant_label


class CouponNotApplicable(ShopError):
    kind = ErrorKind.COUPON_NOT_APPLICABLE

    def __init__(self, message: str = "Coupon not applicable") -> None:
        super().__init__(message)


class InvalidSignature(ShopError):
    kind = ErrorKind.INVALID_SIGNATURE

    def __init__(self) -> None:
        super().__init__("Invalid signature")


class OrderCodeExhausted(ShopError):
    kind = ErrorKind.ORDER_CODE_EXHAUSTED

    def __init__(self) -> None:
        super().__init__("Unable to generate unique 4-digit order code. Please retry.")


class ExternalServiceError(ShopError):
    kind = ErrorKind.EXTERNAL_SERVICE


__all__ = (
    "ErrorKind",
    "ShopError",
    "ValidationError",
    "EmptyCart",
    "InvalidVariant",
    "ComboEmpty",
    "InvalidComboQuantity",
    "InvalidCombo",
    "Unauthenticated",
    "NotFound",
    "ProductNotFound",
    "PendingOrderNotFound",
    "Conflict",
    "InsufficientStock",
    "CouponNotApplicable",
    "InvalidSignature",
    "OrderCodeExhausted",
    "ExternalServiceError",
)
