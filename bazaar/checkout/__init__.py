"""
Checkout: turn a cart into a COD order or a pending online order.

    checkout = CheckoutService(sessions, gateway, notifier, settings)
    outcome = await checkout.create_order(CheckoutRequest(
        user_id="u1",
        items=(RequestedLine("prd_1", quantity=2, variant_label="500g"),),
        shipping_address=address,
        payment_method=PaymentMethod.COD,
        coupon_code="SAVE10",
    ))

    match outcome:
        case PlacedOrder(order):            # COD
            ...
        case AwaitingPayment(pending, intent):  # ONLINE, client pays intent.id
            ...
"""

from bazaar.checkout._orchestrator import CheckoutService
from bazaar.checkout._types import AwaitingPayment, CheckoutOutcome, CheckoutRequest, PlacedOrder

__all__ = (
    "CheckoutRequest",
    "PlacedOrder",
    "AwaitingPayment",
    "CheckoutOutcome",
    "CheckoutService",
)
