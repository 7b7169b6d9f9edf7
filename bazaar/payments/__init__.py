"""
Payments: gateway client, webhook reconciliation and pending-order expiry.

    gateway = RazorpayGateway(key_id, key_secret, timeout=15.0)
    intent = await gateway.create_intent(43000, "INR", receipt="tmp_…")

    reconciler = PaymentReconciler(sessions, webhook_secret, notifier)
    await reconciler.handle(raw_body, request.headers["X-Razorpay-Signature"])

    await PendingOrderSweeper(sessions).sweep()
"""

from bazaar.payments._gateway import PaymentGateway, PaymentIntent, RazorpayGateway
from bazaar.payments._pending import claim, find_by_intent
from bazaar.payments._signature import sign, verify_signature
from bazaar.payments._sweep import PendingOrderSweeper
from bazaar.payments._webhook import (
    PAYMENT_CAPTURED,
    PAYMENT_FAILED,
    PaymentEvent,
    PaymentReconciler,
    WebhookAction,
    WebhookOutcome,
)

SIGNATURE_HEADER = "X-Razorpay-Signature"

__all__ = (
    # Gateway
    "PaymentIntent",
    "PaymentGateway",
    "RazorpayGateway",
    # Signatures
    "sign",
    "verify_signature",
    "SIGNATURE_HEADER",
    # Webhook
    "PAYMENT_CAPTURED",
    "PAYMENT_FAILED",
    "PaymentEvent",
    "PaymentReconciler",
    "WebhookAction",
    "WebhookOutcome",
    # Pending orders
    "claim",
    "find_by_intent",
    "PendingOrderSweeper",
)
