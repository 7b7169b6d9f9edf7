"""
Payment gateway client.

    gateway = RazorpayGateway(key_id, key_secret, timeout=15.0)
    intent = await gateway.create_intent(43000, "INR", receipt=pending_id)

The blocking HTTP call runs in a worker thread so the event loop keeps
serving requests while the gateway answers.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

import requests

from bazaar._types import Money
from bazaar.errors import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PaymentIntent:
    id: str
    amount: Money
    currency: str


class PaymentGateway(Protocol):
    async def create_intent(self, amount: Money, currency: str, receipt: str) -> PaymentIntent: ...


class RazorpayGateway:
    """Razorpay Orders API over basic auth."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 15.0,
        session: requests.Session | None = None,
    ) -> None:
        self._auth = (key_id, key_secret)
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http = session or requests.Session()

    async def create_intent(self, amount: Money, currency: str, receipt: str) -> PaymentIntent:
        return await asyncio.to_thread(self._create_order, amount, currency, receipt)

    def _create_order(self, amount: Money, currency: str, receipt: str) -> PaymentIntent:
        try:
            response = self._http.post(
                f"{self._base_url}/orders",
                json={"amount": amount, "currency": currency, "receipt": receipt},
                auth=self._auth,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.error("Payment gateway unreachable: %s", exc)
            raise ExternalServiceError("Payment gateway unavailable") from exc

        if response.status_code not in (200, 201):
            logger.error("Payment gateway rejected order %s: %s %s", receipt, response.status_code, response.text)
            raise ExternalServiceError("Payment gateway rejected the request")

        try:
            data = response.json()
            return PaymentIntent(id=data["id"], amount=int(data["amount"]), currency=data["currency"])
        except (ValueError, KeyError, TypeError) as exc:
            raise ExternalServiceError("Malformed payment gateway response") from exc


__all__ = ("PaymentIntent", "PaymentGateway", "RazorpayGateway")
