from __future__ import annotations

import pytest
import requests

from bazaar.errors import ExternalServiceError
from bazaar.payments import RazorpayGateway


class StubResponse:
    def __init__(self, status_code: int, payload: object) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = str(payload)

    def json(self) -> object:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class StubSession:
    def __init__(self, response: StubResponse | Exception) -> None:
        self.response = response
        self.requests: list[dict] = []

    def post(self, url: str, **kwargs):
        self.requests.append({"url": url, **kwargs})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


async def test_create_intent_posts_order():
    http = StubSession(StubResponse(200, {"id": "order_abc", "amount": 43000, "currency": "INR"}))
    gateway = RazorpayGateway("key", "secret", base_url="https://gw.test/v1/", timeout=5.0, session=http)

    intent = await gateway.create_intent(43000, "INR", receipt="tmp_1")

    assert (intent.id, intent.amount, intent.currency) == ("order_abc", 43000, "INR")
    sent = http.requests[0]
    assert sent["url"] == "https://gw.test/v1/orders"
    assert sent["json"] == {"amount": 43000, "currency": "INR", "receipt": "tmp_1"}
    assert sent["auth"] == ("key", "secret")
    assert sent["timeout"] == 5.0


@pytest.mark.parametrize(
    "response",
    [
        requests.ConnectionError("down"),
        requests.Timeout("slow"),
        StubResponse(401, {"error": "bad key"}),
        StubResponse(200, {"unexpected": True}),
        StubResponse(200, ValueError("not json")),
    ],
)
async def test_gateway_failures_become_external_errors(response):
    gateway = RazorpayGateway("key", "secret", session=StubSession(response))
    with pytest.raises(ExternalServiceError):
        await gateway.create_intent(100, "INR", receipt="tmp_1")
