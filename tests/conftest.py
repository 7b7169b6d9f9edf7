from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from itertools import cycle

import pytest

from bazaar._types import Money
from bazaar.cart import CartService
from bazaar.catalog import CatalogService, ProductDraft, ProductView, VariantDraft
from bazaar.checkout import CheckoutService
from bazaar.config import Settings
from bazaar.coupons import CouponService
from bazaar.db import SessionFactory, create_database
from bazaar.errors import ExternalServiceError
from bazaar.ledger import Coupon
from bazaar.orders import OrderService, ShippingAddress
from bazaar.payments import PaymentIntent, PaymentReconciler, PendingOrderSweeper

WEBHOOK_SECRET = "whsec_test"
PHOTO = "https://cdn.example.com/p.jpg"

ADDRESS = ShippingAddress(
    name="Asha Rao",
    phone="9999999999",
    line1="12 MG Road",
    city="Pune",
    state="MH",
    pincode="411001",
    email="asha@example.com",
)


class FakeGateway:
    def __init__(self) -> None:
        self.calls: list[tuple[Money, str, str]] = []
        self.fail = False

    async def create_intent(self, amount: Money, currency: str, receipt: str) -> PaymentIntent:
        self.calls.append((amount, currency, receipt))
        if self.fail:
            raise ExternalServiceError("Payment gateway unavailable")
        return PaymentIntent(id=f"order_{len(self.calls)}", amount=amount, currency=currency)


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, Money, str | None]] = []
        self.fail = False

    async def notify(self, order_code: str, status: str, amount: Money, email: str | None) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append((order_code, status, amount, email))


class HangingNotifier:
    """Never finishes delivering."""

    def __init__(self) -> None:
        self.started: list[str] = []

    async def notify(self, order_code: str, status: str, amount: Money, email: str | None) -> None:
        self.started.append(order_code)
        await asyncio.Event().wait()


class ScriptedRandom:
    """Yields the given values in a loop."""

    def __init__(self, values: Iterable[int]) -> None:
        self._values = cycle(values)

    def randrange(self, stop: int, /) -> int:
        return next(self._values) % stop


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}",
        webhook_secret=WEBHOOK_SECRET,
        sweep_enabled=False,
    )


@pytest.fixture
async def sessions(settings: Settings) -> AsyncIterator[SessionFactory]:
    factory, engine = await create_database(settings.database_url)
    yield factory
    await engine.dispose()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def catalog(sessions: SessionFactory) -> CatalogService:
    return CatalogService(sessions)


@pytest.fixture
def carts(sessions: SessionFactory) -> CartService:
    return CartService(sessions)


@pytest.fixture
def coupons(sessions: SessionFactory) -> CouponService:
    return CouponService(sessions)


@pytest.fixture
def orders(sessions: SessionFactory) -> OrderService:
    return OrderService(sessions)


@pytest.fixture
def checkout(
    sessions: SessionFactory, gateway: FakeGateway, notifier: RecordingNotifier, settings: Settings
) -> CheckoutService:
    return CheckoutService(sessions, gateway, notifier, settings)


@pytest.fixture
def reconciler(sessions: SessionFactory, notifier: RecordingNotifier) -> PaymentReconciler:
    return PaymentReconciler(sessions, WEBHOOK_SECRET, notifier)


@pytest.fixture
def sweeper(sessions: SessionFactory) -> PendingOrderSweeper:
    return PendingOrderSweeper(sessions)


# ─── Seed data ───────────────────────────────────────────────────────────────


@pytest.fixture
async def tea(catalog: CatalogService) -> ProductView:
    """Legacy product: 200.00, no variants."""
    return await catalog.create_product(ProductDraft(name="Masala Tea", photos=(PHOTO,), price=20000))


@pytest.fixture
async def pickle(catalog: CatalogService) -> ProductView:
    """250g (default, 5 left) at 150.00 and 500g (1 left) at 280.00."""
    return await catalog.create_product(
        ProductDraft(
            name="Mango Pickle",
            photos=(PHOTO,),
            variants=(
                VariantDraft("250g", price=15000, stock=5, is_default=True),
                VariantDraft("500g", price=28000, stock=1),
            ),
        )
    )


@pytest.fixture
async def save10(coupons: CouponService) -> Coupon:
    return await coupons.create("save10", 10, min_purchase=50000, usage_limit=3)
