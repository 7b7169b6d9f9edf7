"""
FastAPI application factory.

    app = create_app(Settings.from_env())
    # uvicorn.run(app)

Routes are compiled once from the wire application; services are injected
into the shared runner when the lifespan opens the database.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

import fastapi

from bazaar.api._endpoints import build_application
from bazaar.api._ops import build_runner
from bazaar.cart import CartService
from bazaar.catalog import CatalogService
from bazaar.checkout import CheckoutService
from bazaar.config import Settings
from bazaar.coupons import CouponService
from bazaar.db import SessionFactory, create_database
from bazaar.notify import LoggingNotifier, Notifier
from bazaar.ops import Runner
from bazaar.orders import OrderService, RandomSource
from bazaar.payments import PaymentGateway, PaymentReconciler, PendingOrderSweeper, RazorpayGateway
from bazaar.wire.contrib import fastapi as wire_fastapi

logger = logging.getLogger(__name__)


def gateway_from_settings(settings: Settings) -> PaymentGateway:
    return RazorpayGateway(
        settings.gateway_key_id,
        settings.gateway_key_secret,
        base_url=settings.gateway_base_url,
        timeout=settings.gateway_timeout_seconds,
    )


def wire_services(
    runner: Runner,
    sessions: SessionFactory,
    settings: Settings,
    *,
    gateway: PaymentGateway,
    notifier: Notifier,
    rng: RandomSource | None = None,
) -> Runner:
    """Inject every service an API handler can ask for."""
    return (
        runner.inject(Settings, settings)
        .inject(CatalogService, CatalogService(sessions))
        .inject(CartService, CartService(sessions))
        .inject(CouponService, CouponService(sessions))
        .inject(OrderService, OrderService(sessions))
        .inject(CheckoutService, CheckoutService(sessions, gateway, notifier, settings, rng=rng))
        .inject(
            PaymentReconciler,
            PaymentReconciler(
                sessions,
                settings.webhook_secret,
                notifier,
                order_code_attempts=settings.order_code_attempts,
                notify_timeout=settings.notify_timeout_seconds,
                rng=rng,
            ),
        )
        .inject(PendingOrderSweeper, PendingOrderSweeper(sessions))
    )


def create_app(
    settings: Settings | None = None,
    *,
    gateway: PaymentGateway | None = None,
    notifier: Notifier | None = None,
    rng: RandomSource | None = None,
) -> fastapi.FastAPI:
    settings = settings or Settings.from_env()
    runner = build_runner()

    @contextlib.asynccontextmanager
    async def lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
        sessions, engine = await create_database(settings.database_url)
        wire_services(
            runner,
            sessions,
            settings,
            gateway=gateway or gateway_from_settings(settings),
            notifier=notifier or LoggingNotifier(),
            rng=rng,
        )
        app.state.sessions = sessions
        app.state.runner = runner

        sweeper_task: asyncio.Task[None] | None = None
        if settings.sweep_enabled:
            sweeper = PendingOrderSweeper(sessions)
            sweeper_task = asyncio.create_task(sweeper.run_forever(settings.sweep_interval.total_seconds()))
            logger.info("Pending order sweep every %ss", settings.sweep_interval_seconds)

        try:
            yield
        finally:
            if sweeper_task is not None:
                sweeper_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper_task
            await engine.dispose()

    return wire_fastapi.from_application(build_application(runner), title="bazaar", lifespan=lifespan)


__all__ = ("create_app", "wire_services", "gateway_from_settings")
