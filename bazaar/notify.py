"""
Order notifications.

Notifications are best-effort: a failing or hanging notifier is logged
and never affects the order that triggered it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from bazaar._types import Money, format_amount

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class Notifier(Protocol):
    async def notify(self, order_code: str, status: str, amount: Money, email: str | None) -> None: ...


class LoggingNotifier:
    """Default notifier: writes the notification to the log."""

    async def notify(self, order_code: str, status: str, amount: Money, email: str | None) -> None:
        logger.info(
            "Order %s %s, amount %s, recipient %s",
            order_code,
            status,
            format_amount(amount),
            email or "-",
        )


async def notify_quietly(
    notifier: Notifier,
    order_code: str,
    status: str,
    amount: Money,
    email: str | None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
) -> None:
    """Deliver one notification, giving up after ``timeout`` seconds."""
    try:
        await asyncio.wait_for(notifier.notify(order_code, status, amount, email), timeout)
    except TimeoutError:
        logger.warning("Notification for order %s timed out after %.1fs", order_code, timeout)
    except Exception:
        logger.warning("Notification for order %s failed", order_code, exc_info=True)


__all__ = ("Notifier", "LoggingNotifier", "notify_quietly")
