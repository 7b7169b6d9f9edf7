"""
Configuration and logging setup.

    settings = Settings.from_env()          # BAZAAR_* environment variables
    configure_logging(settings.log_level)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "BAZAAR_"


class Settings(BaseModel):
    """
    Runtime settings.

    Immutable; build a new instance with ``model_copy(update=...)``.
    Every field can be overridden by ``BAZAAR_<FIELD_NAME>``.
    """

    model_config = ConfigDict(frozen=True)

    database_url: str = "sqlite+aiosqlite:///./bazaar.db"

    currency: str = "INR"
    cod_fee: int = Field(default=3000, ge=0)  # minor units (30 INR)
    pending_order_ttl_seconds: int = Field(default=30 * 60, gt=0)
    order_code_attempts: int = Field(default=30, gt=0)

    gateway_base_url: str = "https://api.razorpay.com/v1"
    gateway_key_id: str = ""
    gateway_key_secret: str = ""
    gateway_timeout_seconds: float = Field(default=15.0, gt=0)
    webhook_secret: str = ""
    notify_timeout_seconds: float = Field(default=5.0, gt=0)

    sweep_enabled: bool = True
    sweep_interval_seconds: int = Field(default=60 * 60, gt=0)

    log_level: str = "INFO"

    @property
    def pending_order_ttl(self) -> timedelta:
        return timedelta(seconds=self.pending_order_ttl_seconds)

    @property
    def sweep_interval(self) -> timedelta:
        return timedelta(seconds=self.sweep_interval_seconds)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        values = {
            name: env[f"{ENV_PREFIX}{name.upper()}"]
            for name in cls.model_fields
            if f"{ENV_PREFIX}{name.upper()}" in env
        }
        return cls.model_validate(values)


LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # SQL echo goes through its own logger; keep it quiet unless asked.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


__all__ = ("Settings", "configure_logging", "ENV_PREFIX")
