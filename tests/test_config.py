from __future__ import annotations

from datetime import timedelta

import pydantic
import pytest

from bazaar.config import Settings


def test_defaults():
    settings = Settings()
    assert settings.cod_fee == 3000
    assert settings.currency == "INR"
    assert settings.pending_order_ttl == timedelta(minutes=30)
    assert settings.sweep_interval == timedelta(hours=1)
    assert settings.gateway_timeout_seconds == 15.0
    assert settings.notify_timeout_seconds == 5.0


def test_from_env_reads_prefixed_variables():
    settings = Settings.from_env(
        {
            "BAZAAR_DATABASE_URL": "sqlite+aiosqlite:///./x.db",
            "BAZAAR_COD_FEE": "5000",
            "BAZAAR_SWEEP_ENABLED": "false",
            "COD_FEE": "1",
        }
    )
    assert settings.database_url == "sqlite+aiosqlite:///./x.db"
    assert settings.cod_fee == 5000
    assert settings.sweep_enabled is False


def test_invalid_values_are_rejected():
    with pytest.raises(pydantic.ValidationError):
        Settings.from_env({"BAZAAR_PENDING_ORDER_TTL_SECONDS": "0"})


def test_settings_are_frozen():
    with pytest.raises(pydantic.ValidationError):
        Settings().cod_fee = 1  # type: ignore[misc]
