"""Tests for runtime wiring and error-tracking setup."""
from __future__ import annotations

from unittest.mock import patch

import pytest
from aiogram.fsm.storage.memory import MemoryStorage

from storefront.core import sentry_integration
from storefront.core.bootstrap import build_application, build_fsm_storage
from storefront.core.config import CartConfig, CheckoutConfig, Settings, SupabaseConfig
from storefront.core.exceptions import ConfigurationException


def _settings(url: str = "", key: str = "") -> Settings:
    return Settings(
        bot_token="123456:TEST",
        redis_url=None,
        supabase=SupabaseConfig(url=url, anon_key=key, notify_order_url=f"{url}/functions/v1/notify-order"),
        checkout=CheckoutConfig(),
        cart=CartConfig(),
        landing_url="/",
        storefront_url="",
        sentry_dsn=None,
        environment="test",
    )


def test_fsm_storage_without_redis_is_memory() -> None:
    assert isinstance(build_fsm_storage(None), MemoryStorage)


def test_build_application_requires_supabase() -> None:
    with pytest.raises(ConfigurationException):
        build_application(_settings())


def test_build_application_wires_services() -> None:
    with patch("storefront.core.bootstrap.create_supabase_client") as create_client:
        app = build_application(_settings("https://abc.supabase.co", "anon"))

    create_client.assert_called_once_with("https://abc.supabase.co", "anon")
    assert app.sessions.get(1) is None
    assert app.carts.get(1).is_empty()


def test_sentry_disabled_without_dsn() -> None:
    assert sentry_integration.init_sentry(None) is False


def test_capture_is_noop_when_disabled() -> None:
    with patch.object(sentry_integration, "_initialized", False), patch(
        "sentry_sdk.capture_exception"
    ) as capture:
        sentry_integration.capture_exception(RuntimeError("boom"), order={"store_id": "s1"})

    capture.assert_not_called()
