"""Tests for environment-driven settings."""
from __future__ import annotations

import pytest

from storefront.core.config import load_settings

ENV_VARS = (
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "NOTIFY_ORDER_URL",
    "REDIS_URL",
    "LANDING_URL",
    "STOREFRONT_URL",
    "CHECKOUT_COUNTDOWN_SECONDS",
    "SUCCESS_REDIRECT_SECONDS",
    "NOTIFY_MAX_RETRIES",
    "NOTIFY_RETRY_BASE_DELAY",
    "CART_ADD_DELAY",
    "RECENTLY_ADDED_SECONDS",
    "SENTRY_DSN",
    "ENVIRONMENT",
)


@pytest.fixture
def clean_env(monkeypatch):
    monkeypatch.setattr("storefront.core.config.load_dotenv", lambda *a, **k: False)
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env) -> None:
    settings = load_settings()

    assert settings.bot_token == "123:abc"
    assert settings.redis_url is None
    assert settings.checkout.countdown_seconds == 900
    assert settings.checkout.redirect_seconds == 10
    assert settings.checkout.notify_max_attempts == 3
    assert settings.cart.add_delay == 0.4
    assert settings.landing_url == "/"
    assert not settings.supabase.enabled


def test_notify_url_derives_from_supabase_url(clean_env) -> None:
    clean_env.setenv("SUPABASE_URL", "https://abc.supabase.co/")
    clean_env.setenv("SUPABASE_ANON_KEY", "anon")

    settings = load_settings()

    assert settings.supabase.enabled
    assert settings.supabase.notify_order_url == "https://abc.supabase.co/functions/v1/notify-order"


def test_overrides(clean_env) -> None:
    clean_env.setenv("CHECKOUT_COUNTDOWN_SECONDS", "60")
    clean_env.setenv("NOTIFY_MAX_RETRIES", "0")
    clean_env.setenv("STOREFRONT_URL", "https://shop.example.com/")
    clean_env.setenv("NOTIFY_ORDER_URL", "https://hooks.example.com/notify")

    settings = load_settings()

    assert settings.checkout.countdown_seconds == 60
    assert settings.checkout.notify_max_attempts == 1
    assert settings.storefront_url == "https://shop.example.com"
    assert settings.landing_url == "https://shop.example.com"
    assert settings.supabase.notify_order_url == "https://hooks.example.com/notify"


def test_missing_token_is_rejected(clean_env) -> None:
    clean_env.delenv("TELEGRAM_BOT_TOKEN")

    with pytest.raises(ValueError):
        load_settings()
