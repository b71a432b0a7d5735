"""Environment-driven configuration objects for the bot."""
from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .constants import (
    CART_ADD_DELAY_SECONDS,
    CART_IDLE_SECONDS,
    CHECKOUT_COUNTDOWN_SECONDS,
    NOTIFY_MAX_RETRIES,
    NOTIFY_RETRY_BASE_DELAY_SECONDS,
    RECENTLY_ADDED_SECONDS,
    SUCCESS_REDIRECT_SECONDS,
)


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(slots=True)
class SupabaseConfig:
    url: str
    anon_key: str
    notify_order_url: str

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.anon_key)


@dataclass(slots=True)
class CheckoutConfig:
    countdown_seconds: int = CHECKOUT_COUNTDOWN_SECONDS
    redirect_seconds: float = SUCCESS_REDIRECT_SECONDS
    notify_max_retries: int = NOTIFY_MAX_RETRIES
    notify_retry_base_delay: float = NOTIFY_RETRY_BASE_DELAY_SECONDS

    @property
    def notify_max_attempts(self) -> int:
        return self.notify_max_retries + 1


@dataclass(slots=True)
class CartConfig:
    add_delay: float = CART_ADD_DELAY_SECONDS
    recently_added_seconds: float = RECENTLY_ADDED_SECONDS
    idle_seconds: float = CART_IDLE_SECONDS


@dataclass(slots=True)
class Settings:
    bot_token: str
    redis_url: str | None
    supabase: SupabaseConfig
    checkout: CheckoutConfig
    cart: CartConfig
    landing_url: str
    storefront_url: str
    sentry_dsn: str | None
    environment: str


def load_settings() -> Settings:
    """Load environment variables once and expose typed settings."""
    load_dotenv()

    token = os.getenv("TELEGRAM_BOT_TOKEN")
    if not token:
        raise ValueError("TELEGRAM_BOT_TOKEN environment variable is not set")

    supabase_url = os.getenv("SUPABASE_URL", "").rstrip("/")
    notify_url = os.getenv("NOTIFY_ORDER_URL", "")
    if not notify_url and supabase_url:
        notify_url = f"{supabase_url}/functions/v1/notify-order"

    supabase = SupabaseConfig(
        url=supabase_url,
        anon_key=os.getenv("SUPABASE_ANON_KEY", ""),
        notify_order_url=notify_url,
    )

    checkout = CheckoutConfig(
        countdown_seconds=_get_int("CHECKOUT_COUNTDOWN_SECONDS", CHECKOUT_COUNTDOWN_SECONDS),
        redirect_seconds=_get_float("SUCCESS_REDIRECT_SECONDS", SUCCESS_REDIRECT_SECONDS),
        notify_max_retries=_get_int("NOTIFY_MAX_RETRIES", NOTIFY_MAX_RETRIES),
        notify_retry_base_delay=_get_float(
            "NOTIFY_RETRY_BASE_DELAY", NOTIFY_RETRY_BASE_DELAY_SECONDS
        ),
    )
    cart = CartConfig(
        add_delay=_get_float("CART_ADD_DELAY", CART_ADD_DELAY_SECONDS),
        recently_added_seconds=_get_float("RECENTLY_ADDED_SECONDS", RECENTLY_ADDED_SECONDS),
        idle_seconds=_get_float("CART_IDLE_SECONDS", CART_IDLE_SECONDS),
    )

    storefront_url = os.getenv("STOREFRONT_URL", "").rstrip("/")

    return Settings(
        bot_token=token,
        redis_url=os.getenv("REDIS_URL") or None,
        supabase=supabase,
        checkout=checkout,
        cart=cart,
        landing_url=os.getenv("LANDING_URL", storefront_url or "/"),
        storefront_url=storefront_url,
        sentry_dsn=os.getenv("SENTRY_DSN") or None,
        environment=os.getenv("ENVIRONMENT", "production"),
    )
