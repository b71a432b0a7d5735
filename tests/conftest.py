"""Shared pytest fixtures: env vars, fake Redis and checkout collaborators."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import pytest

from storefront.core.config import CheckoutConfig
from storefront.core.exceptions import NotificationDeliveryException, StoreNotFoundException
from storefront.domain.payment import PaymentMethod, StorePaymentSettings, StoreProfile
from storefront.integrations.kv_store import MemoryKeyValueStore
from storefront.integrations.store_directory import ProductRecord
from storefront.services.cart_service import CartStore
from storefront.services.checkout_service import CheckoutFlow, ReturnHandoff


@pytest.fixture(scope="session", autouse=True)
def _test_env_vars() -> None:
    """Provide minimal env vars required for imports in tests."""
    if not os.getenv("TELEGRAM_BOT_TOKEN"):
        os.environ["TELEGRAM_BOT_TOKEN"] = "TEST_TOKEN"


@dataclass
class FakeRedisClient:
    data: dict[str, str] = field(default_factory=dict)
    expiry: dict[str, int] = field(default_factory=dict)
    setex_calls: list[tuple[str, int]] = field(default_factory=list)

    def ping(self) -> bool:
        return True

    def get(self, key: str):
        return self.data.get(key)

    def setex(self, key: str, ttl: int, value: str) -> bool:
        self.data[key] = value
        self.expiry[key] = ttl
        self.setex_calls.append((key, ttl))
        return True

    def set(self, key: str, value: str, nx: bool = False, ex: int | None = None):
        if nx and key in self.data:
            return False
        self.data[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True

    def delete(self, key: str) -> int:
        existed = 1 if key in self.data else 0
        self.data.pop(key, None)
        self.expiry.pop(key, None)
        return existed


@pytest.fixture
def fake_redis(monkeypatch):
    import storefront.integrations.kv_store as kv_store_module

    client = FakeRedisClient()
    monkeypatch.setattr(kv_store_module.redis, "from_url", lambda *args, **kwargs: client)
    return client


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


def make_store(
    methods: tuple[PaymentMethod, ...] = (PaymentMethod.COD, PaymentMethod.KPAY, PaymentMethod.USDT),
    username: str | None = "corner-shop",
    telegram_username: str | None = "@cornershop",
) -> StoreProfile:
    return StoreProfile(
        id="store-1",
        name="Corner Shop",
        username=username,
        telegram_username=telegram_username,
        payment_settings=StorePaymentSettings(
            enabled=frozenset(methods),
            wallet_addresses={"kpay": "09-123-456", "usdt": "TXyz"},
        ),
    )


class FakeDirectory:
    def __init__(self, store: StoreProfile | None = None):
        self.store = store or make_store()
        self.products: dict[str, ProductRecord] = {}
        self.store_lookups = 0

    def get_store(self, store_id: str) -> StoreProfile:
        self.store_lookups += 1
        if store_id != self.store.id:
            raise StoreNotFoundException(store_id)
        return self.store

    def get_product(self, product_id: str) -> ProductRecord | None:
        return self.products.get(product_id)

    def get_exchange_rates(self) -> list[dict[str, Any]]:
        return []


class FakeNotifier:
    """Fails the first `failures` calls, then succeeds."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.sent: list[Any] = []

    async def send(self, intent) -> dict[str, Any]:
        self.sent.append(intent)
        if len(self.sent) <= self.failures:
            raise NotificationDeliveryException("notify-order returned 500: boom", status=500)
        return {"success": True}


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def cart(memory_store) -> CartStore:
    return CartStore(memory_store, 42, add_delay=0, recently_added_window=0.05)


@pytest.fixture
def make_flow(memory_store, directory):
    """Factory building a `CheckoutFlow` over the in-memory fakes."""
    flows: list[CheckoutFlow] = []

    def _make(cart: CartStore, notifier: FakeNotifier | None = None, **overrides) -> CheckoutFlow:
        config = overrides.pop(
            "config",
            CheckoutConfig(
                countdown_seconds=900,
                redirect_seconds=10,
                notify_max_retries=2,
                notify_retry_base_delay=1.0,
            ),
        )
        flow = CheckoutFlow(
            "42",
            cart,
            overrides.pop("directory", directory),
            notifier or FakeNotifier(),
            ReturnHandoff(memory_store),
            config=config,
            sleep=overrides.pop("sleep", RecordingSleep()),
            **overrides,
        )
        flows.append(flow)
        return flow

    yield _make
    for flow in flows:
        flow.close()


async def fill_cart(cart: CartStore) -> None:
    await cart.add_item(product_id="p1", store_id="store-1", name="Noodles", price=Decimal("100"), quantity=2)
    await cart.add_item(product_id="p2", store_id="store-1", name="Tea", price=Decimal("50"), quantity=2)
