"""Payment methods and per-store payment settings."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PaymentMethod(str, Enum):
    """Payment methods a buyer can choose at checkout."""

    COD = "cod"
    KPAY = "kpay"
    USDT = "usdt"

    @property
    def requires_reference(self) -> bool:
        """Manual wallet transfers need a transaction reference."""
        return self is not PaymentMethod.COD

    @property
    def label(self) -> str:
        return PAYMENT_METHOD_LABELS[self]

    @classmethod
    def parse(cls, value: str | PaymentMethod | None) -> PaymentMethod | None:
        if isinstance(value, PaymentMethod):
            return value
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


PAYMENT_METHOD_LABELS: dict[PaymentMethod, str] = {
    PaymentMethod.COD: "Cash on Delivery",
    PaymentMethod.KPAY: "KPay",
    PaymentMethod.USDT: "USDT",
}

# Display order on the payment screen
PAYMENT_METHODS: tuple[PaymentMethod, ...] = (
    PaymentMethod.COD,
    PaymentMethod.KPAY,
    PaymentMethod.USDT,
)


@dataclass(frozen=True)
class StorePaymentSettings:
    """Which payment methods a store accepts and where to send transfers."""

    enabled: frozenset[PaymentMethod] = frozenset()
    wallet_addresses: dict[str, str] = field(default_factory=dict)

    def is_enabled(self, method: PaymentMethod) -> bool:
        return method in self.enabled

    def wallet_address(self, method: PaymentMethod) -> str | None:
        return self.wallet_addresses.get(method.value) or None

    @classmethod
    def from_row(cls, raw: dict[str, Any] | None) -> StorePaymentSettings:
        """Build from the `stores.payment_methods` JSON column."""
        raw = raw or {}
        enabled = frozenset(method for method in PaymentMethod if bool(raw.get(method.value)))
        addresses = raw.get("wallet_addresses") or {}
        if not isinstance(addresses, dict):
            addresses = {}
        return cls(
            enabled=enabled,
            wallet_addresses={str(k): str(v) for k, v in addresses.items() if v},
        )


@dataclass(frozen=True)
class StoreProfile:
    """Read-only store data the checkout needs."""

    id: str
    name: str
    username: str | None = None
    telegram_username: str | None = None
    payment_settings: StorePaymentSettings = field(default_factory=StorePaymentSettings)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> StoreProfile:
        return cls(
            id=str(row.get("id", "")),
            name=str(row.get("name") or ""),
            username=row.get("username") or None,
            telegram_username=row.get("telegram_username") or None,
            payment_settings=StorePaymentSettings.from_row(row.get("payment_methods")),
        )
