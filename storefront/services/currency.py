"""Exchange-rate conversion and price formatting.

Prices are kept in THB. KPay transfers are quoted in MMK, everything else
in THB.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from logging_config import logger
from storefront.core.exceptions import DataFetchException
from storefront.domain.cart import to_decimal
from storefront.domain.payment import PaymentMethod


class Currency(str, Enum):
    THB = "THB"
    USD = "USD"
    MMK = "MMK"


@dataclass(frozen=True, slots=True)
class ExchangeRates:
    thb_usd: Decimal = Decimal("0.028")
    thb_mmk: Decimal = Decimal("136")
    usd_mmk: Decimal = Decimal("3300")

    def with_rows(self, rows: list[dict[str, Any]]) -> ExchangeRates:
        """Overlay `exchange_rates` rows on top of the current values."""
        changes: dict[str, Decimal] = {}
        for row in rows:
            key = f"{row.get('base_currency', '')}_{row.get('target_currency', '')}".lower()
            if key in ("thb_usd", "thb_mmk", "usd_mmk") and row.get("rate") is not None:
                rate = to_decimal(row["rate"])
                if rate > 0:
                    changes[key] = rate
        return replace(self, **changes)


def _thb_rate(currency: Currency, rates: ExchangeRates) -> Decimal:
    return rates.thb_usd if currency is Currency.USD else rates.thb_mmk


def convert_currency(
    amount: Decimal | int | float,
    source: Currency,
    target: Currency,
    rates: ExchangeRates | None = None,
) -> Decimal:
    rates = rates or ExchangeRates()
    amount = to_decimal(amount)
    if source is target:
        return amount

    thb_amount = amount if source is Currency.THB else amount / _thb_rate(source, rates)
    if target is Currency.THB:
        return thb_amount
    return thb_amount * _thb_rate(target, rates)


def format_amount(amount: Decimal | int | float | None, currency: Currency) -> str:
    if amount is None:
        return "Price not available"
    value = to_decimal(amount)
    if not value.is_finite():
        return "Price not available"

    if currency is Currency.THB:
        return f"฿{value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):,}"
    if currency is Currency.USD:
        return f"${value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):,}"
    return f"{value.quantize(Decimal('1'), rounding=ROUND_HALF_UP):,} MMK"


def payment_currency(method: PaymentMethod | None) -> Currency:
    return Currency.MMK if method is PaymentMethod.KPAY else Currency.THB


def payment_amount(
    total: Decimal, method: PaymentMethod | None, rates: ExchangeRates | None = None
) -> str:
    """Amount the buyer has to transfer, formatted in the method's currency."""
    currency = payment_currency(method)
    return format_amount(convert_currency(total, Currency.THB, currency, rates), currency)


class RatesProvider:
    """Caches exchange rates loaded from the backend."""

    def __init__(self, directory: Any | None = None):
        self._directory = directory
        self._rates = ExchangeRates()

    @property
    def rates(self) -> ExchangeRates:
        return self._rates

    def refresh(self) -> ExchangeRates:
        if self._directory is None:
            return self._rates
        try:
            rows = self._directory.get_exchange_rates()
        except DataFetchException as e:
            logger.warning(f"Using cached exchange rates: {e}")
            return self._rates
        self._rates = self._rates.with_rows(rows)
        return self._rates
