"""Tests for Supabase lookups with a mocked client."""
from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from storefront.core.exceptions import DataFetchException, StoreNotFoundException
from storefront.domain.payment import PaymentMethod
from storefront.integrations.store_directory import StoreDirectory


def _client(rows=None, error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    query = client.table.return_value.select.return_value
    chain = query.eq.return_value.limit.return_value
    if error:
        chain.execute.side_effect = error
        query.execute.side_effect = error
    else:
        chain.execute.return_value = MagicMock(data=rows or [])
        query.execute.return_value = MagicMock(data=rows or [])
    return client


def test_get_store_parses_payment_settings() -> None:
    client = _client(
        [
            {
                "id": "s1",
                "name": "Corner Shop",
                "username": "corner-shop",
                "payment_methods": {
                    "cod": True,
                    "kpay": False,
                    "usdt": True,
                    "wallet_addresses": {"usdt": "TXyz"},
                },
            }
        ]
    )

    store = StoreDirectory(client).get_store("s1")

    client.table.assert_called_with("stores")
    assert store.username == "corner-shop"
    assert store.payment_settings.is_enabled(PaymentMethod.COD)
    assert not store.payment_settings.is_enabled(PaymentMethod.KPAY)
    assert store.payment_settings.wallet_address(PaymentMethod.USDT) == "TXyz"


def test_missing_store_raises_not_found() -> None:
    with pytest.raises(StoreNotFoundException):
        StoreDirectory(_client([])).get_store("nope")


def test_backend_error_is_wrapped() -> None:
    with pytest.raises(DataFetchException):
        StoreDirectory(_client(error=RuntimeError("timeout"))).get_store("s1")


def test_get_product_maps_row() -> None:
    client = _client(
        [{"id": "p1", "store_id": "s1", "name": "Tea", "price": 12.5, "in_stock": False}]
    )

    product = StoreDirectory(client).get_product("p1")

    assert product.price == Decimal("12.5")
    assert product.available is False


def test_get_product_missing_returns_none() -> None:
    assert StoreDirectory(_client([])).get_product("p1") is None


def test_exchange_rates_error_is_wrapped() -> None:
    with pytest.raises(DataFetchException):
        StoreDirectory(_client(error=RuntimeError("down"))).get_exchange_rates()
