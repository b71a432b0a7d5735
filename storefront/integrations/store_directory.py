"""Read-only lookups against the Supabase project (stores, products, rates)."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from supabase import Client, create_client

from logging_config import logger
from storefront.core.exceptions import DataFetchException, StoreNotFoundException
from storefront.domain.cart import to_decimal
from storefront.domain.payment import StoreProfile


@dataclass(frozen=True, slots=True)
class ProductRecord:
    id: str
    store_id: str
    name: str
    price: Decimal
    image: str | None = None
    available: bool = True

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ProductRecord:
        return cls(
            id=str(row.get("id", "")),
            store_id=str(row.get("store_id", "")),
            name=str(row.get("name") or ""),
            price=to_decimal(row.get("price", 0)),
            image=row.get("image_url") or None,
            available=bool(row.get("is_active", True)) and bool(row.get("in_stock", True)),
        )


def create_supabase_client(url: str, key: str) -> Client:
    """Supabase client with the anon key; row level security still applies."""
    return create_client(url, key)


class StoreDirectory:
    """Thin query layer over the marketplace tables."""

    def __init__(self, client: Client):
        self._client = client

    def _select_one(self, table: str, column: str, value: str) -> dict[str, Any] | None:
        try:
            response = self._client.table(table).select("*").eq(column, value).limit(1).execute()
        except Exception as e:
            logger.error(f"Supabase {table} lookup failed ({column}={value}): {e}")
            raise DataFetchException(f"Failed to load {table}") from e
        rows = response.data or []
        return rows[0] if rows else None

    def get_store(self, store_id: str) -> StoreProfile:
        row = self._select_one("stores", "id", str(store_id))
        if not row:
            raise StoreNotFoundException(str(store_id))
        return StoreProfile.from_row(row)

    def get_product(self, product_id: str) -> ProductRecord | None:
        row = self._select_one("products", "id", str(product_id))
        return ProductRecord.from_row(row) if row else None

    def get_exchange_rates(self) -> list[dict[str, Any]]:
        """Raw `exchange_rates` rows (base_currency, target_currency, rate)."""
        try:
            response = (
                self._client.table("exchange_rates")
                .select("base_currency, target_currency, rate")
                .execute()
            )
        except Exception as e:
            logger.error(f"Supabase exchange_rates lookup failed: {e}")
            raise DataFetchException("Failed to load exchange rates") from e
        return list(response.data or [])
