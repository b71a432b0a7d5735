"""Persisted per-shopper cart with single-store guard."""
from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from decimal import Decimal
from typing import Any

from logging_config import logger
from storefront.core.constants import (
    CART_ADD_DELAY_SECONDS,
    CART_IDLE_SECONDS,
    CART_STORAGE_KEY,
    RECENTLY_ADDED_SECONDS,
)
from storefront.domain.cart import CartItem, quantize_money, to_decimal
from storefront.integrations.kv_store import KeyValueStore


class CartStore:
    """Cart for one shopper.

    Holds the items in memory and writes the whole collection through the
    injected key-value store after every mutation. A cart never mixes stores.
    """

    def __init__(
        self,
        persistence: KeyValueStore,
        owner: str | int,
        add_delay: float = CART_ADD_DELAY_SECONDS,
        recently_added_window: float = RECENTLY_ADDED_SECONDS,
    ):
        self._persistence = persistence
        self._key = f"{CART_STORAGE_KEY}:{owner}"
        self._owner = owner
        self._add_delay = add_delay
        self._recently_added_window = recently_added_window
        self._reset_handle: asyncio.TimerHandle | None = None

        self._pending_adds = 0
        self.recently_added: str | None = None
        self._items: list[CartItem] = self._load()

    # ---- persistence ----

    def _load(self) -> list[CartItem]:
        payload = self._persistence.get(self._key)
        if not payload:
            return []
        if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
            logger.warning("Ignoring malformed cart payload for %s", self._owner)
            return []
        items: list[CartItem] = []
        for raw in payload["items"]:
            try:
                item = CartItem.from_dict(raw)
            except (AttributeError, TypeError, ValueError) as exc:
                logger.warning("Dropping unreadable cart line for %s: %s", self._owner, exc)
                continue
            if item.quantity > 0:
                items.append(item)
        return items

    def _save(self) -> None:
        if not self._items:
            self._persistence.delete(self._key)
            return
        payload: dict[str, Any] = {
            "store_id": self.store_id,
            "items": [item.to_dict() for item in self._items],
            "updated_at": int(time.time()),
        }
        self._persistence.set(self._key, payload)

    # ---- views ----

    @property
    def is_loading(self) -> bool:
        return self._pending_adds > 0

    @property
    def items(self) -> list[CartItem]:
        return list(self._items)

    @property
    def store_id(self) -> str | None:
        return self._items[0].store_id if self._items else None

    def is_empty(self) -> bool:
        return not self._items

    def get_item(self, product_id: str) -> CartItem | None:
        for item in self._items:
            if item.product_id == str(product_id):
                return item
        return None

    def get_total(self) -> Decimal:
        total = sum((item.price * item.quantity for item in self._items), Decimal("0"))
        return quantize_money(total)

    def get_item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    # ---- mutations ----

    async def add_item(
        self,
        *,
        product_id: str,
        store_id: str,
        name: str,
        price: Decimal | int | float | str,
        quantity: int = 1,
        image: str | None = None,
    ) -> CartItem | None:
        """Add a product or merge its quantity into the existing line.

        Returns None when the product belongs to a different store than the
        items already in the cart.
        """
        product_id = str(product_id)
        store_id = str(store_id)
        quantity = int(quantity)
        if quantity <= 0:
            return self.get_item(product_id)

        self._pending_adds += 1
        try:
            if self._add_delay > 0:
                await asyncio.sleep(self._add_delay)
        finally:
            self._pending_adds -= 1

        existing_store = self.store_id
        if existing_store is not None and existing_store != store_id:
            logger.info(
                "Rejected add_item: mixed stores not allowed (existing=%s, new=%s, owner=%s)",
                existing_store,
                store_id,
                self._owner,
            )
            return None

        item = self.get_item(product_id)
        if item:
            item.quantity += quantity
            logger.info(f"Updated cart item {product_id} qty={item.quantity} for {self._owner}")
        else:
            item = CartItem(
                product_id=product_id,
                store_id=store_id,
                name=name,
                price=to_decimal(price),
                quantity=quantity,
                image=image,
            )
            self._items.append(item)
            logger.info(f"Added item {product_id} to cart for {self._owner}")

        self._save()
        self._mark_recently_added(product_id)
        return item

    def remove_item(self, product_id: str) -> bool:
        before = len(self._items)
        self._items = [item for item in self._items if item.product_id != str(product_id)]
        if len(self._items) == before:
            return False
        self._save()
        logger.info(f"Removed item {product_id} from cart for {self._owner}")
        return True

    def update_quantity(self, product_id: str, quantity: int) -> bool:
        """Set a line's quantity; zero (or less) deletes the line."""
        if quantity <= 0:
            return self.remove_item(product_id)
        item = self.get_item(product_id)
        if not item:
            return False
        item.quantity = int(quantity)
        self._save()
        return True

    def clear_cart(self) -> None:
        self._items = []
        self._persistence.delete(self._key)
        logger.info(f"Cleared cart for {self._owner}")

    # ---- recently added marker ----

    def _mark_recently_added(self, product_id: str) -> None:
        self.recently_added = product_id
        if self._reset_handle:
            self._reset_handle.cancel()
        loop = asyncio.get_running_loop()
        self._reset_handle = loop.call_later(self._recently_added_window, self.clear_recently_added)

    def clear_recently_added(self) -> None:
        self.recently_added = None
        self._reset_handle = None

    def close(self) -> None:
        if self._reset_handle:
            self._reset_handle.cancel()
            self._reset_handle = None


class CartRegistry:
    """Creates one `CartStore` per shopper over a shared persistence port.

    Carts are cheap to rebuild from persistence, so empty or idle ones are
    evicted by `release` and `sweep`.
    """

    def __init__(
        self,
        persistence: KeyValueStore,
        add_delay: float = CART_ADD_DELAY_SECONDS,
        recently_added_window: float = RECENTLY_ADDED_SECONDS,
        idle_seconds: float = CART_IDLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._persistence = persistence
        self._add_delay = add_delay
        self._recently_added_window = recently_added_window
        self._idle_seconds = idle_seconds
        self._clock = clock
        self._carts: dict[str, CartStore] = {}
        self._last_used: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._carts)

    def __contains__(self, owner: object) -> bool:
        return str(owner) in self._carts

    def get(self, owner: str | int) -> CartStore:
        key = str(owner)
        cart = self._carts.get(key)
        if cart is None:
            cart = CartStore(
                self._persistence,
                key,
                add_delay=self._add_delay,
                recently_added_window=self._recently_added_window,
            )
            self._carts[key] = cart
        self._last_used[key] = self._clock()
        return cart

    def release(self, owner: str | int) -> bool:
        """Forget the cart of `owner` if it is empty."""
        key = str(owner)
        cart = self._carts.get(key)
        if cart is None or not cart.is_empty() or cart.is_loading:
            return False
        self._evict(key)
        return True

    def sweep(self, keep: Iterable[str] = ()) -> int:
        """Evict empty carts and carts unused for `idle_seconds`.

        Owners in `keep` are left alone. Returns the number of evicted carts.
        """
        keep = {str(owner) for owner in keep}
        now = self._clock()
        stale = [
            key
            for key, cart in self._carts.items()
            if key not in keep
            and not cart.is_loading
            and (cart.is_empty() or now - self._last_used.get(key, now) >= self._idle_seconds)
        ]
        for key in stale:
            self._evict(key)
        if stale:
            logger.debug(f"Evicted {len(stale)} cached carts")
        return len(stale)

    def _evict(self, key: str) -> None:
        cart = self._carts.pop(key)
        self._last_used.pop(key, None)
        cart.close()

    def close(self) -> None:
        for cart in self._carts.values():
            cart.close()
        self._carts.clear()
        self._last_used.clear()
