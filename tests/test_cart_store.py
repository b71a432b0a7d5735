"""Tests for the persisted single-store cart."""
from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest
from conftest import fill_cart

from storefront.core.constants import CART_STORAGE_KEY
from storefront.services.cart_service import CartRegistry, CartStore


@pytest.mark.asyncio
async def test_adding_same_product_merges_quantity(cart: CartStore) -> None:
    await cart.add_item(product_id="p1", store_id="store-1", name="Noodles", price=100, quantity=1)
    await cart.add_item(product_id="p1", store_id="store-1", name="Noodles", price=100, quantity=2)

    assert len(cart.items) == 1
    assert cart.get_item("p1").quantity == 3
    assert cart.get_item_count() == 3


@pytest.mark.asyncio
async def test_total_sums_price_times_quantity(cart: CartStore) -> None:
    await fill_cart(cart)

    assert cart.get_total() == Decimal("300.00")
    assert cart.get_item_count() == 4


@pytest.mark.asyncio
async def test_total_is_rounded_to_cents(cart: CartStore) -> None:
    await cart.add_item(product_id="p1", store_id="store-1", name="Gum", price="0.335", quantity=3)

    assert cart.get_total() == Decimal("1.01")


@pytest.mark.asyncio
async def test_item_from_other_store_is_rejected(cart: CartStore) -> None:
    await cart.add_item(product_id="p1", store_id="store-1", name="Noodles", price=100)

    rejected = await cart.add_item(product_id="p9", store_id="store-2", name="Soap", price=20)

    assert rejected is None
    assert [item.product_id for item in cart.items] == ["p1"]
    assert cart.store_id == "store-1"


@pytest.mark.asyncio
async def test_other_store_allowed_after_cart_cleared(cart: CartStore) -> None:
    await cart.add_item(product_id="p1", store_id="store-1", name="Noodles", price=100)
    cart.clear_cart()

    item = await cart.add_item(product_id="p9", store_id="store-2", name="Soap", price=20)

    assert item is not None
    assert cart.store_id == "store-2"


@pytest.mark.asyncio
async def test_update_quantity_to_zero_removes_line(cart: CartStore) -> None:
    await fill_cart(cart)

    assert cart.update_quantity("p1", 0) is True

    assert cart.get_item("p1") is None
    assert cart.get_total() == Decimal("100.00")


@pytest.mark.asyncio
async def test_update_quantity_of_unknown_product_is_noop(cart: CartStore) -> None:
    await fill_cart(cart)

    assert cart.update_quantity("missing", 5) is False
    assert cart.get_item_count() == 4


@pytest.mark.asyncio
async def test_remove_item_twice_is_harmless(cart: CartStore) -> None:
    await fill_cart(cart)

    assert cart.remove_item("p2") is True
    assert cart.remove_item("p2") is False
    assert [item.product_id for item in cart.items] == ["p1"]


@pytest.mark.asyncio
async def test_clear_cart_empties_storage(cart: CartStore, memory_store) -> None:
    await fill_cart(cart)

    cart.clear_cart()

    assert cart.is_empty()
    assert cart.get_total() == Decimal("0.00")
    assert memory_store.get(f"{CART_STORAGE_KEY}:42") is None


@pytest.mark.asyncio
async def test_cart_survives_reload(cart: CartStore, memory_store) -> None:
    await fill_cart(cart)

    reloaded = CartStore(memory_store, 42, add_delay=0)

    assert [(i.product_id, i.quantity) for i in reloaded.items] == [("p1", 2), ("p2", 2)]
    assert reloaded.get_total() == Decimal("300.00")
    assert reloaded.store_id == "store-1"


def test_malformed_payload_starts_empty(memory_store) -> None:
    memory_store.set(f"{CART_STORAGE_KEY}:7", {"items": "not-a-list"})

    assert CartStore(memory_store, 7).is_empty()


def test_unreadable_lines_are_dropped(memory_store) -> None:
    memory_store.set(
        f"{CART_STORAGE_KEY}:7",
        {
            "items": [
                "garbage",
                {"product_id": "p1", "store_id": "s", "name": "Tea", "price": "5", "quantity": 2},
                {"product_id": "p2", "store_id": "s", "name": "Gone", "price": "5", "quantity": 0},
            ]
        },
    )

    cart = CartStore(memory_store, 7)

    assert [item.product_id for item in cart.items] == ["p1"]


@pytest.mark.asyncio
async def test_recently_added_marker_resets(cart: CartStore) -> None:
    await cart.add_item(product_id="p1", store_id="store-1", name="Noodles", price=100)
    assert cart.recently_added == "p1"

    await asyncio.sleep(0.1)

    assert cart.recently_added is None


@pytest.mark.asyncio
async def test_add_item_toggles_loading_flag(memory_store) -> None:
    cart = CartStore(memory_store, 1, add_delay=0.01)
    seen: list[bool] = []

    task = asyncio.create_task(
        cart.add_item(product_id="p1", store_id="s", name="Tea", price=5)
    )
    await asyncio.sleep(0)
    seen.append(cart.is_loading)
    await task
    seen.append(cart.is_loading)
    cart.close()

    assert seen == [True, False]


@pytest.mark.asyncio
async def test_registry_returns_one_cart_per_owner(memory_store) -> None:
    registry = CartRegistry(memory_store, add_delay=0)

    assert registry.get(1) is registry.get("1")
    assert registry.get(1) is not registry.get(2)
    registry.close()


@pytest.mark.asyncio
async def test_adding_one_more_of_existing_line(cart: CartStore) -> None:
    await cart.add_item(product_id="p1", store_id="store-1", name="Noodles", price=100, quantity=2)

    await cart.add_item(product_id="p1", store_id="store-1", name="Noodles", price=100, quantity=1)

    assert [(item.product_id, item.quantity) for item in cart.items] == [("p1", 3)]
    assert cart.get_total() == Decimal("300")


@pytest.mark.asyncio
async def test_rapid_adds_of_one_product_merge_into_one_line(memory_store) -> None:
    cart = CartStore(memory_store, 7, add_delay=0.01)

    results = await asyncio.gather(
        *(
            cart.add_item(product_id="p1", store_id="store-1", name="Noodles", price=100)
            for _ in range(4)
        )
    )

    assert all(item is not None for item in results)
    assert [(item.product_id, item.quantity) for item in cart.items] == [("p1", 4)]
    assert not cart.is_loading
    assert CartStore(memory_store, 7).get_item("p1").quantity == 4
    cart.close()


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_registry_releases_only_empty_carts(memory_store) -> None:
    registry = CartRegistry(memory_store, add_delay=0)
    await fill_cart(registry.get(1))
    registry.get(2)

    assert registry.release(1) is False
    assert registry.release(2) is True
    assert 1 in registry
    assert 2 not in registry
    registry.close()


@pytest.mark.asyncio
async def test_registry_sweeps_idle_carts_and_reloads_them(memory_store) -> None:
    clock = FakeClock()
    registry = CartRegistry(memory_store, add_delay=0, idle_seconds=60, clock=clock)
    idle = registry.get(1)
    await fill_cart(idle)
    await fill_cart(registry.get(2))
    await fill_cart(registry.get(3))

    clock.now += 30
    registry.get(2)
    clock.now += 45

    assert registry.sweep(keep={"3"}) == 1
    assert len(registry) == 2
    assert 1 not in registry

    reloaded = registry.get(1)
    assert reloaded is not idle
    assert reloaded.get_total() == Decimal("300.00")
    registry.close()
