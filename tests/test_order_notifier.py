"""Tests for the notify-order HTTP client against a local aiohttp app."""
from __future__ import annotations

from decimal import Decimal

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from conftest import make_store

from storefront.core.exceptions import ConfigurationException, NotificationDeliveryException
from storefront.domain.cart import CartItem
from storefront.domain.checkout import OrderForm, OrderIntent
from storefront.domain.payment import PaymentMethod
from storefront.integrations.order_notifier import OrderNotifier


def _intent() -> OrderIntent:
    return OrderIntent.build(
        make_store(),
        [CartItem("p1", "store-1", "Noodles", Decimal("100"), 3)],
        PaymentMethod.USDT,
        OrderForm(buyer_handle="@b", shipping_address="x", transaction_number="654321"),
    )


@pytest.fixture()
async def notify_server():
    """Local stand-in for the edge function; records requests."""
    received: list[dict] = []
    state = {"status": 200, "body": {"success": True}}

    async def handler(request: web.Request) -> web.Response:
        received.append(
            {"json": await request.json(), "auth": request.headers.get("Authorization")}
        )
        return web.json_response(state["body"], status=state["status"])

    app = web.Application()
    app.router.add_post("/functions/v1/notify-order", handler)
    server = TestServer(app)
    await server.start_server()
    try:
        yield server, received, state
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_send_posts_payload_with_bearer_key(notify_server) -> None:
    server, received, _ = notify_server
    notifier = OrderNotifier(str(server.make_url("/functions/v1/notify-order")), "anon-key")

    body = await notifier.send(_intent())
    await notifier.close()

    assert body == {"success": True}
    assert received[0]["auth"] == "Bearer anon-key"
    assert received[0]["json"]["paymentMethod"] == "usdt"
    assert received[0]["json"]["totalAmount"] == 300.0
    assert received[0]["json"]["transactionNumber"] == "654321"


@pytest.mark.asyncio
async def test_error_status_raises_with_server_message(notify_server) -> None:
    server, _, state = notify_server
    state.update(status=500, body={"error": "telegram down"})
    notifier = OrderNotifier(str(server.make_url("/functions/v1/notify-order")), "anon-key")

    with pytest.raises(NotificationDeliveryException) as exc_info:
        await notifier.send(_intent())
    await notifier.close()

    assert exc_info.value.status == 500
    assert "telegram down" in exc_info.value.message


@pytest.mark.asyncio
async def test_error_without_body_uses_generic_message(notify_server) -> None:
    server, _, state = notify_server
    state.update(status=400, body={})
    notifier = OrderNotifier(str(server.make_url("/functions/v1/notify-order")), "anon-key")

    with pytest.raises(NotificationDeliveryException, match="Unknown error occurred"):
        await notifier.send(_intent())
    await notifier.close()


@pytest.mark.asyncio
async def test_unreachable_endpoint_raises_delivery_error() -> None:
    notifier = OrderNotifier("http://127.0.0.1:9/notify-order", "anon-key", timeout=2)

    with pytest.raises(NotificationDeliveryException, match="unreachable"):
        await notifier.send(_intent())
    await notifier.close()


def test_missing_url_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationException):
        OrderNotifier("", "anon-key")
