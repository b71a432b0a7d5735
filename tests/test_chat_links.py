from __future__ import annotations

from decimal import Decimal

from storefront.domain.checkout import OrderLine
from storefront.services.chat_links import generate_store_order_message, generate_telegram_link


def test_link_strips_prefixes_and_encodes_text() -> None:
    assert generate_telegram_link("@shop", "hi there") == "https://t.me/shop?text=hi%20there"
    assert generate_telegram_link("https://t.me/shop", "a&b") == "https://t.me/shop?text=a%26b"


def test_order_message_lists_items_and_total() -> None:
    message = generate_store_order_message(
        "Corner Shop",
        [OrderLine("Noodles", 2, Decimal("100")), OrderLine("Tea", 1, Decimal("2.5"))],
    )

    assert message.startswith("Hello! I want to buy the following items from Corner Shop:")
    assert "1. Noodles x2 - $200.00" in message
    assert "2. Tea x1 - $2.50" in message
    assert "Total: $202.50" in message
    assert message.endswith("Please confirm my order. Thank you!")
