"""Deep links that open a Telegram chat with a prefilled message."""
from __future__ import annotations

import re
from collections.abc import Iterable
from decimal import Decimal
from urllib.parse import quote

from storefront.domain.cart import quantize_money, to_decimal

_USERNAME_PREFIX = re.compile(r"^https?://(t\.me|telegram\.me)/")


def clean_username(username: str) -> str:
    name = username.strip()
    if name.startswith("@"):
        name = name[1:]
    return _USERNAME_PREFIX.sub("", name)


def generate_telegram_link(username: str, message: str) -> str:
    return f"https://t.me/{clean_username(username)}?text={quote(message, safe='')}"


def generate_store_order_message(store_name: str, items: Iterable) -> str:
    """Plain-text order request a buyer can send to the store.

    `items` may be cart items, order lines or anything else exposing
    name, quantity and price.
    """
    lines = [f"Hello! I want to buy the following items from {store_name}:", ""]
    total = Decimal("0")
    for index, item in enumerate(items, 1):
        subtotal = to_decimal(item.price) * int(item.quantity)
        total += subtotal
        lines.append(f"{index}. {item.name} x{item.quantity} - ${quantize_money(subtotal)}")
    lines.append("")
    lines.append(f"Total: ${quantize_money(total)}")
    lines.append("")
    lines.append("Please confirm my order. Thank you!")
    return "\n".join(lines)
