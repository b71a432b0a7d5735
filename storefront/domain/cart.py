"""Cart line item value object."""
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any


def to_decimal(value: Any) -> Decimal:
    """Coerce a price from JSON/user input to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def new_item_id() -> str:
    return uuid.uuid4().hex


@dataclass
class CartItem:
    """Single line in cart, keyed by product."""

    product_id: str
    store_id: str
    name: str
    price: Decimal
    quantity: int
    image: str | None = None
    id: str = field(default_factory=new_item_id)
    added_at: float = field(default_factory=time.time)

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": str(self.product_id),
            "store_id": str(self.store_id),
            "name": self.name,
            "price": str(self.price),
            "quantity": int(self.quantity),
            "image": self.image,
            "added_at": float(self.added_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CartItem:
        return cls(
            id=str(data.get("id") or new_item_id()),
            product_id=str(data.get("product_id", "")),
            store_id=str(data.get("store_id", "")),
            name=str(data.get("name", "")),
            price=to_decimal(data.get("price", 0)),
            quantity=int(data.get("quantity", 0)),
            image=data.get("image"),
            added_at=float(data.get("added_at", time.time())),
        )


def quantize_money(value: Decimal) -> Decimal:
    """Round to the two-decimal precision the currency formatter shows."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
