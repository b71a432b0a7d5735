"""Cart system orchestrator for cart-related flows.

This module wires dedicated submodules for cart view, add-to-cart and
checkout flows while preserving the public API (`router`,
`setup_dependencies`, `show_cart`).
"""
from __future__ import annotations

from typing import Any

from aiogram import Router

from .common import setup_dependencies as _setup_common_dependencies
from . import add as cart_add
from . import checkout as cart_checkout
from . import view as cart_view


router = Router(name="cart")
_registered = False


def setup_dependencies(
    bot_instance: Any,
    carts: Any,
    sessions: Any,
    directory: Any,
    settings: Any = None,
) -> None:
    """Initialize shared cart dependencies and register all cart handlers."""
    global _registered

    _setup_common_dependencies(bot_instance, carts, sessions, directory, settings)

    # Handlers live on a module-level router and may only be added once
    if _registered:
        return
    cart_add.register(router)
    cart_view.register(router)
    cart_checkout.register(router)
    _registered = True


from .view import show_cart  # noqa: E402,F401
