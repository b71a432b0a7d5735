"""Common cart dependencies and small helpers.

This module centralizes shared globals (carts, checkout sessions, store
directory, bot) used across cart submodules.
"""
from __future__ import annotations

from typing import Any

from aiogram import types
from aiogram.exceptions import TelegramBadRequest

from storefront.core.constants import DEFAULT_LANGUAGE, SUCCESS_REDIRECT_SECONDS
from storefront.presenters.checkout_messages import esc  # noqa: F401

# These will be set from `setup_dependencies` in `router.py`.
bot: Any = None
carts: Any = None
sessions: Any = None
directory: Any = None
settings: Any = None


def setup_dependencies(
    bot_instance: Any,
    cart_registry: Any,
    checkout_sessions: Any,
    store_directory: Any,
    app_settings: Any = None,
) -> None:
    """Initialize shared cart dependencies."""
    global bot, carts, sessions, directory, settings
    bot = bot_instance
    carts = cart_registry
    sessions = checkout_sessions
    directory = store_directory
    settings = app_settings


def get_lang(user: types.User | None) -> str:
    return DEFAULT_LANGUAGE


def redirect_seconds() -> int:
    if settings is None:
        return SUCCESS_REDIRECT_SECONDS
    return int(settings.checkout.redirect_seconds)


async def edit_or_answer(
    callback: types.CallbackQuery, text: str, reply_markup: Any = None
) -> None:
    """Replace the callback's message, or send a new one if it can't be edited."""
    if not callback.message:
        return
    try:
        await callback.message.edit_text(text, parse_mode="HTML", reply_markup=reply_markup)
    except TelegramBadRequest:
        await callback.message.answer(text, parse_mode="HTML", reply_markup=reply_markup)


def leave_checkout(user: types.User | None) -> None:
    """Stop the checkout of a user who navigated away before submitting."""
    if sessions is not None and user is not None:
        sessions.leave(user.id)
