"""Inline keyboards for the cart and checkout screens."""
from __future__ import annotations

from aiogram.types import InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from localization import get_text
from storefront.domain.cart import CartItem
from storefront.domain.payment import PAYMENT_METHODS, PaymentMethod, StorePaymentSettings


def is_absolute_url(url: str | None) -> bool:
    return bool(url) and url.startswith(("http://", "https://"))


def cart_keyboard(lang: str, items: list[CartItem]) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for item in items:
        title = item.name[:20] + "..." if len(item.name) > 20 else item.name
        builder.button(text="➖", callback_data=f"cart_dec:{item.product_id}")
        builder.button(text=f"{title} ({item.quantity})", callback_data="cart_noop")
        builder.button(text="➕", callback_data=f"cart_inc:{item.product_id}")
        builder.button(text="🗑", callback_data=f"cart_remove:{item.product_id}")

    if items:
        builder.button(text=get_text(lang, "btn_checkout"), callback_data="cart_checkout")
        builder.button(text=get_text(lang, "btn_clear_cart"), callback_data="cart_clear")
    builder.adjust(*([4] * len(items)), 1, 1)
    return builder.as_markup()


def product_keyboard(lang: str, product_id: str) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.button(text=get_text(lang, "btn_add_to_cart"), callback_data=f"cart_add:{product_id}")
    builder.button(text=get_text(lang, "btn_view_cart"), callback_data="cart_view")
    builder.adjust(1)
    return builder.as_markup()


def payment_methods_keyboard(
    lang: str,
    settings: StorePaymentSettings,
    selected: PaymentMethod | None = None,
) -> InlineKeyboardMarkup:
    """One button per method; disabled methods stay visible but are marked."""
    builder = InlineKeyboardBuilder()
    for method in PAYMENT_METHODS:
        if not settings.is_enabled(method):
            text = get_text(lang, "checkout_method_disabled", method=method.label)
        elif method is selected:
            text = f"✅ {method.label}"
        else:
            text = method.label
        builder.button(text=text, callback_data=f"pay:{method.value}")

    if selected is not None:
        builder.button(text=get_text(lang, "btn_edit_details"), callback_data="co_form")
    builder.button(text=get_text(lang, "btn_back"), callback_data="cart_view")
    builder.adjust(1)
    return builder.as_markup()


def form_step_keyboard(
    lang: str, optional: bool = False, username: str | None = None
) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    if username:
        builder.button(
            text=get_text(lang, "btn_use_my_username", username=username),
            callback_data="co_use_username",
        )
    if optional:
        builder.button(text=get_text(lang, "btn_skip"), callback_data="co_skip")
    builder.button(text=get_text(lang, "btn_cancel"), callback_data="co_abort")
    builder.adjust(1)
    return builder.as_markup()


def review_keyboard(lang: str) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.button(text=get_text(lang, "btn_review_order"), callback_data="co_review")
    builder.button(text=get_text(lang, "btn_edit_details"), callback_data="co_form")
    builder.button(text=get_text(lang, "btn_back"), callback_data="co_payment")
    builder.adjust(1)
    return builder.as_markup()


def confirmation_keyboard(lang: str) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.button(text=get_text(lang, "btn_confirm_order"), callback_data="co_confirm")
    builder.button(text=get_text(lang, "btn_cancel"), callback_data="co_cancel")
    builder.adjust(2)
    return builder.as_markup()


def failed_keyboard(lang: str) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.button(text=get_text(lang, "order_failed_retry"), callback_data="co_retry")
    builder.button(text=get_text(lang, "btn_back"), callback_data="cart_view")
    builder.adjust(1)
    return builder.as_markup()


def success_keyboard(lang: str, chat_link: str | None = None) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.button(text=get_text(lang, "btn_return_to_store"), callback_data="co_continue")
    if chat_link:
        builder.button(text=get_text(lang, "btn_message_store"), url=chat_link)
    builder.adjust(1)
    return builder.as_markup()


def store_link_keyboard(lang: str, url: str) -> InlineKeyboardMarkup | None:
    """URL button back to the store; Telegram only accepts absolute URLs."""
    if not is_absolute_url(url):
        return None
    builder = InlineKeyboardBuilder()
    builder.button(text=get_text(lang, "btn_return_to_store"), url=url)
    return builder.as_markup()
