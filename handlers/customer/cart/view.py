"""Cart view and editing handlers.

Contains unified `show_cart` helper used by other modules
and all handlers that display or refresh the cart contents.
"""
from __future__ import annotations

from aiogram import F, Router, types
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext

from localization import get_text
from storefront.keyboards.cart import cart_keyboard
from storefront.presenters.checkout_messages import render_cart

from . import common


def _build_cart_view(user_id: int, lang: str) -> tuple[str, types.InlineKeyboardMarkup]:
    cart = common.carts.get(user_id)
    items = cart.items
    return render_cart(lang, items, cart.get_total()), cart_keyboard(lang, items)


async def show_cart(
    event: types.Message | types.CallbackQuery,
    state: FSMContext,
    is_callback: bool = False,
) -> None:
    """Public helper to display the current cart."""
    if not common.carts or not event.from_user:
        if is_callback and isinstance(event, types.CallbackQuery):
            await event.answer()
        return

    await state.clear()
    common.leave_checkout(event.from_user)
    lang = common.get_lang(event.from_user)
    text, markup = _build_cart_view(event.from_user.id, lang)

    if is_callback and isinstance(event, types.CallbackQuery):
        await common.edit_or_answer(event, text, reply_markup=markup)
        await event.answer()
    else:
        await event.answer(text, parse_mode="HTML", reply_markup=markup)


def _product_id(callback: types.CallbackQuery) -> str:
    return (callback.data or "").split(":", 1)[-1]


def register(router: Router) -> None:
    """Register cart view and editing handlers on the given router."""

    @router.message(Command("cart"))
    async def show_cart_message(message: types.Message, state: FSMContext) -> None:
        await show_cart(message, state, is_callback=False)

    @router.callback_query(F.data == "cart_view")
    async def back_to_cart(callback: types.CallbackQuery, state: FSMContext) -> None:
        await show_cart(callback, state, is_callback=True)

    @router.callback_query(F.data == "cart_noop")
    async def cart_noop(callback: types.CallbackQuery) -> None:
        await callback.answer()

    @router.callback_query(F.data.startswith("cart_inc:"))
    async def cart_quantity_increase(callback: types.CallbackQuery, state: FSMContext) -> None:
        cart = common.carts.get(callback.from_user.id)
        product_id = _product_id(callback)
        item = cart.get_item(product_id)
        if item:
            cart.update_quantity(product_id, item.quantity + 1)
        await show_cart(callback, state, is_callback=True)

    @router.callback_query(F.data.startswith("cart_dec:"))
    async def cart_quantity_decrease(callback: types.CallbackQuery, state: FSMContext) -> None:
        cart = common.carts.get(callback.from_user.id)
        product_id = _product_id(callback)
        item = cart.get_item(product_id)
        if item:
            # Going below one removes the line
            cart.update_quantity(product_id, item.quantity - 1)
        await show_cart(callback, state, is_callback=True)

    @router.callback_query(F.data.startswith("cart_remove:"))
    async def cart_remove_item(callback: types.CallbackQuery, state: FSMContext) -> None:
        lang = common.get_lang(callback.from_user)
        cart = common.carts.get(callback.from_user.id)
        if cart.remove_item(_product_id(callback)):
            await callback.answer(get_text(lang, "cart_item_removed"))
        await show_cart(callback, state, is_callback=True)

    @router.callback_query(F.data == "cart_clear")
    async def cart_clear(callback: types.CallbackQuery, state: FSMContext) -> None:
        lang = common.get_lang(callback.from_user)
        common.carts.get(callback.from_user.id).clear_cart()
        common.leave_checkout(callback.from_user)
        await state.clear()
        await common.edit_or_answer(callback, get_text(lang, "cart_cleared"))
        await callback.answer()
