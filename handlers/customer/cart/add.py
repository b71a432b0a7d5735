"""Add-to-cart flow: product cards and the add button."""
from __future__ import annotations

from aiogram import F, Router, types
from aiogram.filters import CommandObject, CommandStart
from aiogram.fsm.context import FSMContext

from localization import get_text
from logging_config import logger
from storefront.core.exceptions import DataFetchException
from storefront.keyboards.cart import product_keyboard
from storefront.presenters.checkout_messages import esc, thb

from . import common
from .view import show_cart

PRODUCT_DEEP_LINK_PREFIX = "product_"


def build_product_card_text(lang: str, product) -> str:
    return get_text(lang, "product_card", name=esc(product.name), price=thb(product.price))


def register(router: Router) -> None:
    """Register add-to-cart handlers on the given router."""

    @router.message(CommandStart(deep_link=True))
    async def start_with_payload(
        message: types.Message, command: CommandObject, state: FSMContext
    ) -> None:
        """`/start product_<id>` opens a product card, anything else the cart."""
        payload = command.args or ""
        if not payload.startswith(PRODUCT_DEEP_LINK_PREFIX):
            await show_cart(message, state)
            return

        await state.clear()
        common.leave_checkout(message.from_user)
        lang = common.get_lang(message.from_user)
        product_id = payload[len(PRODUCT_DEEP_LINK_PREFIX):]
        try:
            product = common.directory.get_product(product_id)
        except DataFetchException:
            product = None
        if not product or not product.available:
            await message.answer(get_text(lang, "cart_product_unavailable"))
            return

        await message.answer(
            build_product_card_text(lang, product),
            parse_mode="HTML",
            reply_markup=product_keyboard(lang, product.id),
        )

    @router.message(CommandStart())
    async def start(message: types.Message, state: FSMContext) -> None:
        await show_cart(message, state)

    @router.callback_query(F.data.startswith("cart_add:"))
    async def cart_add(callback: types.CallbackQuery) -> None:
        if not common.carts or not common.directory:
            await callback.answer()
            return

        lang = common.get_lang(callback.from_user)
        product_id = (callback.data or "").split(":", 1)[-1]
        try:
            product = common.directory.get_product(product_id)
        except DataFetchException as e:
            logger.warning(f"Product lookup failed for {product_id}: {e}")
            product = None
        if not product or not product.available:
            await callback.answer(get_text(lang, "cart_product_unavailable"), show_alert=True)
            return

        cart = common.carts.get(callback.from_user.id)
        item = await cart.add_item(
            product_id=product.id,
            store_id=product.store_id,
            name=product.name,
            price=product.price,
            image=product.image,
        )
        if item is None:
            await callback.answer(get_text(lang, "cart_add_other_store"), show_alert=True)
            return

        await callback.answer(get_text(lang, "cart_added", quantity=1, name=product.name))
