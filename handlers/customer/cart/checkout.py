"""Checkout handlers: payment selection, buyer form, confirmation and success."""
from __future__ import annotations

from aiogram import F, Router, types
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State

from localization import get_text
from logging_config import logger
from storefront.core.exceptions import DataFetchException
from storefront.domain.checkout import CheckoutPhase
from storefront.domain.payment import PaymentMethod
from storefront.keyboards.cart import (
    confirmation_keyboard,
    failed_keyboard,
    form_step_keyboard,
    payment_methods_keyboard,
    review_keyboard,
    store_link_keyboard,
    success_keyboard,
)
from storefront.presenters.checkout_messages import (
    render_confirmation,
    render_payment_screen,
    render_success,
)
from storefront.services.chat_links import generate_store_order_message, generate_telegram_link
from storefront.services.checkout_service import CheckoutFlow

from . import common
from .states import CheckoutForm
from .view import show_cart

# (form field, FSM state, prompt text key, optional)
FORM_STEPS: tuple[tuple[str, State, str, bool], ...] = (
    ("buyer_handle", CheckoutForm.buyer_handle, "ask_buyer_handle", False),
    ("shipping_address", CheckoutForm.shipping_address, "ask_shipping_address", False),
    ("phone_number", CheckoutForm.phone_number, "ask_phone_number", True),
    ("remark", CheckoutForm.remark, "ask_remark", True),
    ("transaction_number", CheckoutForm.transaction_number, "ask_transaction_number", False),
)


def _form_steps(flow: CheckoutFlow) -> list[tuple[str, State, str, bool]]:
    method = flow.state.selected_payment
    needs_reference = method is not None and method.requires_reference
    return [
        step for step in FORM_STEPS if step[0] != "transaction_number" or needs_reference
    ]


def _payment_markup(lang: str, flow: CheckoutFlow) -> types.InlineKeyboardMarkup:
    return payment_methods_keyboard(
        lang, flow.store.payment_settings, selected=flow.state.selected_payment
    )


# ---- timer callbacks (run outside of any update) ----


async def notify_payment_expired(flow: CheckoutFlow) -> None:
    lang = common.get_lang(None)
    await common.bot.send_message(
        int(flow.owner),
        get_text(lang, "checkout_expired"),
        reply_markup=_payment_markup(lang, flow),
    )


async def redirect_to_store(flow: CheckoutFlow, target: str) -> None:
    lang = common.get_lang(None)
    await common.bot.send_message(
        int(flow.owner),
        get_text(lang, "redirect_store", url=common.esc(target)),
        reply_markup=store_link_keyboard(lang, target),
    )


# ---- screens ----


async def show_payment_screen(callback: types.CallbackQuery, flow: CheckoutFlow) -> None:
    lang = common.get_lang(callback.from_user)
    await common.edit_or_answer(
        callback, render_payment_screen(lang, flow.summary()), reply_markup=_payment_markup(lang, flow)
    )


async def ask_step(
    message: types.Message,
    state: FSMContext,
    step: tuple[str, State, str, bool],
    user: types.User | None,
) -> None:
    field, fsm_state, prompt_key, optional = step
    lang = common.get_lang(user)
    username = user.username if user and field == "buyer_handle" else None
    await state.set_state(fsm_state)
    await message.answer(
        get_text(lang, prompt_key),
        reply_markup=form_step_keyboard(lang, optional=optional, username=username),
    )


async def advance_form(
    message: types.Message,
    state: FSMContext,
    flow: CheckoutFlow,
    field: str,
    user: types.User | None,
) -> None:
    """Ask for the field after `field`, or show the review screen when done."""
    steps = _form_steps(flow)
    names = [step[0] for step in steps]
    index = names.index(field) + 1 if field in names else len(steps)
    if index < len(steps):
        await ask_step(message, state, steps[index], user)
        return

    await state.clear()
    lang = common.get_lang(user)
    await message.answer(
        render_payment_screen(lang, flow.summary()),
        parse_mode="HTML",
        reply_markup=review_keyboard(lang),
    )


async def _current_flow(event: types.CallbackQuery | types.Message, state: FSMContext):
    """Active checkout of the user, or None after sending them back to the cart."""
    flow = common.sessions.get(event.from_user.id) if event.from_user else None
    if flow is None or flow.store is None:
        is_callback = isinstance(event, types.CallbackQuery)
        await show_cart(event, state, is_callback=is_callback)
        return None
    return flow


def register(router: Router) -> None:
    """Register checkout handlers on the given router."""

    @router.callback_query(F.data == "cart_checkout")
    async def cart_checkout(callback: types.CallbackQuery, state: FSMContext) -> None:
        if not common.sessions or not callback.message:
            await callback.answer()
            return

        lang = common.get_lang(callback.from_user)
        await state.clear()
        flow = common.sessions.open(
            callback.from_user.id,
            on_expired=notify_payment_expired,
            on_redirect=redirect_to_store,
        )
        if flow.is_submitting:
            await callback.answer(get_text(lang, "checkout_in_progress"), show_alert=True)
            return

        try:
            started = await flow.start()
        except DataFetchException as e:
            logger.error(f"Checkout load failed for {callback.from_user.id}: {e}")
            common.sessions.discard(callback.from_user.id)
            await callback.answer(get_text(lang, "checkout_load_error"), show_alert=True)
            return

        if not started:
            common.sessions.discard(callback.from_user.id)
            await callback.answer(get_text(lang, "checkout_cart_empty"), show_alert=True)
            await show_cart(callback, state, is_callback=True)
            return

        await show_payment_screen(callback, flow)
        await callback.answer()

    @router.callback_query(F.data.startswith("pay:"))
    async def select_payment(callback: types.CallbackQuery, state: FSMContext) -> None:
        flow = await _current_flow(callback, state)
        if flow is None:
            return

        method = PaymentMethod.parse((callback.data or "").split(":", 1)[-1])
        if method is None:
            await callback.answer()
            return

        checkout_state = flow.select_payment(method)
        if checkout_state.error:
            await callback.answer(checkout_state.error, show_alert=True)
            return
        if checkout_state.selected_payment is not method:
            await callback.answer()
            return

        await show_payment_screen(callback, flow)
        await callback.answer()
        form = checkout_state.form
        if form.buyer_handle.strip() and form.shipping_address.strip():
            # Reselecting after the window expired keeps the entered details
            last = "transaction_number" if form.transaction_number.strip() else "remark"
            await advance_form(callback.message, state, flow, last, callback.from_user)
        else:
            await ask_step(callback.message, state, FORM_STEPS[0], callback.from_user)

    @router.callback_query(F.data == "co_payment")
    async def back_to_payment(callback: types.CallbackQuery, state: FSMContext) -> None:
        flow = await _current_flow(callback, state)
        if flow is None:
            return
        await state.clear()
        await show_payment_screen(callback, flow)
        await callback.answer()

    @router.callback_query(F.data == "co_form")
    async def edit_details(callback: types.CallbackQuery, state: FSMContext) -> None:
        flow = await _current_flow(callback, state)
        if flow is None:
            return
        await callback.answer()
        await ask_step(callback.message, state, FORM_STEPS[0], callback.from_user)

    @router.callback_query(F.data == "co_abort")
    async def abort_form(callback: types.CallbackQuery, state: FSMContext) -> None:
        flow = await _current_flow(callback, state)
        if flow is None:
            return
        await state.clear()
        await show_payment_screen(callback, flow)
        await callback.answer()

    # ---- form input ----

    async def _store_field(
        message: types.Message, state: FSMContext, field: str, value: str
    ) -> None:
        flow = await _current_flow(message, state)
        if flow is None:
            return
        flow.update_form(**{field: value.strip()})
        await advance_form(message, state, flow, field, message.from_user)

    @router.message(CheckoutForm.buyer_handle, F.text)
    async def form_buyer_handle(message: types.Message, state: FSMContext) -> None:
        await _store_field(message, state, "buyer_handle", message.text)

    @router.message(CheckoutForm.shipping_address, F.text)
    async def form_shipping_address(message: types.Message, state: FSMContext) -> None:
        await _store_field(message, state, "shipping_address", message.text)

    @router.message(CheckoutForm.phone_number, F.text)
    async def form_phone_number(message: types.Message, state: FSMContext) -> None:
        await _store_field(message, state, "phone_number", message.text)

    @router.message(CheckoutForm.remark, F.text)
    async def form_remark(message: types.Message, state: FSMContext) -> None:
        await _store_field(message, state, "remark", message.text)

    @router.message(CheckoutForm.transaction_number, F.text)
    async def form_transaction_number(message: types.Message, state: FSMContext) -> None:
        await _store_field(message, state, "transaction_number", message.text)

    @router.callback_query(F.data == "co_use_username", CheckoutForm.buyer_handle)
    async def use_my_username(callback: types.CallbackQuery, state: FSMContext) -> None:
        flow = await _current_flow(callback, state)
        if flow is None:
            return
        await callback.answer()
        flow.update_form(buyer_handle=f"@{callback.from_user.username}")
        await advance_form(callback.message, state, flow, "buyer_handle", callback.from_user)

    @router.callback_query(F.data == "co_skip")
    async def skip_optional(callback: types.CallbackQuery, state: FSMContext) -> None:
        flow = await _current_flow(callback, state)
        if flow is None:
            return
        await callback.answer()
        current = await state.get_state()
        field = next((step[0] for step in FORM_STEPS if step[1].state == current), None)
        if field is None:
            return
        flow.update_form(**{field: ""})
        await advance_form(callback.message, state, flow, field, callback.from_user)

    # ---- confirmation gate ----

    @router.callback_query(F.data == "co_review")
    async def review_order(callback: types.CallbackQuery, state: FSMContext) -> None:
        flow = await _current_flow(callback, state)
        if flow is None:
            return
        lang = common.get_lang(callback.from_user)
        checkout_state = flow.request_confirmation()
        if checkout_state.phase != CheckoutPhase.CONFIRMING:
            await callback.answer(checkout_state.error or "", show_alert=bool(checkout_state.error))
            return
        await common.edit_or_answer(
            callback,
            render_confirmation(lang, flow.summary()),
            reply_markup=confirmation_keyboard(lang),
        )
        await callback.answer()

    @router.callback_query(F.data == "co_cancel")
    async def cancel_confirmation(callback: types.CallbackQuery, state: FSMContext) -> None:
        flow = await _current_flow(callback, state)
        if flow is None:
            return
        if flow.phase == CheckoutPhase.CONFIRMING:
            flow.cancel_confirmation()
        lang = common.get_lang(callback.from_user)
        await common.edit_or_answer(
            callback, render_payment_screen(lang, flow.summary()), reply_markup=review_keyboard(lang)
        )
        await callback.answer()

    @router.callback_query(F.data == "co_confirm")
    async def confirm_order(callback: types.CallbackQuery, state: FSMContext) -> None:
        flow = await _current_flow(callback, state)
        if flow is None:
            return
        if flow.phase != CheckoutPhase.CONFIRMING:
            # Double taps while the order is being sent
            await callback.answer()
            return

        lang = common.get_lang(callback.from_user)
        summary = flow.summary()
        await common.edit_or_answer(callback, get_text(lang, "submitting"))
        await callback.answer()

        checkout_state = await flow.confirm_order()

        if checkout_state.phase == CheckoutPhase.SUCCESS:
            chat_link = None
            if flow.store and flow.store.telegram_username:
                chat_link = generate_telegram_link(
                    flow.store.telegram_username,
                    generate_store_order_message(flow.store.name, summary.lines),
                )
            await common.edit_or_answer(
                callback,
                render_success(lang, common.redirect_seconds()),
                reply_markup=success_keyboard(lang, chat_link),
            )
        elif checkout_state.phase == CheckoutPhase.FAILED:
            await common.edit_or_answer(
                callback, common.esc(checkout_state.error), reply_markup=failed_keyboard(lang)
            )
        else:
            await common.edit_or_answer(
                callback,
                get_text(lang, "checkout_expired"),
                reply_markup=_payment_markup(lang, flow),
            )

    @router.callback_query(F.data == "co_retry")
    async def retry_order(callback: types.CallbackQuery, state: FSMContext) -> None:
        flow = await _current_flow(callback, state)
        if flow is None:
            return
        flow.recover()
        lang = common.get_lang(callback.from_user)
        await common.edit_or_answer(
            callback, render_payment_screen(lang, flow.summary()), reply_markup=review_keyboard(lang)
        )
        await callback.answer()

    # ---- success ----

    @router.callback_query(F.data == "co_continue")
    async def continue_to_store(callback: types.CallbackQuery, state: FSMContext) -> None:
        lang = common.get_lang(callback.from_user)
        flow = common.sessions.get(callback.from_user.id)
        target = flow.continue_now() if flow else None
        common.sessions.discard(callback.from_user.id)
        await state.clear()
        if target is None:
            await show_cart(callback, state, is_callback=True)
            return
        await callback.answer()
        await common.edit_or_answer(
            callback,
            get_text(lang, "redirect_store", url=common.esc(target)),
            reply_markup=store_link_keyboard(lang, target),
        )
