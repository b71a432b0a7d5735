"""FSM states for the checkout form."""
from __future__ import annotations

from aiogram.fsm.state import State, StatesGroup


class CheckoutForm(StatesGroup):
    """
    Buyer details collected after a payment method is chosen.

    Flow: Telegram name → address → phone (optional) → remark (optional)
    → transaction number (wallet payments only) → review
    """

    buyer_handle = State()
    shipping_address = State()
    phone_number = State()
    remark = State()
    transaction_number = State()
