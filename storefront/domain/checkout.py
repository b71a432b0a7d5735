"""Checkout state machine (single source of truth for phases and guards).

States are immutable values; every transition is a pure function that
returns a new `CheckoutState`. Timers, network and rendering live in
`storefront.services.checkout_service` and the bot handlers.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from storefront.core.constants import CHECKOUT_COUNTDOWN_SECONDS, TRANSACTION_NUMBER_LENGTH
from storefront.core.exceptions import (
    InvalidTransitionException,
    PaymentMethodUnavailableException,
    ValidationException,
)

from .cart import CartItem, quantize_money
from .payment import PaymentMethod, StorePaymentSettings, StoreProfile


class CheckoutPhase(str, Enum):
    SELECTING_PAYMENT = "selecting_payment"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMING = "confirming"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


ALLOWED_TRANSITIONS: Mapping[CheckoutPhase, frozenset[CheckoutPhase]] = {
    CheckoutPhase.SELECTING_PAYMENT: frozenset({CheckoutPhase.AWAITING_CONFIRMATION}),
    CheckoutPhase.AWAITING_CONFIRMATION: frozenset(
        {
            # re-selecting a method restarts the payment window
            CheckoutPhase.AWAITING_CONFIRMATION,
            CheckoutPhase.CONFIRMING,
        }
    ),
    CheckoutPhase.CONFIRMING: frozenset(
        {
            CheckoutPhase.AWAITING_CONFIRMATION,
            CheckoutPhase.SUBMITTING,
        }
    ),
    CheckoutPhase.SUBMITTING: frozenset({CheckoutPhase.SUCCESS, CheckoutPhase.FAILED}),
    CheckoutPhase.FAILED: frozenset({CheckoutPhase.AWAITING_CONFIRMATION}),
    CheckoutPhase.SUCCESS: frozenset(),
}

TERMINAL_PHASES = frozenset({CheckoutPhase.SUCCESS})

FORM_FIELDS = (
    "buyer_handle",
    "shipping_address",
    "phone_number",
    "remark",
    "transaction_number",
)


@dataclass(frozen=True, slots=True)
class OrderForm:
    """Buyer-supplied order details."""

    buyer_handle: str = ""
    shipping_address: str = ""
    phone_number: str = ""
    remark: str = ""
    transaction_number: str = ""


@dataclass(frozen=True, slots=True)
class CheckoutState:
    phase: CheckoutPhase = CheckoutPhase.SELECTING_PAYMENT
    selected_payment: PaymentMethod | None = None
    form: OrderForm = field(default_factory=OrderForm)
    time_left: int = CHECKOUT_COUNTDOWN_SECONDS
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES


def _transition(state: CheckoutState, target: CheckoutPhase, **changes: Any) -> CheckoutState:
    allowed = ALLOWED_TRANSITIONS.get(state.phase, frozenset())
    if target not in allowed:
        raise InvalidTransitionException(state.phase.value, target.value)
    return replace(state, phase=target, **changes)


def validate_order_form(method: PaymentMethod | None, form: OrderForm) -> str | None:
    """Return the first validation message, or None when the form is complete."""
    needs_reference = method is not None and method.requires_reference
    reference = form.transaction_number.strip()

    if not form.buyer_handle.strip():
        return "Telegram name is required"
    if needs_reference and not reference:
        return "Transaction number is required"
    if not form.shipping_address.strip():
        return "Shipping address is required"
    if needs_reference and not (
        len(reference) == TRANSACTION_NUMBER_LENGTH and reference.isascii() and reference.isdigit()
    ):
        return f"Transaction number must be {TRANSACTION_NUMBER_LENGTH} digits"
    return None


def select_payment(
    state: CheckoutState,
    method: PaymentMethod,
    settings: StorePaymentSettings,
    countdown_seconds: int = CHECKOUT_COUNTDOWN_SECONDS,
) -> CheckoutState:
    """Choose a payment method and (re)start the payment window.

    A method the store has not enabled leaves phase and selection untouched
    and only sets the error message.
    """
    if state.phase in (CheckoutPhase.SUBMITTING, CheckoutPhase.SUCCESS):
        return state
    if not settings.is_enabled(method):
        return replace(state, error=PaymentMethodUnavailableException(method.value).message)

    return _transition(
        state,
        CheckoutPhase.AWAITING_CONFIRMATION,
        selected_payment=method,
        time_left=countdown_seconds,
        error=None,
    )


def update_form(state: CheckoutState, **fields: str) -> CheckoutState:
    unknown = set(fields) - set(FORM_FIELDS)
    if unknown:
        raise ValueError(f"Unknown order form fields: {sorted(unknown)}")
    if state.phase not in (CheckoutPhase.SELECTING_PAYMENT, CheckoutPhase.AWAITING_CONFIRMATION):
        return state
    values = {name: "" if value is None else str(value) for name, value in fields.items()}
    return replace(state, form=replace(state.form, **values))


def tick(state: CheckoutState, seconds: int = 1) -> CheckoutState:
    if state.selected_payment is None or state.time_left <= 0:
        return state
    return replace(state, time_left=max(0, state.time_left - seconds))


def can_confirm(state: CheckoutState) -> bool:
    return (
        state.phase == CheckoutPhase.AWAITING_CONFIRMATION
        and state.selected_payment is not None
        and state.time_left > 0
    )


def request_confirmation(state: CheckoutState) -> CheckoutState:
    """Validate the form and open the order summary for a second confirmation."""
    if state.phase != CheckoutPhase.AWAITING_CONFIRMATION or state.selected_payment is None:
        return state
    if state.time_left <= 0:
        return replace(state, error="Payment window expired. Please select a payment method again")

    message = validate_order_form(state.selected_payment, state.form)
    if message:
        return replace(state, error=message)
    return _transition(state, CheckoutPhase.CONFIRMING, error=None)


def cancel_confirmation(state: CheckoutState) -> CheckoutState:
    if state.phase != CheckoutPhase.CONFIRMING:
        return state
    return _transition(state, CheckoutPhase.AWAITING_CONFIRMATION)


def begin_submission(state: CheckoutState) -> CheckoutState:
    return _transition(state, CheckoutPhase.SUBMITTING, error=None)


def complete_submission(state: CheckoutState) -> CheckoutState:
    return _transition(state, CheckoutPhase.SUCCESS, error=None)


def fail_submission(state: CheckoutState, message: str) -> CheckoutState:
    return _transition(state, CheckoutPhase.FAILED, error=message)


def recover(state: CheckoutState) -> CheckoutState:
    return _transition(state, CheckoutPhase.AWAITING_CONFIRMATION)


@dataclass(frozen=True, slots=True)
class OrderLine:
    name: str
    quantity: int
    price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True, slots=True)
class OrderIntent:
    """Validated, write-once snapshot handed to the notification endpoint."""

    store_id: str
    store_name: str
    buyer_handle: str
    shipping_address: str
    phone_number: str
    remark: str
    payment_method: PaymentMethod
    transaction_number: str
    items: tuple[OrderLine, ...]
    total_amount: Decimal

    @classmethod
    def build(
        cls,
        store: StoreProfile,
        items: Iterable[CartItem],
        method: PaymentMethod | None,
        form: OrderForm,
    ) -> OrderIntent:
        lines = tuple(OrderLine(item.name, int(item.quantity), item.price) for item in items)
        if not lines:
            raise ValidationException("Cart is empty")
        if method is None:
            raise ValidationException("Payment method is required")
        message = validate_order_form(method, form)
        if message:
            raise ValidationException(message)

        total = quantize_money(sum((line.subtotal for line in lines), Decimal("0")))
        return cls(
            store_id=store.id,
            store_name=store.name,
            buyer_handle=form.buyer_handle.strip(),
            shipping_address=form.shipping_address.strip(),
            phone_number=form.phone_number.strip(),
            remark=form.remark.strip(),
            payment_method=method,
            transaction_number=(
                form.transaction_number.strip() if method.requires_reference else ""
            ),
            items=lines,
            total_amount=total,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "storeId": self.store_id,
            "buyerHandle": self.buyer_handle,
            "transactionNumber": self.transaction_number,
            "shippingAddress": self.shipping_address,
            "phoneNumber": self.phone_number,
            "remark": self.remark,
            "items": [
                {"name": line.name, "quantity": line.quantity, "price": float(line.price)}
                for line in self.items
            ],
            "totalAmount": float(self.total_amount),
            "paymentMethod": self.payment_method.value,
        }
