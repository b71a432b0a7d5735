"""HTML texts for the cart, checkout and success screens."""
from __future__ import annotations

import html
from typing import Any

from localization import get_text
from storefront.domain.cart import CartItem
from storefront.services.checkout_service import CheckoutSummary
from storefront.services.currency import Currency, format_amount


def esc(val: Any) -> str:
    """HTML-escape helper used in cart texts."""
    if val is None:
        return ""
    return html.escape(str(val))


def format_countdown(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def thb(amount) -> str:
    return format_amount(amount, Currency.THB)


def render_cart(lang: str, items: list[CartItem], total) -> str:
    if not items:
        return get_text(lang, "cart_empty")

    lines = [get_text(lang, "cart_title"), ""]
    for i, item in enumerate(items, 1):
        lines.append(f"<b>{i}. {esc(item.name)}</b>")
        lines.append(f"   {item.quantity} × {thb(item.price)} = <b>{thb(item.subtotal)}</b>")
    lines.append("")
    lines.append(get_text(lang, "cart_total", total=thb(total)))
    return "\n".join(lines)


def _order_lines(lang: str, summary: CheckoutSummary) -> list[str]:
    lines = []
    for line in summary.lines:
        lines.append(f"• {esc(line.name)} × {line.quantity} = {thb(line.subtotal)}")
    lines.append(get_text(lang, "cart_total", total=thb(summary.total)))
    return lines


def render_payment_screen(lang: str, summary: CheckoutSummary) -> str:
    """Order summary, payment instructions and the running countdown."""
    lines = [get_text(lang, "checkout_title", store=esc(summary.store_name)), ""]
    lines.extend(_order_lines(lang, summary))
    lines.append("")

    method = summary.payment_method
    if method is None:
        lines.append(get_text(lang, "checkout_choose_payment"))
        return "\n".join(lines)

    lines.append(get_text(lang, "confirm_payment_method", method=method.label))
    if method.requires_reference:
        lines.append(
            get_text(
                lang,
                "checkout_payment_instructions",
                amount=summary.payment_amount,
                address=esc(summary.wallet_address or "—"),
            )
        )
        lines.append(get_text(lang, "checkout_time_left", time=format_countdown(summary.time_left)))
    else:
        lines.append(get_text(lang, "checkout_cod_instructions", amount=summary.payment_amount))
    return "\n".join(lines)


def render_confirmation(lang: str, summary: CheckoutSummary) -> str:
    form = summary.form
    method = summary.payment_method
    lines = [get_text(lang, "confirm_title"), ""]
    lines.append(get_text(lang, "confirm_store", store=esc(summary.store_name)))
    lines.extend(_order_lines(lang, summary))
    lines.append("")
    if method is not None:
        lines.append(get_text(lang, "confirm_payment_method", method=method.label))
        if method.requires_reference:
            lines.append(get_text(lang, "confirm_transaction", number=esc(form.transaction_number)))
    lines.append(get_text(lang, "confirm_buyer", handle=esc(form.buyer_handle)))
    lines.append(get_text(lang, "confirm_address", address=esc(form.shipping_address)))
    if form.phone_number.strip():
        lines.append(get_text(lang, "confirm_phone", phone=esc(form.phone_number)))
    if form.remark.strip():
        lines.append(get_text(lang, "confirm_remark", remark=esc(form.remark)))
    return "\n".join(lines)


def render_success(lang: str, redirect_seconds: int) -> str:
    return "\n\n".join(
        [
            get_text(lang, "success_title"),
            get_text(lang, "success_followup", seconds=redirect_seconds),
        ]
    )
