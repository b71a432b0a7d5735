# Bot texts

TEXTS = {
    "en": {
        # Cart
        "cart_title": "🛒 <b>Your cart</b>",
        "cart_empty": "🛒 Your cart is empty\n\nOpen a store and add some products!",
        "cart_total": "💵 <b>Total: {total}</b>",
        "cart_cleared": "🗑 Cart cleared",
        "cart_added": "✅ Added {quantity}× {name} to cart",
        "cart_add_other_store": (
            "Your cart already has items from another store. "
            "Finish that order or clear the cart first."
        ),
        "cart_product_unavailable": "❌ Product not found or out of stock",
        "cart_item_removed": "Removed",
        "fallback_hint": "Open a store to browse products, or send /cart to see your cart.",
        "btn_add_to_cart": "🛒 Add to cart",
        "btn_view_cart": "🛒 View cart",
        "product_card": "<b>{name}</b>\n💰 {price}",
        "btn_checkout": "✅ Checkout",
        "btn_clear_cart": "🗑 Clear",
        "btn_back": "⬅️ Back",
        "btn_cancel": "❌ Cancel",
        "btn_skip": "Skip ➡️",
        # Checkout: payment
        "checkout_title": "💳 <b>Checkout</b>: {store}",
        "checkout_choose_payment": "Choose a payment method:",
        "checkout_method_disabled": "{method} (unavailable)",
        "checkout_time_left": "⏳ Time left to pay: <b>{time}</b>",
        "checkout_payment_instructions": (
            "Please send exactly <b>{amount}</b> to:\n<code>{address}</code>"
        ),
        "checkout_cod_instructions": "You will pay <b>{amount}</b> on delivery.",
        "checkout_load_error": "❌ Failed to load payment information",
        "checkout_cart_empty": "Your cart is empty",
        "checkout_expired": (
            "⌛ The payment window has expired.\n"
            "Select a payment method again to restart the timer."
        ),
        # Checkout: form
        "ask_buyer_handle": "👤 Your Telegram name (e.g. @username):",
        "ask_shipping_address": "📍 Shipping address:",
        "ask_phone_number": "📱 Phone number (optional):",
        "ask_remark": "📝 Remark for the store (optional):",
        "ask_transaction_number": "🔢 6-digit transaction number of your transfer:",
        "btn_use_my_username": "Use @{username}",
        "btn_review_order": "📋 Review order",
        "btn_edit_details": "✏️ Edit details",
        # Checkout: confirmation gate
        "confirm_title": "📋 <b>Confirm order</b>",
        "confirm_store": "🏪 Store: {store}",
        "confirm_payment_method": "💳 Payment method: {method}",
        "confirm_transaction": "🔢 Transaction number: {number}",
        "confirm_buyer": "👤 Telegram: {handle}",
        "confirm_address": "📍 Address: {address}",
        "confirm_phone": "📱 Phone: {phone}",
        "confirm_remark": "📝 Remark: {remark}",
        "btn_confirm_order": "✅ Confirm order",
        "submitting": "⏳ Sending your order…",
        "checkout_in_progress": "Your previous order is still being sent. Please wait a moment.",
        # Success
        "success_title": "🎉 <b>Success!</b>\nYour order has been sent successfully.",
        "success_followup": (
            "The store will contact you on Telegram to confirm.\n"
            "Returning to the store in {seconds} seconds…"
        ),
        "btn_return_to_store": "🏪 Return to store",
        "btn_message_store": "💬 Message the store",
        "redirect_store": "🏪 Back to the store: {url}",
        "order_failed_retry": "🔁 Try again",
    },
}


def get_text(lang: str, key: str, **kwargs: object) -> str:
    """Return the text for `key` in `lang`, formatted with kwargs.

    Falls back to English, then to the key itself.
    """
    texts = TEXTS.get(lang) or TEXTS["en"]
    text = texts.get(key)
    if text is None:
        text = TEXTS["en"].get(key, key)

    if kwargs and text != key:
        try:
            return text.format(**kwargs)
        except (KeyError, ValueError) as e:
            import logging

            logging.warning(f"Format error in get_text: {e}, key={key}, lang={lang}")
    return text

