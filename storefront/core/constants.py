"""Product constants shared by cart and checkout."""
from __future__ import annotations

# Persistence keys
CART_STORAGE_KEY = "cart-storage"
RETURN_HANDOFF_KEY = "checkout-return"
RETURN_HANDOFF_TTL_SECONDS = 60

# Cart UX
CART_ADD_DELAY_SECONDS = 0.4
RECENTLY_ADDED_SECONDS = 2.0
CART_IDLE_SECONDS = 60 * 60

# Checkout
CHECKOUT_COUNTDOWN_SECONDS = 15 * 60
SUCCESS_REDIRECT_SECONDS = 10
NOTIFY_MAX_RETRIES = 2
NOTIFY_RETRY_BASE_DELAY_SECONDS = 1.0
NOTIFY_TIMEOUT_SECONDS = 15

TRANSACTION_NUMBER_LENGTH = 6

# Display
DEFAULT_LANGUAGE = "en"
