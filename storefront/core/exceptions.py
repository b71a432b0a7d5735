"""Custom exceptions for the storefront bot."""
from __future__ import annotations


class StorefrontException(Exception):
    """Base exception for all storefront errors."""

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)
        self.message = message


class ValidationException(StorefrontException):
    """Missing or malformed checkout input."""

    pass


class PaymentMethodUnavailableException(StorefrontException):
    """Payment method is disabled for the store."""

    def __init__(self, method: str) -> None:
        super().__init__(f"{method.upper()} is not available for this store")
        self.method = method


class InvalidTransitionException(StorefrontException):
    """Checkout transition not permitted from the current phase."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Transition '{current} -> {target}' is not allowed")
        self.current = current
        self.target = target


class NotificationDeliveryException(StorefrontException):
    """Order notification endpoint rejected the request or was unreachable."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class DataFetchException(StorefrontException):
    """Reading store or payment data from the backend failed."""

    pass


class StoreNotFoundException(DataFetchException):
    """Store not found in the backend."""

    def __init__(self, store_id: str) -> None:
        super().__init__(f"Store with ID {store_id} not found")
        self.store_id = store_id


class ConfigurationException(StorefrontException):
    """Configuration errors."""

    pass
