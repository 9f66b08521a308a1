"""
Domain Exceptions

All errors raised by the package derive from CoffeeSalesError so callers can
catch the whole family at once.
"""

from typing import Any, Optional


class CoffeeSalesError(Exception):
    """Base exception for all coffee sales errors"""


class ConfigError(CoffeeSalesError):
    """Raised when configuration values are invalid or inconsistent"""


class DuplicateKey(CoffeeSalesError):
    """Raised when a fact row is inserted with an order id that already exists"""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order '{order_id}' already exists")


class NotFound(CoffeeSalesError):
    """Raised when an order id does not exist in the fact store"""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order '{order_id}' not found")


class InvariantViolation(CoffeeSalesError):
    """
    Raised when the product sales mart disagrees with the fact store.

    The maintainer never raises this while applying a delta; it logs the
    violation and repairs the mart row instead. It surfaces only from an
    explicit strict reconciliation.
    """

    def __init__(self, message: str, details: Optional[Any] = None):
        self.details = details
        super().__init__(message)


class DataLoadError(CoffeeSalesError):
    """Raised when a bulk load is rejected"""

    def __init__(self, message: str, errors: Optional[list] = None):
        self.errors = errors or []
        super().__init__(message)
