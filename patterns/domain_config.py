"""Dataclass-based domain configuration.

The bookstore's order limits and checkout cookie settings, as frozen
dataclasses with defaults. BookstoreConfig.from_env() applies
BOOKSTORE_* environment overrides on top of the defaults.
"""

import os
from dataclasses import dataclass, field


# ---------------------------------------------------------------------------
# Nested config sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OrderConfig:
    """Limits enforced when an order is validated."""

    max_books_per_line: int = 100
    phone_number: str = "01234-5678-90"

    @property
    def too_many_books_message(self) -> str:
        return (
            f"If you want to order a {self.max_books_per_line} or more books"
            f" please phone us on {self.phone_number}"
        )


@dataclass(frozen=True)
class CheckoutConfig:
    """Checkout basket cookie settings."""

    cookie_name: str = "BookApp-Checkout"
    cookie_max_age_days: int = 200


# ---------------------------------------------------------------------------
# Top-level domain config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BookstoreConfig:
    """Complete configuration for the bookstore vertical.

    Usage::

        config = BookstoreConfig.default()
        if line_item.num_books > config.orders.max_books_per_line:
            ...
    """

    orders: OrderConfig = field(default_factory=OrderConfig)
    checkout: CheckoutConfig = field(default_factory=CheckoutConfig)

    @classmethod
    def default(cls) -> "BookstoreConfig":
        """Create config with all defaults."""
        return cls()

    @classmethod
    def from_env(cls, prefix: str = "BOOKSTORE_") -> "BookstoreConfig":
        """Create config from environment variables.

        Example: BOOKSTORE_MAX_BOOKS_PER_LINE=50
        """
        orders = {}
        max_books = os.getenv(f"{prefix}MAX_BOOKS_PER_LINE")
        if max_books:
            orders["max_books_per_line"] = int(max_books)
        phone = os.getenv(f"{prefix}PHONE_NUMBER")
        if phone:
            orders["phone_number"] = phone

        checkout = {}
        cookie_name = os.getenv(f"{prefix}CHECKOUT_COOKIE")
        if cookie_name:
            checkout["cookie_name"] = cookie_name

        return cls(orders=OrderConfig(**orders), checkout=CheckoutConfig(**checkout))
