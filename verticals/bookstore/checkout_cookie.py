"""Checkout basket stored in a cookie.

The cookie carries the anonymous customer id plus the basket lines, as a
comma separated list: "<user id hex>,<book id>,<num books>,<book id>,...".
The user id in it is what the order filter scopes orders by.
"""

import uuid
from typing import Iterable, Mapping

from verticals.bookstore.config import config
from verticals.bookstore.models.schemas import OrderLineItem


class CheckoutCookie:
    """Decoded checkout cookie: a user id and basket lines."""

    def __init__(
        self,
        user_id: uuid.UUID | None = None,
        line_items: Iterable[OrderLineItem] = (),
    ):
        self.user_id = user_id or uuid.uuid4()
        self._line_items = list(line_items)

    @classmethod
    def decode(cls, value: str) -> "CheckoutCookie":
        """Parse a cookie value. Raises ValueError if it is malformed."""
        parts = value.split(",")
        numbers = parts[1:]
        if len(numbers) % 2:
            raise ValueError("Checkout cookie has an incomplete line item")
        user_id = uuid.UUID(parts[0])
        line_items = [
            OrderLineItem(book_id=int(numbers[i]), num_books=int(numbers[i + 1]))
            for i in range(0, len(numbers), 2)
        ]
        return cls(user_id, line_items)

    @classmethod
    def from_cookies(
        cls, cookies: Mapping[str, str], name: str | None = None
    ) -> "CheckoutCookie":
        """Read the basket from request cookies; new user id if there is none."""
        value = cookies.get(name or config.checkout.cookie_name)
        if not value:
            return cls()
        return cls.decode(value)

    @property
    def line_items(self) -> list[OrderLineItem]:
        return list(self._line_items)

    def add_line_item(self, book_id: int, num_books: int) -> None:
        self._line_items.append(OrderLineItem(book_id=book_id, num_books=num_books))

    def update_line_item(self, index: int, num_books: int) -> None:
        current = self._line_items[index]
        self._line_items[index] = OrderLineItem(book_id=current.book_id, num_books=num_books)

    def delete_line_item(self, index: int) -> None:
        del self._line_items[index]

    def clear_all_line_items(self) -> None:
        self._line_items.clear()

    def encode(self) -> str:
        parts = [self.user_id.hex]
        for item in self._line_items:
            parts.extend((str(item.book_id), str(item.num_books)))
        return ",".join(parts)

    def __repr__(self) -> str:
        return f"CheckoutCookie(user_id={self.user_id}, items={len(self._line_items)})"
