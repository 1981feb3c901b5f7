"""Order placement data access.

The narrow façade the order-placement action talks to: look up the books a
basket refers to, and stage the new order. It never saves; the caller runs
the validating save so creation and validation stay visible in one place.
"""

from typing import Iterable, Protocol
from uuid import UUID

from sqlalchemy.orm import selectinload

from verticals.bookstore.context import AsyncBookStoreContext, BookStoreContext
from verticals.bookstore.models.db_models import Book, Order


class PlaceOrderDbAccessProtocol(Protocol):
    """What PlaceOrderAction.run() needs from its data access."""

    @property
    def user_id(self) -> UUID: ...

    def find_books_by_ids_with_price_offers(self, book_ids: Iterable[int]) -> dict[int, Book]: ...

    def add(self, new_order: Order) -> None: ...


# ---------------------------------------------------------------------------
# Sync façade
# ---------------------------------------------------------------------------

class PlaceOrderDbAccess:
    """Book lookup and order staging over a BookStoreContext."""

    def __init__(self, context: BookStoreContext):
        self.context = context

    @property
    def user_id(self) -> UUID:
        """The customer new orders are written for."""
        return self.context.user_id

    def find_books_by_ids_with_price_offers(self, book_ids: Iterable[int]) -> dict[int, Book]:
        """Books for the given ids, keyed by id, promotions loaded.

        Soft-deleted and unknown ids are simply missing from the result.
        """
        ids = set(book_ids)
        if not ids:
            return {}
        books = self.context.books.get_many(ids, options=[selectinload(Book.promotion)])
        return {book.book_id: book for book in books}

    def add(self, new_order: Order) -> None:
        self.context.orders.add(new_order)


# ---------------------------------------------------------------------------
# Async façade
# ---------------------------------------------------------------------------

class AsyncPlaceOrderDbAccess:
    """Async counterpart of PlaceOrderDbAccess."""

    def __init__(self, context: AsyncBookStoreContext):
        self.context = context

    @property
    def user_id(self) -> UUID:
        return self.context.user_id

    async def find_books_by_ids_with_price_offers(
        self, book_ids: Iterable[int]
    ) -> dict[int, Book]:
        ids = set(book_ids)
        if not ids:
            return {}
        books = await self.context.books.get_many(
            ids, options=[selectinload(Book.promotion)]
        )
        return {book.book_id: book for book in books}

    def add(self, new_order: Order) -> None:
        self.context.orders.add(new_order)
