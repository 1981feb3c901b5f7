"""Bookstore persistence contexts.

BookStoreContext (sync) and AsyncBookStoreContext (async) are the only way
application code reaches the bookstore tables. Both register two always-on
filters:

- Book: soft-deleted rows are hidden
- Order: only rows whose customer_id is this context's user id

The user id comes from the optional UserIdService, asked once here and
never again; without one the fixed placeholder id is used.
"""

import uuid

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from core.database import get_async_session, get_session
from patterns.entity_set import AsyncEntitySet, EntitySet
from patterns.query_filters import QueryFilterPolicy
from patterns.unit_of_work import AsyncDbContext, DbContext
from patterns.validation import ValidatorRegistry
from verticals.bookstore.identity import (
    ReplacementUserIdService,
    RequestUserIdService,
    UserIdService,
)
from verticals.bookstore.models.db_models import Author, Book, Order, PriceOffer, Tag
from verticals.bookstore.rules import bookstore_validators


def _resolve_user_id(user_id_service: UserIdService | None) -> uuid.UUID:
    service = user_id_service or ReplacementUserIdService()
    return service.get_user_id()


class _BookStoreFilters:
    """Query filters shared by the sync and async bookstore contexts."""

    _user_id: uuid.UUID

    @property
    def user_id(self) -> uuid.UUID:
        return self._user_id

    def configure_query_filters(self, filters: QueryFilterPolicy) -> None:
        filters.add(Book, Book.soft_deleted.is_(False))
        filters.add(Order, Order.customer_id == self._user_id)


# ---------------------------------------------------------------------------
# Sync context
# ---------------------------------------------------------------------------

class BookStoreContext(_BookStoreFilters, DbContext):
    """Sync bookstore unit of work."""

    validators = bookstore_validators

    def __init__(
        self,
        session: Session,
        user_id_service: UserIdService | None = None,
        validators: ValidatorRegistry | None = None,
    ):
        self._user_id = _resolve_user_id(user_id_service)
        super().__init__(session, validators)

    @property
    def books(self) -> EntitySet[Book]:
        return self.set(Book)

    @property
    def authors(self) -> EntitySet[Author]:
        return self.set(Author)

    @property
    def price_offers(self) -> EntitySet[PriceOffer]:
        return self.set(PriceOffer)

    @property
    def tags(self) -> EntitySet[Tag]:
        return self.set(Tag)

    @property
    def orders(self) -> EntitySet[Order]:
        return self.set(Order)


# ---------------------------------------------------------------------------
# Async context
# ---------------------------------------------------------------------------

class AsyncBookStoreContext(_BookStoreFilters, AsyncDbContext):
    """Async bookstore unit of work."""

    validators = bookstore_validators

    def __init__(
        self,
        session: AsyncSession,
        user_id_service: UserIdService | None = None,
        validators: ValidatorRegistry | None = None,
    ):
        self._user_id = _resolve_user_id(user_id_service)
        super().__init__(session, validators)

    @property
    def books(self) -> AsyncEntitySet[Book]:
        return self.set(Book)

    @property
    def authors(self) -> AsyncEntitySet[Author]:
        return self.set(Author)

    @property
    def price_offers(self) -> AsyncEntitySet[PriceOffer]:
        return self.set(PriceOffer)

    @property
    def tags(self) -> AsyncEntitySet[Tag]:
        return self.set(Tag)

    @property
    def orders(self) -> AsyncEntitySet[Order]:
        return self.set(Order)


# ---------------------------------------------------------------------------
# FastAPI dependency factories
# ---------------------------------------------------------------------------

def get_bookstore_context(
    session: Session = Depends(get_session),
) -> BookStoreContext:
    """FastAPI dependency: one context per request, scoped to its customer."""
    return BookStoreContext(session, RequestUserIdService())


def get_async_bookstore_context(
    session: AsyncSession = Depends(get_async_session),
) -> AsyncBookStoreContext:
    """FastAPI dependency for AsyncBookStoreContext."""
    return AsyncBookStoreContext(session, RequestUserIdService())
