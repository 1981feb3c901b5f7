"""Filtered entity sets: the read/write accessors of a unit of work.

An EntitySet wraps one model class and one session. Every statement it
builds goes through the context's QueryFilterPolicy first, so soft-deleted
or other-customer rows never come back through the normal accessor::

    books = EntitySet(session, Book, policy)
    book = books.get(3)                  # None if soft deleted
    cheap = books.all(Book.price < 10)   # filters still applied

The only way around the filters is the explicitly named
ignore_query_filters(), meant for admin and maintenance tooling.
"""

from typing import Any, Generic, Iterable, Sequence, TypeVar

from sqlalchemy import ColumnElement, Select, func, inspect, select, tuple_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from patterns.query_filters import QueryFilterPolicy

# ---------------------------------------------------------------------------
# Type variable for model classes
# ---------------------------------------------------------------------------

ModelT = TypeVar("ModelT")


# ---------------------------------------------------------------------------
# Statement building (shared by sync and async sets)
# ---------------------------------------------------------------------------

class _EntitySetBase(Generic[ModelT]):
    """Statement construction shared by the sync and async entity sets."""

    def __init__(
        self,
        session: Any,
        model: type[ModelT],
        filters: QueryFilterPolicy,
        apply_filters: bool = True,
    ):
        self.session = session
        self.model = model
        self.filters = filters
        self.apply_filters = apply_filters

    @property
    def is_filtered(self) -> bool:
        return self.apply_filters

    def select(self, *criteria: ColumnElement[bool]) -> Select:
        """SELECT for the model with the query filters composed in."""
        stmt = select(self.model)
        if self.apply_filters:
            stmt = self.filters.apply(stmt, self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        return stmt

    def _query(
        self,
        criteria: Iterable[ColumnElement[bool]],
        order_by: Sequence[Any] = (),
        options: Sequence[Any] = (),
        limit: int | None = None,
    ) -> Select:
        stmt = self.select(*criteria)
        if options:
            stmt = stmt.options(*options)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        return stmt

    def _pk_criteria(self, ident: Any) -> ColumnElement[bool]:
        pk_columns = inspect(self.model).primary_key
        if len(pk_columns) == 1:
            return pk_columns[0] == ident
        return tuple_(*pk_columns) == tuple_(*ident)

    def _pk_in(self, idents: Iterable[Any]) -> ColumnElement[bool]:
        pk_columns = inspect(self.model).primary_key
        if len(pk_columns) != 1:
            raise ValueError(f"{self.model.__name__} has a composite primary key")
        return pk_columns[0].in_(list(idents))

    def _count_stmt(self, criteria: Iterable[ColumnElement[bool]]) -> Select:
        return select(func.count()).select_from(self.select(*criteria).subquery())

    def __repr__(self) -> str:
        state = "filtered" if self.apply_filters else "unfiltered"
        return f"<{type(self).__name__} {self.model.__name__} ({state})>"


# ---------------------------------------------------------------------------
# Sync entity set
# ---------------------------------------------------------------------------

class EntitySet(_EntitySetBase[ModelT]):
    """Filtered accessor over a sync Session."""

    session: Session

    def ignore_query_filters(self) -> "EntitySet[ModelT]":
        """Same set with every query filter switched off. Admin use only."""
        return EntitySet(self.session, self.model, self.filters, apply_filters=False)

    def all(
        self,
        *criteria: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        options: Sequence[Any] = (),
        limit: int | None = None,
    ) -> list[ModelT]:
        stmt = self._query(criteria, order_by, options, limit)
        return list(self.session.scalars(stmt).unique().all())

    def first(
        self,
        *criteria: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        options: Sequence[Any] = (),
    ) -> ModelT | None:
        stmt = self._query(criteria, order_by, options, limit=1)
        return self.session.scalars(stmt).unique().first()

    def get(self, ident: Any, options: Sequence[Any] = ()) -> ModelT | None:
        """Row by primary key, or None if it does not exist or is filtered out."""
        return self.first(self._pk_criteria(ident), options=options)

    def get_many(self, idents: Iterable[Any], options: Sequence[Any] = ()) -> list[ModelT]:
        return self.all(self._pk_in(idents), options=options)

    def count(self, *criteria: ColumnElement[bool]) -> int:
        return self.session.scalar(self._count_stmt(criteria)) or 0

    def add(self, entity: ModelT) -> ModelT:
        self.session.add(entity)
        return entity

    def add_all(self, entities: Iterable[ModelT]) -> None:
        self.session.add_all(list(entities))

    def remove(self, entity: ModelT) -> None:
        self.session.delete(entity)


# ---------------------------------------------------------------------------
# Async entity set
# ---------------------------------------------------------------------------

class AsyncEntitySet(_EntitySetBase[ModelT]):
    """Filtered accessor over an AsyncSession.

    Relationships are not lazy-loadable under asyncio; pass loader options
    (selectinload etc.) for anything the caller will touch.
    """

    session: AsyncSession

    def ignore_query_filters(self) -> "AsyncEntitySet[ModelT]":
        """Same set with every query filter switched off. Admin use only."""
        return AsyncEntitySet(self.session, self.model, self.filters, apply_filters=False)

    async def all(
        self,
        *criteria: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        options: Sequence[Any] = (),
        limit: int | None = None,
    ) -> list[ModelT]:
        stmt = self._query(criteria, order_by, options, limit)
        result = await self.session.scalars(stmt)
        return list(result.unique().all())

    async def first(
        self,
        *criteria: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        options: Sequence[Any] = (),
    ) -> ModelT | None:
        stmt = self._query(criteria, order_by, options, limit=1)
        result = await self.session.scalars(stmt)
        return result.unique().first()

    async def get(self, ident: Any, options: Sequence[Any] = ()) -> ModelT | None:
        """Row by primary key, or None if it does not exist or is filtered out."""
        return await self.first(self._pk_criteria(ident), options=options)

    async def get_many(
        self, idents: Iterable[Any], options: Sequence[Any] = ()
    ) -> list[ModelT]:
        return await self.all(self._pk_in(idents), options=options)

    async def count(self, *criteria: ColumnElement[bool]) -> int:
        return (await self.session.scalar(self._count_stmt(criteria))) or 0

    def add(self, entity: ModelT) -> ModelT:
        self.session.add(entity)
        return entity

    def add_all(self, entities: Iterable[ModelT]) -> None:
        self.session.add_all(list(entities))

    async def remove(self, entity: ModelT) -> None:
        await self.session.delete(entity)
