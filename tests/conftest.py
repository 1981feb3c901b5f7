"""Shared fixtures: a fresh SQLite database per test, seeded with four books."""
import uuid
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.orm import sessionmaker
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.database import build_async_engine, build_engine, init_db, init_db_async
from verticals.bookstore.context import AsyncBookStoreContext, BookStoreContext
from verticals.bookstore.identity import FixedUserIdService
from verticals.bookstore.models.db_models import (
    Author,
    Book,
    BookAuthor,
    LineItem,
    Order,
    PriceOffer,
    Tag,
)


def four_books() -> list[Book]:
    """Books 1-4; the last one has a price offer."""
    fowler = Author(name="Martin Fowler")
    evans = Author(name="Eric Evans")
    future = Author(name="Future Person")
    architecture = Tag(tag_id="Architecture")
    editors = Tag(tag_id="Editor's Choice")

    refactoring = Book(
        title="Refactoring",
        description="Improving the design of existing code",
        published_on=date(1999, 7, 8),
        price=Decimal("40"),
        tags=[editors],
    )
    refactoring.authors_link = [BookAuthor(author=fowler, order=0)]

    patterns = Book(
        title="Patterns of Enterprise Application Architecture",
        description="Written in direct response to the stiff challenges",
        published_on=date(2002, 11, 15),
        price=Decimal("53"),
        tags=[architecture],
    )
    patterns.authors_link = [BookAuthor(author=fowler, order=0)]

    ddd = Book(
        title="Domain-Driven Design",
        description="Linking business needs to software design",
        published_on=date(2003, 8, 30),
        price=Decimal("56"),
        tags=[architecture, editors],
    )
    ddd.authors_link = [BookAuthor(author=evans, order=0)]

    quantum = Book(
        title="Quantum Networking",
        description="Entangled quantum networking provides faster-than-light data communications",
        published_on=date(2057, 1, 1),
        publisher="Future Publishing",
        price=Decimal("220"),
    )
    quantum.authors_link = [BookAuthor(author=future, order=0)]
    quantum.promotion = PriceOffer(
        new_price=Decimal("219"),
        promotional_text="Save $1 if you order 40 years ahead!",
    )
    return [refactoring, patterns, ddd, quantum]


def make_order(customer_id: uuid.UUID, book_id: int = 1, price=123, num_books=456) -> Order:
    return Order(
        customer_id=customer_id,
        line_items=[
            LineItem(book_id=book_id, line_num=0, book_price=Decimal(price), num_books=num_books)
        ],
    )


@pytest.fixture
def order_for():
    """Factory for a one-line order owned by the given customer."""
    return make_order


# ---------------------------------------------------------------------------
# Sync database
# ---------------------------------------------------------------------------

@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'books.db'}", echo=False)
    init_db(engine)
    factory = sessionmaker(engine, expire_on_commit=False)
    with factory() as session:
        session.add_all(four_books())
        session.commit()
    yield factory
    engine.dispose()


@pytest.fixture
def make_context(session_factory):
    """Build a BookStoreContext; user_id=None means no identity source."""
    contexts = []

    def _make(user_id: uuid.UUID | None = None) -> BookStoreContext:
        service = FixedUserIdService(user_id) if user_id is not None else None
        context = BookStoreContext(session_factory(), service)
        contexts.append(context)
        return context

    yield _make
    for context in contexts:
        context.close()


# ---------------------------------------------------------------------------
# Async database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def async_session_factory(tmp_path):
    engine = build_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'books_async.db'}", echo=False)
    await init_db_async(engine)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        session.add_all(four_books())
        await session.commit()
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def make_async_context(async_session_factory):
    contexts = []

    def _make(user_id: uuid.UUID | None = None) -> AsyncBookStoreContext:
        service = FixedUserIdService(user_id) if user_id is not None else None
        context = AsyncBookStoreContext(async_session_factory(), service)
        contexts.append(context)
        return context

    yield _make
    for context in contexts:
        await context.close()
