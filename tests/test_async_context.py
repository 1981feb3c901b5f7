"""Test the async bookstore context behaves like the sync one."""
import uuid
from decimal import Decimal

import pytest

from patterns.unit_of_work import ContextFaultedError, StorageError
from verticals.bookstore.models.db_models import Author, Book, LineItem, Order


def _valid_order(customer_id, book_id=1):
    return Order(
        customer_id=customer_id,
        line_items=[LineItem(book_id=book_id, line_num=1, book_price=Decimal("40"), num_books=1)],
    )


@pytest.mark.asyncio
async def test_async_soft_delete_filter(make_async_context):
    context = make_async_context()
    book = await context.books.get(2)
    book.soft_deleted = True
    await context.save_changes_async()

    context = make_async_context()
    assert await context.books.get(2) is None
    assert await context.books.count() == 3
    assert {b.book_id for b in await context.books.all()} == {1, 3, 4}
    assert await context.books.ignore_query_filters().get(2) is not None


@pytest.mark.asyncio
async def test_async_order_filter(make_async_context):
    owner = uuid.uuid4()
    context = make_async_context(owner)
    context.orders.add(_valid_order(owner))
    assert await context.save_changes_with_validation_async() == []

    assert await make_async_context(owner).orders.count() == 1
    assert await make_async_context(uuid.uuid4()).orders.count() == 0


@pytest.mark.asyncio
async def test_async_validation_failure_saves_nothing(make_async_context):
    owner = uuid.uuid4()
    context = make_async_context(owner)
    context.orders.add(_valid_order(owner))
    context.authors.add(Author(name=""))

    errors = await context.save_changes_with_validation_async()

    assert [e.member_names for e in errors] == [("name",)]
    assert context.session.autoflush
    assert len(context.pending_changes()) == 3
    assert await make_async_context(owner).orders.count() == 0


@pytest.mark.asyncio
async def test_async_validation_uses_filtered_lookup(make_async_context):
    context = make_async_context()
    (await context.books.get(1)).soft_deleted = True
    await context.save_changes_async()

    owner = uuid.uuid4()
    context = make_async_context(owner)
    context.orders.add(_valid_order(owner, book_id=1))
    errors = await context.save_changes_with_validation_async()
    assert errors[0].message == "The book with id 1 is not available."


@pytest.mark.asyncio
async def test_async_storage_fault(make_async_context):
    owner = uuid.uuid4()
    context = make_async_context(owner)
    context.orders.add(_valid_order(owner, book_id=3))
    await context.save_changes_async()

    context = make_async_context(owner)
    book = await context.books.ignore_query_filters().get(3)
    await context.books.remove(book)
    with pytest.raises(StorageError):
        await context.save_changes_with_validation_async()
    assert context.is_faulted
    assert context.session.autoflush
    with pytest.raises(ContextFaultedError):
        await context.save_changes_async()

    check = make_async_context(owner)
    assert await check.books.get(3) is not None
    assert await check.orders.count() == 1


@pytest.mark.asyncio
async def test_async_transaction_scope(make_async_context):
    owner = uuid.uuid4()
    context = make_async_context(owner)
    async with context.begin_transaction() as transaction:
        context.orders.add(_valid_order(owner))
        assert await context.save_changes_with_validation_async() == []
        await transaction.rollback()
    assert await make_async_context(owner).orders.count() == 0

    async with context.begin_transaction() as transaction:
        context.orders.add(_valid_order(owner, book_id=2))
        await context.save_changes_async()
        await transaction.commit()
    assert await make_async_context(owner).orders.count() == 1


@pytest.mark.asyncio
async def test_async_get_many_and_first(make_async_context):
    context = make_async_context()
    books = await context.books.get_many([1, 2, 3])
    assert sorted(b.book_id for b in books) == [1, 2, 3]
    first = await context.books.first(order_by=[Book.price.desc()])
    assert first.book_id == 4


@pytest.mark.asyncio
async def test_async_order_for_other_customer_rejected(make_async_context):
    owner, other = uuid.uuid4(), uuid.uuid4()
    context = make_async_context(owner)
    context.orders.add(_valid_order(other))

    errors = await context.save_changes_with_validation_async()

    assert [e.member_names for e in errors] == [("customer_id",)]
    assert await make_async_context(other).orders.count() == 0
