"""Test the order placement data-access façade."""
import uuid
from decimal import Decimal

import pytest

from verticals.bookstore.models.db_models import LineItem, Order
from verticals.bookstore.repository import AsyncPlaceOrderDbAccess, PlaceOrderDbAccess


def test_find_books_returns_only_existing_ids(make_context):
    access = PlaceOrderDbAccess(make_context())
    books = access.find_books_by_ids_with_price_offers({1, 2, 999})
    assert set(books) == {1, 2}
    assert books[1].title == "Refactoring"


def test_find_books_skips_soft_deleted(make_context):
    context = make_context()
    context.books.get(2).soft_deleted = True
    context.save_changes()

    access = PlaceOrderDbAccess(make_context())
    assert set(access.find_books_by_ids_with_price_offers([1, 2])) == {1}


def test_find_books_loads_price_offer(make_context):
    access = PlaceOrderDbAccess(make_context())
    books = access.find_books_by_ids_with_price_offers([3, 4])
    assert books[3].promotion is None
    assert books[4].promotion.new_price == Decimal("219")
    assert books[4].actual_price == Decimal("219")
    assert books[3].actual_price == Decimal("56")


def test_find_books_empty_request(make_context):
    assert PlaceOrderDbAccess(make_context()).find_books_by_ids_with_price_offers([]) == {}


def test_add_stages_without_saving(make_context):
    user = uuid.uuid4()
    context = make_context(user)
    order = Order(
        customer_id=user,
        line_items=[LineItem(book_id=1, line_num=1, book_price=Decimal("40"), num_books=1)],
    )
    PlaceOrderDbAccess(context).add(order)

    assert order in context.session.new
    assert make_context(user).orders.count() == 0

    assert context.save_changes_with_validation() == []
    assert make_context(user).orders.count() == 1


@pytest.mark.asyncio
async def test_async_find_books(make_async_context):
    access = AsyncPlaceOrderDbAccess(make_async_context())
    books = await access.find_books_by_ids_with_price_offers({1, 4, 999})
    assert set(books) == {1, 4}
    assert books[4].promotion.promotional_text == "Save $1 if you order 40 years ahead!"


def test_access_reports_context_customer(make_context):
    user = uuid.uuid4()
    assert PlaceOrderDbAccess(make_context(user)).user_id == user
