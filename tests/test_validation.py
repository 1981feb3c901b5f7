"""Test the validator registry and the bookstore validation rules."""
import uuid
from decimal import Decimal

from pydantic import BaseModel, Field

from patterns.validation import (
    BizActionErrors,
    ValidationContext,
    ValidationResult,
    ValidatorRegistry,
)
from verticals.bookstore.models.db_models import Author, Book, LineItem, Order


class Widget:
    def __init__(self, name, size):
        self.name = name
        self.size = size


class WidgetRules(BaseModel):
    name: str = Field(..., max_length=5)
    size: int = Field(..., ge=0)


def _ctx(entity):
    return ValidationContext(entity=entity, session=None)


def _order(user, *items):
    return Order(customer_id=user, line_items=list(items))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def test_registry_schema_failure_names_member():
    registry = ValidatorRegistry()
    registry.register_schema(Widget, WidgetRules)
    widget = Widget("far too long", 1)
    results = registry.validate(widget, _ctx(widget))
    assert len(results) == 1
    assert results[0].member_names == ("name",)


def test_registry_required_message():
    registry = ValidatorRegistry()
    registry.register_schema(Widget, WidgetRules)
    widget = Widget(None, 1)
    results = registry.validate(widget, _ctx(widget))
    assert results[0].message == "The name field is required."


def test_registry_rules_run_after_schema_passes():
    registry = ValidatorRegistry()
    registry.register_schema(Widget, WidgetRules)
    calls = []

    @registry.rule(Widget)
    def no_big_widgets(widget, ctx):
        calls.append(widget)
        if widget.size > 10:
            yield ValidationResult("Too big.", ("size",))

    bad = Widget("x", -1)
    assert registry.validate(bad, _ctx(bad))[0].member_names == ("size",)
    assert calls == []

    big = Widget("x", 11)
    assert registry.validate(big, _ctx(big)) == [ValidationResult("Too big.", ("size",))]
    assert calls == [big]


def test_registry_unknown_model_passes():
    registry = ValidatorRegistry()
    widget = Widget("anything at all", -5)
    assert not registry.has_validators(Widget)
    assert registry.validate(widget, _ctx(widget)) == []


def test_biz_action_errors_collects():
    errors = BizActionErrors()
    assert not errors.has_errors
    errors.add_error("Bad basket.", "line_items")
    assert errors.has_errors
    assert errors.errors == [ValidationResult("Bad basket.", ("line_items",))]
    assert str(errors.errors[0]) == "Bad basket."


# ---------------------------------------------------------------------------
# Bookstore rules
# ---------------------------------------------------------------------------

def _line(book_id=1, num_books=1, **kwargs):
    return LineItem(
        book_id=book_id, line_num=1, book_price=Decimal("40"), num_books=num_books, **kwargs
    )


def test_too_many_books_asks_customer_to_phone(make_context):
    user = uuid.uuid4()
    context = make_context(user)
    context.orders.add(_order(user, _line(num_books=101)))

    errors = context.save_changes_with_validation()

    assert len(errors) == 1
    assert errors[0].member_names == ("num_books",)
    assert errors[0].message == (
        "If you want to order a 100 or more books please phone us on 01234-5678-90"
    )


def test_hundred_books_is_allowed(make_context):
    user = uuid.uuid4()
    context = make_context(user)
    context.orders.add(_order(user, _line(num_books=100)))
    assert context.save_changes_with_validation() == []


def test_zero_books_rejected(make_context):
    user = uuid.uuid4()
    context = make_context(user)
    context.orders.add(_order(user, _line(num_books=0)))
    errors = context.save_changes_with_validation()
    assert [e.member_names for e in errors] == [("num_books",)]


def test_unknown_book_rejected(make_context):
    user = uuid.uuid4()
    context = make_context(user)
    context.orders.add(_order(user, _line(book_id=999)))
    errors = context.save_changes_with_validation()
    assert errors == [ValidationResult("The book with id 999 is not available.", ("book_id",))]


def test_soft_deleted_book_rejected_by_lookup(make_context):
    context = make_context()
    book = context.books.get(2)
    book.soft_deleted = True
    context.save_changes()

    user = uuid.uuid4()
    context = make_context(user)
    book = context.books.ignore_query_filters().get(2)
    context.orders.add(_order(user, _line(book_id=None, chosen_book=book)))

    errors = context.save_changes_with_validation()

    assert [e.member_names for e in errors] == [("book_id",)]
    assert make_context(user).orders.count() == 0


def test_negative_price_book_not_for_sale(make_context):
    context = make_context()
    context.books.get(3).price = Decimal("-1")
    context.save_changes()

    user = uuid.uuid4()
    context = make_context(user)
    context.orders.add(_order(user, _line(book_id=3)))

    errors = context.save_changes_with_validation()

    assert [e.message for e in errors] == ["Sorry, the book 'Domain-Driven Design' is not for sale."]


def test_book_added_in_same_unit_of_work_is_accepted(make_context):
    user = uuid.uuid4()
    context = make_context(user)
    book = Book(title="Clean Code", price=Decimal("30"))
    context.books.add(book)
    context.orders.add(_order(user, _line(book_id=None, chosen_book=book)))

    assert context.save_changes_with_validation() == []
    assert make_context(user).orders.first().line_items[0].book_id == book.book_id


def test_book_field_rules(make_context):
    context = make_context()
    context.books.add(Book(title="x" * 257, publisher="p" * 65, price=Decimal("1")))
    errors = context.save_changes_with_validation()
    assert sorted(e.member_names for e in errors) == [("publisher",), ("title",)]


def test_order_for_other_customer_rejected(make_context):
    user, other = uuid.uuid4(), uuid.uuid4()
    context = make_context(user)
    context.orders.add(_order(other, _line()))

    errors = context.save_changes_with_validation()

    assert [e.member_names for e in errors] == [("customer_id",)]
    assert make_context(user).orders.count() == 0
    assert make_context(other).orders.count() == 0


def test_context_user_id_reaches_rules(make_context):
    user = uuid.uuid4()
    seen = []
    registry = ValidatorRegistry()

    @registry.rule(Author)
    def record(author, ctx):
        seen.append(ctx.user_id)
        return []

    context = make_context(user)
    context.validators = registry
    context.authors.add(Author(name="Kent Beck"))
    assert context.save_changes_with_validation() == []
    assert seen == [user]
