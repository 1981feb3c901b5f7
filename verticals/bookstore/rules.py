"""Bookstore validation rules.

Field rules are pydantic schemas read off the ORM objects; cross-field and
cross-entity rules are plain functions registered on `bookstore_validators`,
the registry the bookstore contexts validate with.
"""

from decimal import Decimal
from typing import Iterator, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from patterns.validation import ValidationContext, ValidationResult, ValidatorRegistry
from verticals.bookstore.config import config
from verticals.bookstore.models.db_models import (
    Author,
    Book,
    LineItem,
    Order,
    PriceOffer,
    Tag,
)

bookstore_validators = ValidatorRegistry()


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------

class BookRules(BaseModel):
    title: str = Field(..., min_length=1, max_length=256)
    publisher: Optional[str] = Field(None, max_length=64)
    image_url: Optional[str] = Field(None, max_length=512)
    price: Decimal


class AuthorRules(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class TagRules(BaseModel):
    tag_id: str = Field(..., min_length=1, max_length=40)


class PriceOfferRules(BaseModel):
    new_price: Decimal
    promotional_text: str = Field(..., min_length=1, max_length=200)


class OrderRules(BaseModel):
    customer_id: UUID


class LineItemRules(BaseModel):
    line_num: int = Field(..., ge=0)
    num_books: int = Field(..., ge=1)
    book_price: Decimal


bookstore_validators.register_schema(Book, BookRules)
bookstore_validators.register_schema(Author, AuthorRules)
bookstore_validators.register_schema(Tag, TagRules)
bookstore_validators.register_schema(PriceOffer, PriceOfferRules)
bookstore_validators.register_schema(Order, OrderRules)
bookstore_validators.register_schema(LineItem, LineItemRules)


# ---------------------------------------------------------------------------
# Entity rules
# ---------------------------------------------------------------------------

@bookstore_validators.rule(Order)
def order_has_line_items(order: Order, ctx: ValidationContext) -> Iterator[ValidationResult]:
    if not order.line_items:
        yield ValidationResult("An order must contain at least one line item.", ("line_items",))


@bookstore_validators.rule(Order)
def order_belongs_to_customer(order: Order, ctx: ValidationContext) -> Iterator[ValidationResult]:
    """Orders can only be written for the customer the context is scoped to."""
    if ctx.user_id is not None and order.customer_id != ctx.user_id:
        yield ValidationResult(
            "An order can only be placed for the current customer.", ("customer_id",)
        )


@bookstore_validators.rule(LineItem)
def line_item_quantity_limit(item: LineItem, ctx: ValidationContext) -> Iterator[ValidationResult]:
    if item.num_books > config.orders.max_books_per_line:
        yield ValidationResult(config.orders.too_many_books_message, ("num_books",))


@bookstore_validators.rule(LineItem)
def line_item_book_is_for_sale(item: LineItem, ctx: ValidationContext) -> Iterator[ValidationResult]:
    """The chosen book must be visible (exists, not soft deleted) and priced."""
    book = item.chosen_book
    book_id = book.book_id if book is not None else item.book_id
    if book is None or not ctx.is_pending(book):
        book = ctx.set(Book).get(book_id) if book_id is not None else None
    if book is None:
        yield ValidationResult(
            f"The book with id {book_id} is not available.", ("book_id",)
        )
        return
    if book.price < 0:
        yield ValidationResult(f"Sorry, the book '{book.title}' is not for sale.")
