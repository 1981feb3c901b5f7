"""SQLAlchemy models for the bookstore vertical.

Catalog side: Book (soft deletable), Author through the BookAuthor join
row, Tag through the book_tag table, and an optional PriceOffer per book.

Order side: Order owned by a customer id (a plain UUID, not a foreign key
to any auth table) with LineItems that snapshot the price and quantity at
order time. LineItem -> Book is lookup only: there is no relationship back
from Book and the foreign key restricts deletes of referenced books.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.models.base import Base, SoftDeleteMixin


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


book_tag = Table(
    "book_tag",
    Base.metadata,
    Column("book_id", ForeignKey("books.book_id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", ForeignKey("tags.tag_id", ondelete="CASCADE"), primary_key=True),
)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class Book(SoftDeleteMixin, Base):
    """A book in the catalog."""

    __tablename__ = "books"

    book_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    published_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    publisher: Mapped[str | None] = mapped_column(String(64), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(9, 2), nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    promotion: Mapped["PriceOffer | None"] = relationship(
        back_populates="book", cascade="all, delete-orphan", uselist=False
    )
    authors_link: Mapped[list["BookAuthor"]] = relationship(
        back_populates="book",
        cascade="all, delete-orphan",
        order_by="BookAuthor.order",
    )
    tags: Mapped[list["Tag"]] = relationship(secondary=book_tag)

    @property
    def actual_price(self) -> Decimal:
        """Promotional price if an offer exists, else the list price."""
        return self.promotion.new_price if self.promotion else self.price

    def __repr__(self) -> str:
        return f"<Book {self.book_id} {self.title!r}>"


class Author(Base):
    """A book author."""

    __tablename__ = "authors"

    author_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    books_link: Mapped[list["BookAuthor"]] = relationship(back_populates="author")


class BookAuthor(Base):
    """Join row between Book and Author, keyed by (book_id, author_id)."""

    __tablename__ = "book_author"

    book_id: Mapped[int] = mapped_column(ForeignKey("books.book_id"), primary_key=True)
    author_id: Mapped[int] = mapped_column(ForeignKey("authors.author_id"), primary_key=True)
    order: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)

    book: Mapped["Book"] = relationship(back_populates="authors_link")
    author: Mapped["Author"] = relationship(back_populates="books_link")


class Tag(Base):
    """A label that can be attached to books."""

    __tablename__ = "tags"

    tag_id: Mapped[str] = mapped_column(String(40), primary_key=True)


class PriceOffer(Base):
    """A promotional price for exactly one book."""

    __tablename__ = "price_offers"

    price_offer_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    new_price: Mapped[Decimal] = mapped_column(Numeric(9, 2), nullable=False)
    promotional_text: Mapped[str] = mapped_column(String(200), nullable=False)
    book_id: Mapped[int] = mapped_column(
        ForeignKey("books.book_id"), unique=True, nullable=False
    )

    book: Mapped["Book"] = relationship(back_populates="promotion")


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

class Order(Base):
    """A customer's order. Only visible to contexts for the same customer."""

    __tablename__ = "orders"

    order_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date_ordered_utc: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    line_items: Mapped[list["LineItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="LineItem.line_num",
    )

    @property
    def order_number(self) -> str:
        return f"SO{self.order_id:06d}"

    def __repr__(self) -> str:
        return f"<Order {self.order_id} customer={self.customer_id}>"


class LineItem(Base):
    """One row of an order, with price and quantity frozen at order time."""

    __tablename__ = "line_items"

    line_item_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    line_num: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    num_books: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    book_price: Mapped[Decimal] = mapped_column(Numeric(9, 2), nullable=False)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.order_id", ondelete="CASCADE"), nullable=False, index=True
    )
    book_id: Mapped[int] = mapped_column(
        ForeignKey("books.book_id", ondelete="RESTRICT"), nullable=False, index=True
    )

    order: Mapped["Order"] = relationship(back_populates="line_items")
    chosen_book: Mapped["Book"] = relationship()
