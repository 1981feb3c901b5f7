"""Order display: list and detail views of the current customer's orders.

No customer id appears in these queries: the context's order filter
already restricts them, so an order id owned by someone else looks exactly
like one that does not exist.
"""

from sqlalchemy import Select
from sqlalchemy.orm import selectinload

from verticals.bookstore.context import AsyncBookStoreContext, BookStoreContext
from verticals.bookstore.errors import OrderNotFoundError
from verticals.bookstore.models.db_models import Book, BookAuthor, LineItem, Order
from verticals.bookstore.models.schemas import CheckoutItemDto, OrderListDto

_ORDER_LOAD_OPTIONS = (
    selectinload(Order.line_items)
    .selectinload(LineItem.chosen_book)
    .selectinload(Book.authors_link)
    .selectinload(BookAuthor.author),
)


def _line_item_dto(item: LineItem) -> CheckoutItemDto:
    book = item.chosen_book
    return CheckoutItemDto(
        book_id=item.book_id,
        title=book.title if book else None,
        authors_name=", ".join(link.author.name for link in book.authors_link) if book else "",
        book_price=item.book_price,
        image_url=book.image_url if book else None,
        num_books=item.num_books,
    )


def to_order_list_dto(order: Order) -> OrderListDto:
    return OrderListDto(
        order_id=order.order_id,
        date_ordered_utc=order.date_ordered_utc,
        order_number=order.order_number,
        line_items=[_line_item_dto(item) for item in order.line_items],
    )


class _OrderQueries:
    context: BookStoreContext | AsyncBookStoreContext

    def _users_orders_stmt(self) -> Select:
        return (
            self.context.orders.select()
            .options(*_ORDER_LOAD_OPTIONS)
            .order_by(Order.date_ordered_utc.desc(), Order.order_id.desc())
        )

    def _order_detail_stmt(self, order_id: int) -> Select:
        return self.context.orders.select(Order.order_id == order_id).options(
            *_ORDER_LOAD_OPTIONS
        )


class DisplayOrdersService(_OrderQueries):
    """Sync order display over a BookStoreContext."""

    def __init__(self, context: BookStoreContext):
        self.context = context

    def get_users_orders(self) -> list[OrderListDto]:
        orders = self.context.session.scalars(self._users_orders_stmt()).all()
        return [to_order_list_dto(order) for order in orders]

    def get_order_detail(self, order_id: int) -> OrderListDto:
        """One order of the current customer; OrderNotFoundError otherwise."""
        order = self.context.session.scalars(self._order_detail_stmt(order_id)).first()
        if order is None:
            raise OrderNotFoundError(order_id)
        return to_order_list_dto(order)


class AsyncDisplayOrdersService(_OrderQueries):
    """Async order display over an AsyncBookStoreContext."""

    def __init__(self, context: AsyncBookStoreContext):
        self.context = context

    async def get_users_orders(self) -> list[OrderListDto]:
        result = await self.context.session.scalars(self._users_orders_stmt())
        return [to_order_list_dto(order) for order in result.all()]

    async def get_order_detail(self, order_id: int) -> OrderListDto:
        result = await self.context.session.scalars(self._order_detail_stmt(order_id))
        order = result.first()
        if order is None:
            raise OrderNotFoundError(order_id)
        return to_order_list_dto(order)
