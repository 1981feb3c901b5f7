"""Order placement: the business action and the service that drives it.

PlaceOrderAction turns a basket into an Order and stages it through the
data-access façade, collecting user-facing errors instead of raising.
PlaceOrderService reads the basket from the checkout cookie, runs the
action, then the validating save, and on success empties the basket.
"""

from dataclasses import dataclass, field
from typing import Mapping

from loguru import logger

from patterns.validation import BizActionErrors, ValidationResult
from verticals.bookstore.checkout_cookie import CheckoutCookie
from verticals.bookstore.config import config
from verticals.bookstore.context import AsyncBookStoreContext, BookStoreContext
from verticals.bookstore.errors import BookNotFoundError
from verticals.bookstore.models.db_models import Book, LineItem, Order
from verticals.bookstore.models.schemas import OrderLineItem, PlaceOrderInDto
from verticals.bookstore.repository import (
    AsyncPlaceOrderDbAccess,
    PlaceOrderDbAccess,
    PlaceOrderDbAccessProtocol,
)


# ---------------------------------------------------------------------------
# Business action
# ---------------------------------------------------------------------------

class PlaceOrderAction(BizActionErrors):
    """Build and stage an order from a basket.

    Returns None (with errors set) when the basket cannot be ordered.
    Raises BookNotFoundError if a basket line refers to a book that is not
    visible any more: the basket is out of date, not the user's mistake.
    """

    def __init__(self, db_access: PlaceOrderDbAccessProtocol | AsyncPlaceOrderDbAccess):
        super().__init__()
        self.db_access = db_access

    def run(self, dto: PlaceOrderInDto) -> Order | None:
        if not self._check_input(dto):
            return None
        books = self.db_access.find_books_by_ids_with_price_offers(
            item.book_id for item in dto.line_items
        )
        return self._form_order(dto, books)

    async def run_async(self, dto: PlaceOrderInDto) -> Order | None:
        if not self._check_input(dto):
            return None
        books = await self.db_access.find_books_by_ids_with_price_offers(
            item.book_id for item in dto.line_items
        )
        return self._form_order(dto, books)

    def _check_input(self, dto: PlaceOrderInDto) -> bool:
        if not dto.accept_t_and_cs:
            self.add_error("You must accept the T&Cs to place an order.")
            return False
        if not dto.line_items:
            self.add_error("No items in your basket.")
            return False
        return True

    def _form_order(self, dto: PlaceOrderInDto, books: dict[int, Book]) -> Order | None:
        # Owner is the identity the context is scoped to, not the basket's
        order = Order(
            customer_id=self.db_access.user_id,
            line_items=self._form_line_items(dto.line_items, books),
        )
        if self.has_errors:
            return None
        self.db_access.add(order)
        return order

    def _form_line_items(
        self, line_items: list[OrderLineItem], books: dict[int, Book]
    ) -> list[LineItem]:
        result = []
        line_num = 1
        for line_item in line_items:
            book = books.get(line_item.book_id)
            if book is None:
                raise BookNotFoundError(line_item.book_id)

            book_price = book.actual_price
            if book_price <= 0:
                self.add_error(f"Sorry, the book '{book.title}' is not for sale.")
                continue

            result.append(
                LineItem(
                    book_price=book_price,
                    chosen_book=book,
                    line_num=line_num,
                    num_books=line_item.num_books,
                )
            )
            line_num += 1
        return result


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

@dataclass
class PlaceOrderResult:
    """Outcome of placing an order.

    `cookie_value` is what the checkout cookie should be set to afterwards:
    an emptied basket on success, the unchanged basket otherwise.
    """

    cookie_value: str
    order_id: int | None = None
    errors: list[ValidationResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.order_id is not None and not self.errors

    @property
    def cookie_max_age(self) -> int:
        """Lifetime in seconds to set on the checkout cookie."""
        return config.checkout.cookie_max_age_days * 24 * 60 * 60


class PlaceOrderService:
    """Place the order held in the checkout cookie.

    Works with either context flavour: place_order() needs a
    BookStoreContext, place_order_async() an AsyncBookStoreContext.
    """

    def __init__(
        self,
        context: BookStoreContext | AsyncBookStoreContext,
        cookies: Mapping[str, str],
        cookie_name: str | None = None,
    ):
        self.context = context
        cookie_name = cookie_name or config.checkout.cookie_name
        try:
            self.checkout = CheckoutCookie.from_cookies(cookies, cookie_name)
        except ValueError:
            logger.bind(cookie=cookie_name).warning("identity.bad_cookie")
            self.checkout = CheckoutCookie(context.user_id)

    def _dto(self, accept_t_and_cs: bool) -> PlaceOrderInDto:
        return PlaceOrderInDto(
            accept_t_and_cs=accept_t_and_cs,
            user_id=self.checkout.user_id,
            line_items=self.checkout.line_items,
        )

    def place_order(self, accept_t_and_cs: bool) -> PlaceOrderResult:
        action = PlaceOrderAction(PlaceOrderDbAccess(self.context))
        order = action.run(self._dto(accept_t_and_cs))
        if action.has_errors:
            return self._failed(action.errors)

        errors = self.context.save_changes_with_validation()
        if errors:
            return self._failed(errors)
        return self._placed(order)

    async def place_order_async(self, accept_t_and_cs: bool) -> PlaceOrderResult:
        action = PlaceOrderAction(AsyncPlaceOrderDbAccess(self.context))
        order = await action.run_async(self._dto(accept_t_and_cs))
        if action.has_errors:
            return self._failed(action.errors)

        errors = await self.context.save_changes_with_validation_async()
        if errors:
            return self._failed(errors)
        return self._placed(order)

    def _failed(self, errors: list[ValidationResult]) -> PlaceOrderResult:
        logger.bind(
            customer_id=str(self.checkout.user_id), error_count=len(errors)
        ).info("orders.rejected")
        return PlaceOrderResult(cookie_value=self.checkout.encode(), errors=errors)

    def _placed(self, order: Order) -> PlaceOrderResult:
        self.checkout.clear_all_line_items()
        logger.bind(
            customer_id=str(order.customer_id),
            order_id=order.order_id,
            line_items=len(order.line_items),
        ).info("orders.placed")
        return PlaceOrderResult(cookie_value=self.checkout.encode(), order_id=order.order_id)
