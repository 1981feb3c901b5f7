"""Not-found conditions raised by the order workflows.

Both are LookupErrors: an absent row under the active filters is an
ordinary application outcome, never a storage fault.
"""


class BookNotFoundError(LookupError):
    """A basket refers to a book that is unknown or no longer on sale."""

    def __init__(self, book_id: int):
        self.book_id = book_id
        super().__init__(f"An order failed because book, id = {book_id} was missing.")


class OrderNotFoundError(LookupError):
    """No order with this id is visible to the current customer."""

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Could not find the order with id of {order_id}.")
