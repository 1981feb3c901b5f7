"""Customer identity middleware using ContextVar.

Extracts the anonymous customer id from the checkout cookie and binds it
for the duration of the request. Contexts built during the request with a
RequestUserIdService pick it up as the id their order filter scopes by.
"""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from verticals.bookstore.checkout_cookie import CheckoutCookie
from verticals.bookstore.config import config
from verticals.bookstore.identity import PLACEHOLDER_USER_ID, _current_user_id


class CheckoutCookieMiddleware(BaseHTTPMiddleware):
    """Bind the checkout cookie's user id for the current request.

    No cookie, or a cookie that does not decode, leaves the placeholder id
    in place: such a request simply sees no orders.
    """

    def __init__(self, app, cookie_name: str | None = None):
        super().__init__(app)
        self.cookie_name = cookie_name or config.checkout.cookie_name

    async def dispatch(self, request: Request, call_next) -> Response:
        user_id = PLACEHOLDER_USER_ID
        value = request.cookies.get(self.cookie_name)
        if value:
            try:
                user_id = CheckoutCookie.decode(value).user_id
            except ValueError:
                logger.bind(cookie=self.cookie_name).warning("identity.bad_cookie")

        token = _current_user_id.set(user_id)
        try:
            response = await call_next(request)
            return response
        finally:
            _current_user_id.reset(token)
