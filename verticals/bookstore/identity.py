"""Where a context gets the customer id it scopes orders by.

A context asks its UserIdService exactly once, at construction. The id for
the current request lives in a ContextVar that CheckoutCookieMiddleware
binds from the checkout cookie; outside a request (tests, scripts) it holds
the placeholder.

PLACEHOLDER_USER_ID is fixed, so every context built without a real
identity shares one "customer". Fine for tests and tooling, wrong for a
deployment that forgets to install the middleware.
"""

import uuid
from contextvars import ContextVar
from typing import Protocol

PLACEHOLDER_USER_ID = uuid.UUID(int=0)

_current_user_id: ContextVar[uuid.UUID] = ContextVar(
    "current_user_id", default=PLACEHOLDER_USER_ID
)


def get_current_user_id() -> uuid.UUID:
    """Return the customer id bound for the current request."""
    return _current_user_id.get()


class UserIdService(Protocol):
    def get_user_id(self) -> uuid.UUID: ...


class ReplacementUserIdService:
    """Used when no identity source is supplied: always the placeholder."""

    def get_user_id(self) -> uuid.UUID:
        return PLACEHOLDER_USER_ID


class RequestUserIdService:
    """Customer id of the request being served."""

    def get_user_id(self) -> uuid.UUID:
        return get_current_user_id()


class FixedUserIdService:
    """A known customer id, for scripts and tests acting as one customer."""

    def __init__(self, user_id: uuid.UUID):
        self._user_id = user_id

    def get_user_id(self) -> uuid.UUID:
        return self._user_id
