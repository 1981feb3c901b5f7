"""Bookstore vertical — orders on top of the filtered unit of work.

Shows the data-layer patterns working together in one domain:
- SQLAlchemy models with a soft-delete mixin and a customer-owned order
- Sync and async contexts with soft-delete and per-customer query filters
- Pydantic schemas plus rule functions for the pre-save validation gate
- A narrow data-access façade for order placement
- Order placement and display services driven by the checkout cookie
- Dataclass configuration
"""
