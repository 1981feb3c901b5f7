"""Pydantic schemas for the order workflows' inputs and outputs."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class OrderLineItem(BaseModel):
    """One basket entry: which book and how many."""

    model_config = ConfigDict(frozen=True)

    book_id: int
    num_books: int = Field(..., ge=1)


class PlaceOrderInDto(BaseModel):
    accept_t_and_cs: bool
    user_id: UUID
    line_items: list[OrderLineItem] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class CheckoutItemDto(BaseModel):
    book_id: int
    title: Optional[str] = None
    authors_name: str = ""
    book_price: Decimal
    image_url: Optional[str] = None
    num_books: int


class OrderListDto(BaseModel):
    order_id: int
    date_ordered_utc: datetime
    order_number: str
    line_items: list[CheckoutItemDto] = Field(default_factory=list)
