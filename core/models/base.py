"""Base model and mixins for all SQLAlchemy models.

Provides:
- Base: Declarative base class for all models
- SoftDeleteMixin: Adds the soft_deleted flag hidden by the query filters

Models that can be logically removed include SoftDeleteMixin. The flag is
never cleared or set by the data layer itself; catalog code owns it.
"""

from sqlalchemy import Boolean, false
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all Book App models."""
    pass


class SoftDeleteMixin:
    """Mixin providing a soft-delete flag.

    Adds:
    - soft_deleted: Boolean, defaults to False on insert
    """

    soft_deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
