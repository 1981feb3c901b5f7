"""Global query filter pattern.

A QueryFilterPolicy holds predicates that must be part of every read of a
given model, such as soft delete or per-customer scoping. The unit of
work composes them into each statement it builds, so individual call sites
cannot forget them.

Each filter is applied twice:
- conjoined into the WHERE clause when the model is the root of the query
- attached with with_loader_criteria() so relationship loads started from
  the statement (joined, selectin or lazy) see the same restriction

Example::

    policy = QueryFilterPolicy()
    policy.add(Book, Book.soft_deleted.is_(False))
    policy.add(Order, Order.customer_id == user_id)

    stmt = policy.apply(select(Order), Order)
"""

from typing import Any

from sqlalchemy import ColumnElement, Select
from sqlalchemy.orm import with_loader_criteria


class QueryFilterPolicy:
    """Per-model registry of always-on query criteria."""

    def __init__(self):
        self._filters: dict[type, list[ColumnElement[bool]]] = {}

    def add(self, model: type, criterion: ColumnElement[bool]) -> "QueryFilterPolicy":
        """Register a criterion for a model. Returns self for chaining."""
        self._filters.setdefault(model, []).append(criterion)
        return self

    def criteria_for(self, model: type) -> list[ColumnElement[bool]]:
        criteria: list[ColumnElement[bool]] = []
        for filtered_model, model_criteria in self._filters.items():
            if issubclass(model, filtered_model):
                criteria.extend(model_criteria)
        return criteria

    @property
    def filtered_models(self) -> list[type]:
        return list(self._filters)

    def loader_options(self) -> list[Any]:
        """Loader options that push every filter into relationship loads."""
        return [
            with_loader_criteria(model, criterion, include_aliases=True)
            for model, criteria in self._filters.items()
            for criterion in criteria
        ]

    def apply(self, stmt: Select, model: type) -> Select:
        """Return `stmt` restricted by every filter relevant to `model`."""
        criteria = self.criteria_for(model)
        if criteria:
            stmt = stmt.where(*criteria)
        options = self.loader_options()
        if options:
            stmt = stmt.options(*options)
        return stmt

    def __repr__(self) -> str:
        names = ", ".join(m.__name__ for m in self._filters)
        return f"QueryFilterPolicy({names})"
