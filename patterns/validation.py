"""Pre-save validation pattern.

Every entity about to be inserted or updated is checked before anything
reaches the database. Checks come in two layers, registered per model class
in a ValidatorRegistry:

- a pydantic schema for declarative field rules (required, lengths, ranges),
  read straight off the ORM object with from_attributes=True
- rule functions (entity, context) -> Iterable[ValidationResult] for
  cross-field and cross-entity checks; these only run once the schema passes

Failures are data, not exceptions: callers get a list of ValidationResult
and decide how to show them.

Example::

    registry = ValidatorRegistry()
    registry.register_schema(LineItem, LineItemSchema)

    @registry.rule(LineItem)
    def book_must_exist(item, ctx):
        if ctx.set(Book).get(item.book_id) is None:
            yield ValidationResult("Unknown book.", ("book_id",))
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from patterns.entity_set import EntitySet
from patterns.query_filters import QueryFilterPolicy


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ValidationResult:
    """One failed check: a message and the members it concerns."""

    message: str
    member_names: tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.message


class BizActionErrors:
    """Error collector for business actions.

    Actions add errors instead of raising so the caller can show all of
    them at once, in the same shape the validation gate returns.
    """

    def __init__(self):
        self._errors: list[ValidationResult] = []

    @property
    def errors(self) -> list[ValidationResult]:
        return list(self._errors)

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    def add_error(self, message: str, *member_names: str) -> None:
        self._errors.append(ValidationResult(message, tuple(member_names)))


# ---------------------------------------------------------------------------
# Validation context
# ---------------------------------------------------------------------------

@dataclass
class ValidationContext:
    """What a rule gets besides the entity.

    Filtered read access to storage, plus the identity the unit of work is
    scoped to (None when the context has no such notion).
    """

    entity: Any
    session: Session
    filters: QueryFilterPolicy = field(default_factory=QueryFilterPolicy)
    user_id: Any = None

    def set(self, model: type):
        """Filtered entity set for supplementary lookups."""
        return EntitySet(self.session, model, self.filters)

    def is_pending(self, obj: Any) -> bool:
        """True if `obj` is staged in this unit of work but not yet stored."""
        return obj in self.session.new


EntityRule = Callable[[Any, ValidationContext], Iterable[ValidationResult]]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def _results_from_pydantic(exc: ValidationError) -> list[ValidationResult]:
    results = []
    for error in exc.errors():
        member = ".".join(str(part) for part in error["loc"])
        if error["type"] == "missing" or (
            error["type"] == "string_type" and error.get("input") is None
        ):
            message = f"The {member} field is required."
        else:
            message = f"{member}: {error['msg']}"
        results.append(ValidationResult(message, (member,)))
    return results


class ValidatorRegistry:
    """Validation schemas and rule functions, keyed by model class."""

    def __init__(self):
        self._schemas: dict[type, type[BaseModel]] = {}
        self._rules: dict[type, list[EntityRule]] = {}

    def register_schema(self, model: type, schema: type[BaseModel]) -> None:
        self._schemas[model] = schema

    def register_rule(self, model: type, rule: EntityRule) -> None:
        self._rules.setdefault(model, []).append(rule)

    def rule(self, model: type) -> Callable[[EntityRule], EntityRule]:
        """Decorator form of register_rule()."""

        def decorator(func: EntityRule) -> EntityRule:
            self.register_rule(model, func)
            return func

        return decorator

    def has_validators(self, model: type) -> bool:
        return model in self._schemas or model in self._rules

    def validate(self, entity: Any, context: ValidationContext) -> list[ValidationResult]:
        """Run the schema, then (only if it passed) the rule functions."""
        model = type(entity)
        schema = self._schemas.get(model)
        if schema is not None:
            try:
                schema.model_validate(entity, from_attributes=True)
            except ValidationError as exc:
                return _results_from_pydantic(exc)

        results: list[ValidationResult] = []
        for rule in self._rules.get(model, []):
            results.extend(rule(entity, context))
        return results


# ---------------------------------------------------------------------------
# Dirty set + gate
# ---------------------------------------------------------------------------

def pending_entities(session: Session) -> list[Any]:
    """Added plus actually-modified instances; deleted ones are excluded.

    Computed once per save, so nothing relies on ambient change tracking.
    """
    deleted = set(map(id, session.deleted))
    added = [obj for obj in session.new if id(obj) not in deleted]
    modified = [
        obj for obj in session.dirty
        if id(obj) not in deleted and session.is_modified(obj)
    ]
    return added + modified


def validate_pending_changes(
    session: Session,
    filters: QueryFilterPolicy,
    registry: ValidatorRegistry,
    user_id: Any = None,
) -> list[ValidationResult]:
    """Validate every pending entity and return all failures combined."""
    results: list[ValidationResult] = []
    for entity in pending_entities(session):
        context = ValidationContext(
            entity=entity, session=session, filters=filters, user_id=user_id
        )
        results.extend(registry.validate(entity, context))
    return results
