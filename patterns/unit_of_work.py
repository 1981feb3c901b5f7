"""Unit-of-work pattern over a SQLAlchemy session.

A context owns one session for one logical unit of work (typically one
request) and wires three things around it:

- a QueryFilterPolicy, composed into every read made through set(model)
- a ValidatorRegistry, run over the pending changes by the validating save
- explicit transaction scopes and storage fault handling

Verticals subclass DbContext / AsyncDbContext, register their filters in
configure_query_filters() and expose typed entity sets::

    class ShopContext(DbContext):
        validators = shop_validators

        def configure_query_filters(self, filters):
            filters.add(Item, Item.archived.is_(False))

        @property
        def items(self) -> EntitySet[Item]:
            return self.set(Item)

Contexts hold mutable pending state and are not safe to share between
concurrent units of work.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from patterns.entity_set import AsyncEntitySet, EntitySet, ModelT
from patterns.query_filters import QueryFilterPolicy
from patterns.validation import (
    ValidationResult,
    ValidatorRegistry,
    pending_entities,
    validate_pending_changes,
)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class StorageError(RuntimeError):
    """The database rejected or failed a save. The context must be discarded."""


class ContextFaultedError(StorageError):
    """A save was attempted on a context that already hit a storage fault."""


# ---------------------------------------------------------------------------
# Transaction scopes
# ---------------------------------------------------------------------------

class TransactionScope:
    """Caller-controlled transaction on a sync context.

    While the scope is open, saves only flush; nothing is durable until
    commit(). Leaving the `with` block without committing rolls back.
    """

    def __init__(self, context: DbContext):
        self._context = context
        self._completed = False

    @property
    def is_active(self) -> bool:
        return not self._completed

    def commit(self) -> None:
        self._ensure_active()
        try:
            self._context.session.commit()
        except SQLAlchemyError as exc:
            self._context._fault(exc, "transaction.commit")
        finally:
            self._finish()

    def rollback(self) -> None:
        self._ensure_active()
        try:
            self._context.session.rollback()
        finally:
            self._finish()

    def _ensure_active(self) -> None:
        if self._completed:
            raise RuntimeError("Transaction has already been committed or rolled back")

    def _finish(self) -> None:
        self._completed = True
        self._context._transaction = None

    def __enter__(self) -> TransactionScope:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._completed:
            self.rollback()


class AsyncTransactionScope:
    """Async counterpart of TransactionScope."""

    def __init__(self, context: AsyncDbContext):
        self._context = context
        self._completed = False

    @property
    def is_active(self) -> bool:
        return not self._completed

    async def commit(self) -> None:
        self._ensure_active()
        try:
            await self._context.session.commit()
        except SQLAlchemyError as exc:
            await self._context._fault(exc, "transaction.commit")
        finally:
            self._finish()

    async def rollback(self) -> None:
        self._ensure_active()
        try:
            await self._context.session.rollback()
        finally:
            self._finish()

    def _ensure_active(self) -> None:
        if self._completed:
            raise RuntimeError("Transaction has already been committed or rolled back")

    def _finish(self) -> None:
        self._completed = True
        self._context._transaction = None

    async def __aenter__(self) -> AsyncTransactionScope:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self._completed:
            await self.rollback()


# ---------------------------------------------------------------------------
# Shared context state
# ---------------------------------------------------------------------------

class _ContextBase:
    """Filter/validator wiring and fault state shared by both contexts."""

    validators: ValidatorRegistry = ValidatorRegistry()

    def __init__(self, validators: ValidatorRegistry | None = None):
        if validators is not None:
            self.validators = validators
        self.query_filters = QueryFilterPolicy()
        self.configure_query_filters(self.query_filters)
        self._transaction: Any = None
        self._faulted = False

    def configure_query_filters(self, filters: QueryFilterPolicy) -> None:
        """Register the always-on filters for this context. Override me."""

    @property
    def user_id(self) -> Any:
        """Identity the context is scoped to; rules see it as ctx.user_id."""
        return None

    @property
    def is_faulted(self) -> bool:
        return self._faulted

    @property
    def in_transaction_scope(self) -> bool:
        return self._transaction is not None

    def _ensure_usable(self) -> None:
        if self._faulted:
            raise ContextFaultedError(
                "This context hit a storage fault earlier; create a new one"
            )

    def _begin_scope_check(self) -> None:
        self._ensure_usable()
        if self._transaction is not None:
            raise RuntimeError("A transaction is already open on this context")

    def _log_validation_failed(self, results: list[ValidationResult]) -> None:
        logger.bind(
            context=type(self).__name__,
            error_count=len(results),
            members=sorted({m for r in results for m in r.member_names}),
        ).info("uow.validation_failed")


# ---------------------------------------------------------------------------
# Sync context
# ---------------------------------------------------------------------------

class DbContext(_ContextBase):
    """Unit of work over a sync Session."""

    def __init__(self, session: Session, validators: ValidatorRegistry | None = None):
        self.session = session
        super().__init__(validators)

    def set(self, model: type[ModelT]) -> EntitySet[ModelT]:
        """Filtered accessor for `model`."""
        return EntitySet(self.session, model, self.query_filters)

    def pending_changes(self) -> list[Any]:
        return pending_entities(self.session)

    def begin_transaction(self) -> TransactionScope:
        self._begin_scope_check()
        self._transaction = TransactionScope(self)
        return self._transaction

    def save_changes(self) -> None:
        """Write all pending changes without validation."""
        self._ensure_usable()
        pending = len(self.pending_changes()) + len(self.session.deleted)
        try:
            if self._transaction is not None:
                self.session.flush()
            else:
                self.session.commit()
        except SQLAlchemyError as exc:
            self._fault(exc, "save")
        logger.bind(context=type(self).__name__, entities=pending).debug("uow.save")

    def save_changes_with_validation(self) -> list[ValidationResult]:
        """Validate pending changes; save only if every entity passed.

        Returns the validation failures (empty on success). On failure the
        pending changes stay in the session, unsaved.
        """
        self._ensure_usable()
        with self.session.no_autoflush:
            results = validate_pending_changes(
                self.session, self.query_filters, self.validators, self.user_id
            )
            if results:
                self._log_validation_failed(results)
                return results
            self.save_changes()
        return results

    def close(self) -> None:
        self.session.close()

    def _fault(self, exc: SQLAlchemyError, operation: str) -> None:
        self._faulted = True
        self.session.rollback()
        logger.bind(
            context=type(self).__name__,
            operation=operation,
            error_type=type(exc).__name__,
        ).error("uow.storage_fault")
        raise StorageError(f"{operation} failed: {exc.__class__.__name__}") from exc

    def __enter__(self) -> DbContext:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Async context
# ---------------------------------------------------------------------------

class AsyncDbContext(_ContextBase):
    """Unit of work over an AsyncSession.

    Validation runs on the underlying sync session via run_sync(), so the
    same rule functions (and their lookups) serve both contexts.
    """

    def __init__(self, session: AsyncSession, validators: ValidatorRegistry | None = None):
        self.session = session
        super().__init__(validators)

    def set(self, model: type[ModelT]) -> AsyncEntitySet[ModelT]:
        """Filtered accessor for `model`."""
        return AsyncEntitySet(self.session, model, self.query_filters)

    def pending_changes(self) -> list[Any]:
        return pending_entities(self.session.sync_session)

    def begin_transaction(self) -> AsyncTransactionScope:
        self._begin_scope_check()
        self._transaction = AsyncTransactionScope(self)
        return self._transaction

    async def save_changes_async(self) -> None:
        """Write all pending changes without validation."""
        self._ensure_usable()
        pending = len(self.pending_changes()) + len(self.session.deleted)
        try:
            if self._transaction is not None:
                await self.session.flush()
            else:
                await self.session.commit()
        except SQLAlchemyError as exc:
            await self._fault(exc, "save")
        logger.bind(context=type(self).__name__, entities=pending).debug("uow.save")

    async def save_changes_with_validation_async(self) -> list[ValidationResult]:
        """Async form of DbContext.save_changes_with_validation()."""
        self._ensure_usable()
        with self.session.sync_session.no_autoflush:
            results = await self.session.run_sync(
                validate_pending_changes, self.query_filters, self.validators, self.user_id
            )
            if results:
                self._log_validation_failed(results)
                return results
            await self.save_changes_async()
        return results

    async def close(self) -> None:
        await self.session.close()

    async def _fault(self, exc: SQLAlchemyError, operation: str) -> None:
        self._faulted = True
        await self.session.rollback()
        logger.bind(
            context=type(self).__name__,
            operation=operation,
            error_type=type(exc).__name__,
        ).error("uow.storage_fault")
        raise StorageError(f"{operation} failed: {exc.__class__.__name__}") from exc

    async def __aenter__(self) -> AsyncDbContext:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
