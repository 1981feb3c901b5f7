"""SQLAlchemy database engines and session management.

Provides sync and async database layers with:
- Connection pooling (configurable pool_size/max_overflow)
- SQLite support with foreign keys enforced on every connection
- FastAPI dependency injection via get_session() / get_async_session()
- Schema creation helpers for dev/test

Sessions handed out here never commit on their own: committing is the job
of the unit-of-work context built on top of them.
"""

import os
from functools import lru_cache
from typing import AsyncGenerator, Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.models.base import Base

# ---------------------------------------------------------------------------
# Configuration from environment
# ---------------------------------------------------------------------------

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./bookapp.db")
ASYNC_DATABASE_URL = os.getenv("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///./bookapp.db")
POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
ECHO_SQL = os.getenv("DB_ECHO", "false").lower() == "true"


# ---------------------------------------------------------------------------
# Engine construction
# ---------------------------------------------------------------------------

def _set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _engine_kwargs(url: str) -> dict:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return {
            "pool_size": POOL_SIZE,
            "max_overflow": MAX_OVERFLOW,
            "pool_pre_ping": True,
        }

    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if parsed.database in (None, "", ":memory:"):
        # One shared connection, otherwise every checkout sees an empty database
        kwargs["poolclass"] = StaticPool
    return kwargs


def build_engine(url: str | None = None, echo: bool | None = None) -> Engine:
    """Create a sync engine; SQLite connections get foreign keys switched on."""
    url = url or DATABASE_URL
    engine = create_engine(
        url,
        echo=ECHO_SQL if echo is None else echo,
        **_engine_kwargs(url),
    )
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _set_sqlite_pragma)
    return engine


def build_async_engine(url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine; same SQLite treatment as build_engine()."""
    url = url or ASYNC_DATABASE_URL
    engine = create_async_engine(
        url,
        echo=ECHO_SQL if echo is None else echo,
        **_engine_kwargs(url),
    )
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _set_sqlite_pragma)
    return engine


# ---------------------------------------------------------------------------
# Engine & session factories (created on first use)
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return build_engine()


@lru_cache(maxsize=1)
def get_async_engine() -> AsyncEngine:
    return build_async_engine()


def session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    return sessionmaker(engine or get_engine(), expire_on_commit=False)


def async_session_factory(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine or get_async_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

def get_session() -> Generator[Session, None, None]:
    """Yield a session that is rolled back on error and always closed."""
    with session_factory()() as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Async variant of get_session().

    Usage in FastAPI routes::

        @router.get("/orders")
        async def list_orders(session: AsyncSession = Depends(get_async_session)):
            ...
    """
    async with async_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# ---------------------------------------------------------------------------
# Lifecycle hooks
# ---------------------------------------------------------------------------

def init_db(engine: Engine | None = None) -> None:
    """Create tables from models (dev/test only)."""
    import verticals.bookstore.models.db_models  # noqa: F401

    Base.metadata.create_all(engine or get_engine())


async def init_db_async(engine: AsyncEngine | None = None) -> None:
    """Async variant of init_db()."""
    import verticals.bookstore.models.db_models  # noqa: F401

    async with (engine or get_async_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the connection pools on shutdown."""
    if get_async_engine.cache_info().currsize:
        await get_async_engine().dispose()
    if get_engine.cache_info().currsize:
        get_engine().dispose()
