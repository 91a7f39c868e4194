"""
UniHelp Backend — Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, declarative base and FastAPI dependency.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  create_app() builds one engine per app from its Settings and keeps it
       on `app.state`; sessions are created per-request.

Foreign Keys on SQLite:
    The delete rules of the schema (question → answers CASCADE,
    user → answers NO ACTION) are enforced by the database, not the ORM.
    SQLite ignores FOREIGN KEY clauses unless `PRAGMA foreign_keys=ON` is
    issued on every new connection, so `build_engine()` installs a connect
    hook for SQLite URLs.
"""

from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import DateTime, event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from unihelp.config import Settings


def _is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """Turns on FK enforcement for every new SQLite DBAPI connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(settings: Settings, **overrides) -> AsyncEngine:
    """
    Create the async engine for the configured database URL.

    Pool Configuration (PostgreSQL):
        pool_size / max_overflow: Persistent + burst connections
        pool_pre_ping:            Validates connections before use
        pool_recycle=3600:        Recycles connections every hour

    SQLite gets none of the pool sizing arguments (its pool classes reject
    them) but does get the foreign key hook.
    """
    kwargs = {"echo": settings.log_level == "DEBUG"}
    if _is_sqlite(settings.database_url):
        kwargs.update(overrides)
        engine = create_async_engine(settings.database_url, **kwargs)
        enable_sqlite_foreign_keys(engine)
        return engine

    kwargs.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
    )
    kwargs.update(overrides)
    return create_async_engine(settings.database_url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    # expire_on_commit=False: attributes stay readable after commit, which the
    # answer service relies on (it commits before publishing the notification)
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object so Alembic's autogenerate and
    `create_tables()` see every table.
    """
    pass


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC timestamp column.

    PostgreSQL returns aware datetimes for TIMESTAMP WITH TIME ZONE; SQLite
    returns naive ones. This normalizes both directions so API responses
    always carry an explicit UTC offset.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        if value is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


def utcnow() -> datetime:
    """Server clock in UTC; the only source of entity timestamps."""
    return datetime.now(timezone.utc)


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the app's factory (app.state)
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back the transaction and re-raises
        5. Always: closes the session (returns connection to pool)

    Tests replace this dependency via `app.dependency_overrides`.
    """
    async with request.app.state.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            # Roll back for ANY failure, including non-DB errors raised by
            # the handler after queries ran
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_tables(bind: AsyncEngine) -> None:
    """
    What:  Creates all tables that don't exist yet.
    When:  Startup, only when DB_CREATE_TABLES is set; tests call it directly.
    """
    # Models must be imported so their tables are registered on Base.metadata
    from unihelp import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine(engine: AsyncEngine) -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
