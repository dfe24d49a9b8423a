"""
Task API — Database Session Management
=======================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
Why:   Centralizes all database connection logic in one place. This module is
       the Credential Store boundary: users and tasks are only reached through
       sessions handed out here.
How:   Creates an async engine with connection pooling and a per-request
       session dependency. Mutating service calls commit their own unit of
       work before returning, so each one is atomic with respect to the store
       and a failed commit surfaces as an error response.
Who:   Used by route handlers and the authentication dependency via Depends().
When:  Engine is created at module import; sessions are created per-request.
"""

from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import DateTime
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from taskapi.config import settings


def _engine_options(database_url: str) -> Dict[str, Any]:
    """
    Build engine keyword arguments for the configured backend.

    SQLite (used by tests and quick local runs) has no server-side pool to
    size, so the pool options only apply to real database servers.
    """
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if database_url.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,  # Recycle after 1 hour to prevent stale connections
    )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: Prevents lazy-loading issues after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (shared metadata for Alembic)."""
    pass


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC timestamp column.

    PostgreSQL keeps the offset in TIMESTAMP WITH TIME ZONE, but SQLite stores
    a naive string. Loaded values are normalized to aware UTC so comparisons
    between stored and freshly computed timestamps never mix naive and aware.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler (and the auth dependency, which
           shares the same per-request instance)
        3. On error: rolls back, so an aborted request leaves no partial writes
        4. Always: closes the session (returns connection to pool)

    Services commit their own writes. This teardown may run after the
    response has been sent, so it never commits.
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_all_tables() -> None:
    """
    Create any missing tables from the ORM metadata.

    When:  Startup with DB_AUTO_CREATE=true, and the test suite.
    Production schemas are managed by Alembic instead.
    """
    # Models must be imported so they are registered on Base.metadata
    from taskapi.models import task, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
