"""
muntanyers Backend: Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   One engine per process; one AsyncSession per request. The session
       dependency commits once on success and rolls back on any error, so
       every multi-statement action of a request (like + counter +
       notification, follow + notification, account deletion cascade) is a
       single atomic unit.

Supported backends:
    SQLite (aiosqlite):     embedded file database, foreign keys switched on
                            per connection, no pool sizing.
    PostgreSQL (asyncpg):   pooled connections sized from settings.
"""

from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from muntanyers.config import settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ships with foreign key enforcement off; turn it on per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, **overrides: Any) -> AsyncEngine:
    """
    Create an async engine configured for the given backend.

    Pool sizing is only passed to networked databases. Extra keyword
    arguments (e.g. ``poolclass`` in tests) override the defaults.
    """
    kwargs: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    is_sqlite = database_url.startswith("sqlite")
    if not is_sqlite:
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    kwargs.update(overrides)

    new_engine = create_async_engine(database_url, **kwargs)
    if is_sqlite:
        event.listen(new_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return new_engine


# ── Engine & Session Factory ──────────────────────────────────────────────
engine = build_engine(settings.database_url)

# expire_on_commit=False: response models are built from ORM objects after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic and create_all."""
    pass


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp used for every created_at column."""
    return datetime.now(timezone.utc)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    1. Creates a new session from the factory
    2. Yields it to the route handler
    3. On success: commits the request's whole unit of work
    4. On error: rolls back everything the request wrote
    5. Always: closes the session

    Example usage in a route:
        @router.get("/api/feed")
        async def feed(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def insert_ignoring_conflicts(db: AsyncSession, model, index_elements):
    """
    Build an INSERT that silently skips rows violating a unique constraint.

    Returns None for dialects without ON CONFLICT support; callers then fall
    back to check-then-insert.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        return sqlite_insert(model.__table__).on_conflict_do_nothing(index_elements=index_elements)
    if dialect == "postgresql":
        return pg_insert(model.__table__).on_conflict_do_nothing(index_elements=index_elements)
    return None


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_schema(target: AsyncEngine = engine) -> None:
    """Create every table known to Base.metadata that does not exist yet."""
    # Importing the models registers them with Base.metadata
    from muntanyers import models  # noqa: F401

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Gracefully closes all connections in the pool (application shutdown)."""
    await engine.dispose()
