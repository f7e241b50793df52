"""
Database engine, sessions and transaction helpers.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from loguru import logger
from sqlalchemy import event, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from agora.core.config import settings
from agora.core.exceptions import StorageError


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every datetime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str | None = None) -> AsyncEngine:
    """
    Create an async engine for the given URL (default from settings).

    SQLite connections get foreign key enforcement switched on, which
    the cascade rules of the schema rely on.
    """
    url = url or settings.database_url
    options: dict[str, Any] = {"echo": settings.database_echo}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )

    engine = create_async_engine(url, **options)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


engine = build_engine()
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a database session."""
    async with async_session_maker() as session:
        yield session


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run a unit of work atomically.

    Commits when the block exits cleanly and rolls back on any error.
    Store errors are logged and surfaced as a generic StorageError.
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Transaction rolled back: {e!r}")
        raise StorageError() from e
    except Exception:
        await db.rollback()
        raise


def insert_for(dialect_name: str, model: Any) -> Any:
    """Dialect-specific INSERT supporting ON CONFLICT clauses."""
    if dialect_name == "postgresql":
        return pg_insert(model)
    if dialect_name == "sqlite":
        return sqlite_insert(model)
    raise StorageError(f"Unsupported database dialect: {dialect_name}")


def session_insert(db: AsyncSession, model: Any) -> Any:
    """ON CONFLICT capable INSERT for the dialect the session is bound to."""
    return insert_for(db.get_bind().dialect.name, model)


async def seed_categories(conn: AsyncConnection, names: list[str] | None = None) -> None:
    """Insert the default categories, skipping names that already exist."""
    from agora.models.forum import Category

    names = settings.default_categories if names is None else names
    if not names:
        return

    stmt = insert_for(conn.dialect.name, Category).on_conflict_do_nothing(
        index_elements=["name"]
    )
    await conn.execute(stmt, [{"name": name, "created_at": utcnow()} for name in names])


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create all tables and seed the default categories."""
    # Models register themselves on Base.metadata at import
    from agora import models  # noqa: F401

    bind = bind or engine
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await seed_categories(conn)

    logger.info("Database initialized")


async def close_db(bind: AsyncEngine | None = None) -> None:
    """Dispose of the engine's connection pool."""
    await (bind or engine).dispose()


async def health_check(db: AsyncSession) -> bool:
    """Verify the store answers a trivial query."""
    try:
        result = await db.execute(text("SELECT 1"))
        return result.scalar_one() == 1
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e!r}")
        return False
