"""
ReciHub Backend — Database Engine and Session Management
=========================================================

What:  Async SQLAlchemy engine factory, session factory, declarative base,
       and schema helpers.
How:   `create_engine()` builds an AsyncEngine from settings (pool sizing for
       server databases, foreign-key enforcement for SQLite);
       `create_session_factory()` wraps it in an `async_sessionmaker` that the
       repository receives in its constructor.
Who:   Used by `recihub.main.lifespan`, Alembic and the test fixtures.

Connection Pooling Strategy:
    pool_size / max_overflow / pool_pre_ping come from settings and are only
    applied to server databases (PostgreSQL via asyncpg). SQLite connections
    are pooled by the aiosqlite dialect defaults.

SQLite and ON DELETE CASCADE:
    SQLite ignores foreign keys unless `PRAGMA foreign_keys=ON` is issued on
    every new connection. Recipe deletion relies on the cascade, so the pragma
    is installed as a connect-event listener.
"""

import logging
from typing import Any, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from recihub.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for autogenerate
    and `create_tables()` uses for development schemas.
    """
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(database_url: Optional[str] = None, **overrides: Any) -> AsyncEngine:
    """
    Build an AsyncEngine for the given URL (defaults to settings.database_url).

    Args:
        database_url: Async SQLAlchemy URL; falls back to configuration.
        **overrides:  Extra keyword arguments for create_async_engine
                      (tests pass poolclass=StaticPool for :memory: stores).
    """
    url = database_url or settings.database_url
    kwargs: dict[str, Any] = {"echo": settings.log_level == "DEBUG"}

    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    kwargs.update(overrides)

    engine = create_async_engine(url, **kwargs)

    if url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    logger.info("Database engine created for %s", engine.url.render_as_string(hide_password=True))
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory handed to repositories.

    expire_on_commit=False keeps returned rows readable after the
    transaction that loaded them has committed.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create all mapped tables that do not exist yet."""
    # Registers the recipe tables on Base.metadata
    from recihub.models import recipe  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def dispose_engine(engine: AsyncEngine) -> None:
    """Close every pooled connection; called on shutdown."""
    await engine.dispose()
