"""
Placemarks Backend: Database Engine Management
================================================

What:  Async SQLAlchemy engine and session factory construction.
How:   `build_engine()` creates an engine with connection pooling from a
       Settings object; `build_session_factory()` wraps it for ORM writes.
       `create_app()` calls both once and hands the results to the
       monitoring services, so no module-level engine exists.
When:  Engine is created when the app is built; connections are opened
       lazily by the first query.

Connection Pooling:
    The monitoring routes are admin traffic, so the defaults are small
    (pool_size=5, max_overflow=5). pool_pre_ping catches connections that
    went stale after a database restart.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from placemarks.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Registers models with a shared metadata object, which Alembic reads for
    --autogenerate.
    """
    pass


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured DATABASE_URL."""
    return create_async_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
        echo=settings.log_level == "DEBUG",
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory bound to `engine`.

    expire_on_commit=False keeps attributes readable after commit, outside
    the session context.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def dispose_engine(engine: AsyncEngine) -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
