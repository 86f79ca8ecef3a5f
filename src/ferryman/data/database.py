"""Database configuration and session management."""

import os
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Database URL from environment or default to SQLite
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./ferryman.db")


def get_engine(database_url: str | None = None, **kwargs: Any) -> AsyncEngine:
    """
    Create and configure async database engine.

    Args:
        database_url: Database URL to connect to. Uses DATABASE_URL env var if not provided.
        **kwargs: Additional arguments passed to create_async_engine.

    Returns:
        Configured AsyncEngine instance.
    """
    url = database_url or DATABASE_URL

    # SQLite connections are not shared between threads
    if url.startswith("sqlite"):
        kwargs.setdefault("poolclass", NullPool)

    return create_async_engine(url, echo=False, **kwargs)


def _session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


# Global engine instance
engine = get_engine()

# Session factory
AsyncSessionLocal = _session_factory(engine)


def configure_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """
    Point the global engine and session factory at another database.

    Used by tests and by the server when DATABASE_URL changes at runtime.

    Args:
        database_url: Database URL to connect to.
        **kwargs: Additional arguments passed to create_async_engine.

    Returns:
        The new engine.
    """
    global engine, AsyncSessionLocal
    engine = get_engine(database_url, **kwargs)
    AsyncSessionLocal = _session_factory(engine)
    return engine


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.

    Yields:
        AsyncSession instance that is automatically closed after use.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """Create all tables."""
    from ferryman.data.models.base import Base

    # Register the models on the metadata
    import ferryman.data.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections on shutdown."""
    await engine.dispose()
