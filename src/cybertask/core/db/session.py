"""Database session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.cybertask.core.db.engine import get_engine


def get_session_factory(engine: AsyncEngine | None = None) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to the given (or default) engine."""
    return async_sessionmaker(
        bind=engine or get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def get_session(engine: AsyncEngine | None = None) -> AsyncGenerator[AsyncSession]:
    """Create a database session.

    Args:
        engine: Optional engine override for testing.

    Yields:
        AsyncSession. Callers own commit/rollback.
    """
    session_factory = get_session_factory(engine)
    async with session_factory() as session:
        yield session
