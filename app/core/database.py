"""
Database connection and session management.

The engine and session factory are built once by ``init_engine`` and handed
out through FastAPI dependencies, so tests can swap in their own engine.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from app.core.config import get_settings

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def init_engine(database_url: Optional[str] = None, **kwargs) -> AsyncEngine:
    """Create the engine and session factory (idempotent per URL)."""
    global _engine, _session_factory
    settings = get_settings()
    _engine = create_async_engine(
        database_url or settings.database_url,
        echo=settings.debug,
        future=True,
        **kwargs,
    )
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        init_engine()
    return _session_factory


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def init_db():
    """Create all tables (development only - use migrations in production)."""
    if _engine is None:
        init_engine()
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    One session per request; committed when the handler returns, rolled back
    if it raises.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context():
    """Context manager for use outside of FastAPI request lifecycle."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
