"""
Async database session management using SQLAlchemy 2.0.
"""

from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from hubsync.core.config import get_settings
from hubsync.db.base import Base


@lru_cache
def get_engine() -> AsyncEngine:
    """Create the async engine once per process."""
    settings = get_settings()
    url = settings.async_database_url

    # SQLite (local dev) does not take pool sizing arguments
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.app_debug)

    return create_async_engine(
        url,
        echo=settings.app_debug,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to ``engine``."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@lru_cache
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Process-wide session factory."""
    return create_session_maker(get_engine())


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides an async database session.

    Usage:
        @app.get("/items")
        async def get_items(session: AsyncSession = Depends(get_async_session)):
            ...
    """
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_database(engine: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet."""
    # Import all models to ensure they're registered with Base
    from hubsync.models import action, domain  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
