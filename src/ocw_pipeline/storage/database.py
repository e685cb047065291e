"""Async engine and session factory construction."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ocw_pipeline.config import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    """Create an async engine for the configured PostgreSQL database."""
    return create_async_engine(
        settings.database_url,
        pool_size=2,
        max_overflow=0,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with ``expire_on_commit=False`` so rows stay usable."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
