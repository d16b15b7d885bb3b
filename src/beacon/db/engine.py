"""Async SQLAlchemy engine and session factory.

SQLAlchemy 2.0 async mode: create_async_engine for connection pooling,
async_sessionmaker for short-lived sessions. The engine is built by the
notification store when the app starts, not at import time, so tests can
point each run at its own database file.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given URL."""
    kwargs: dict = {"echo": echo}
    if not database_url.startswith("sqlite"):
        # Connection pool: min 5, max 20 connections.
        kwargs["pool_size"] = 5
        kwargs["max_overflow"] = 15
    return create_async_engine(database_url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory — every store operation gets its own session."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
