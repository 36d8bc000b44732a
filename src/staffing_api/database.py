"""Async engine, request sessions and the transaction helper."""

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from staffing_api.config import Settings, get_settings

logger = logging.getLogger(__name__)


def _engine_options(settings: Settings) -> dict[str, Any]:
    """Build engine keyword arguments for the configured backend."""
    if settings.is_sqlite:
        return {"echo": False}
    return {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_pre_ping": True,
        # Managed PostgreSQL proxies drop idle connections
        "pool_recycle": 3600,
        # Statements carry salaries
        "echo": False,
    }


settings = get_settings()

engine = create_async_engine(settings.async_database_url, **_engine_options(settings))

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session, committed when the handler returns normally."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run a unit of work in a single transaction.

    Commits when the block completes and rolls back on any exception,
    so either every write in the block persists or none does.
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        logger.warning("Transaction rolled back")
        raise
