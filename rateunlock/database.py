"""
Database plumbing: declarative base, the async engine and sessions.

The engine is built on first use from DATABASE_URL (asyncpg in production,
aiosqlite in tests). Sessions keep attributes loaded after commit, so the
pipeline can read a lead it has just committed without another round trip.
"""
import logging
from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


@lru_cache()
def get_engine() -> AsyncEngine:
    from rateunlock.config import get_settings
    settings = get_settings()

    options = {"echo": settings.app_env == "development"}
    # Pool sizing only applies to PostgreSQL
    if not settings.database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    logger.debug("Creating database engine (env=%s)", settings.app_env)
    return create_async_engine(settings.database_url, **options)


@lru_cache()
def _sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)


def async_session_factory() -> AsyncSession:
    """New session for code outside a request, e.g. the delivery worker."""
    return _sessionmaker()()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency. Commits whatever the handler left pending and rolls
    back if the handler raised.
    """
    async with _sessionmaker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
