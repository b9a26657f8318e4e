"""
Async engine and session for the stats database.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ewm.core.config import get_settings
from ewm.stats.models import StatsBase

settings = get_settings()

stats_engine = create_async_engine(
    settings.STATS_DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=settings.DB_POOL_TIMEOUT,
    pool_recycle=settings.DB_POOL_RECYCLE,
    pool_pre_ping=True,
)

StatsSessionLocal = async_sessionmaker(stats_engine, class_=AsyncSession, expire_on_commit=False)


async def create_schema() -> None:
    async with stats_engine.begin() as conn:
        await conn.run_sync(StatsBase.metadata.create_all)


async def get_stats_db() -> AsyncGenerator[AsyncSession, None]:
    async with StatsSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
