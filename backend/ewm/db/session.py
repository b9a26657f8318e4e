"""
Async engine and session factory for the main service database.

`get_db` is the unit of work for one HTTP request: everything a handler does
is committed together on success and rolled back together on any exception.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ewm.core.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=settings.DB_POOL_TIMEOUT,
    pool_recycle=settings.DB_POOL_RECYCLE,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def release_connection(db: AsyncSession) -> None:
    """
    Commit the work so far and hand the connection back to the pool.

    Called before slow calls to other services. Loaded objects stay usable
    (expire_on_commit=False) and the session begins a new transaction only if
    it touches the database again.
    """
    if db.in_transaction():
        await db.commit()
