"""
Pytest fixtures for test database, clients, and seed data.

Each test gets its own in-memory SQLite database (aiosqlite + StaticPool so
every session shares the one connection). The HTTP client shares a single
session with the test body; the get_db override commits and rolls back
exactly like the real dependency.

Seed fixtures return ids, not ORM objects: a rolled-back request expires
every instance in the shared session.
"""

from datetime import datetime, timedelta
from typing import AsyncGenerator, Optional

import httpx
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event as sa_event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ewm.db.base import Base
from ewm.db.session import get_db
from ewm.main import app
from ewm.models.category import Category
from ewm.models.event import Event, EventState
from ewm.models.user import User
from ewm.services.stats_service import StatsService, get_stats_service
from ewm.stats.schemas import ViewStatsDto

TEST_DATABASE_URL = "sqlite+aiosqlite://"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def make_engine() -> AsyncEngine:
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @sa_event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def future(**delta) -> str:
    """A wire-format timestamp relative to now."""
    return (datetime.now() + timedelta(**delta)).strftime(DATE_FORMAT)


class FakeStatsClient:
    """
    Stands in for the HTTP stats client. `views` maps uri -> unique hits;
    `foreign` holds rows recorded by other apps. When `session` is set, each
    stats call notes whether that session still held an open transaction.
    """

    def __init__(self):
        self.hits = []
        self.views: dict[str, int] = {}
        self.foreign: list[ViewStatsDto] = []
        self.stats_calls = []
        self.fail = False
        self.session: Optional[AsyncSession] = None
        self.in_transaction: list[bool] = []

    async def hit(self, hit):
        if self.fail:
            raise httpx.ConnectError("stats server unreachable")
        self.hits.append(hit)

    async def get_stats(self, start, end, uris=None, unique=None):
        self.stats_calls.append({"start": start, "end": end, "uris": list(uris or []), "unique": unique})
        if self.session is not None:
            self.in_transaction.append(self.session.in_transaction())
        if self.fail:
            raise httpx.ConnectError("stats server unreachable")
        return [
            ViewStatsDto(app="ewm-main-service", uri=uri, hits=self.views[uri])
            for uri in (uris or [])
            if uri in self.views
        ] + [row for row in self.foreign if row.uri in (uris or [])]


@pytest_asyncio.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def stats_client() -> FakeStatsClient:
    return FakeStatsClient()


@pytest_asyncio.fixture
async def stats(stats_client: FakeStatsClient) -> StatsService:
    return StatsService(stats_client, app_name="ewm-main-service")


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, stats: StatsService) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB and stats dependencies."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stats_service] = lambda: stats

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession):
    counter = {"n": 0}

    async def _make(name: Optional[str] = None) -> int:
        counter["n"] += 1
        n = counter["n"]
        user = User(name=name or f"user {n}", email=f"user{n}@example.com")
        db_session.add(user)
        await db_session.commit()
        return user.id

    return _make


@pytest_asyncio.fixture
async def category_id(db_session: AsyncSession) -> int:
    category = Category(name="Concerts")
    db_session.add(category)
    await db_session.commit()
    return category.id


@pytest_asyncio.fixture
async def initiator_id(make_user) -> int:
    return await make_user("initiator")


@pytest_asyncio.fixture
async def make_event(db_session: AsyncSession, initiator_id: int, category_id: int):
    """Insert an event directly, PUBLISHED by default."""

    async def _make(
        participant_limit: int = 0,
        request_moderation: bool = True,
        state: EventState = EventState.PUBLISHED,
        confirmed_requests: int = 0,
        event_date: Optional[datetime] = None,
        **fields,
    ) -> int:
        event = Event(
            title=fields.pop("title", "Test Concert"),
            annotation=fields.pop("annotation", "An evening of live music in the park"),
            description=fields.pop("description", "Bring a blanket, the show starts at sunset"),
            category_id=category_id,
            initiator_id=initiator_id,
            event_date=event_date or datetime.now() + timedelta(days=7),
            created_on=datetime.now(),
            published_on=datetime.now() if state == EventState.PUBLISHED else None,
            lat=55.75,
            lon=37.62,
            participant_limit=participant_limit,
            request_moderation=request_moderation,
            confirmed_requests=confirmed_requests,
            state=state,
            **fields,
        )
        db_session.add(event)
        await db_session.commit()
        event_id = event.id
        # Later queries load it fresh, with its relationships
        db_session.expunge(event)
        return event_id

    return _make
