"""
Test infrastructure for the Comment Threads API.

Strategy
--------
- SQLite in-memory via aiosqlite, so no Postgres is needed in CI.
- StaticPool makes every session share the one in-memory connection;
  a second connection would see an empty database.
- The app's get_db dependency is overridden with the test session factory.
- Tables are created before each test and dropped after.
- Every test gets its own in-memory ResultCache and EventSink, installed on
  ``app.state`` for HTTP tests and passed to ThreadService for service
  tests, so cache contents and listeners never leak between tests.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from comment_threads.cache import MemoryResultCache
from comment_threads.database import Base, get_db
from comment_threads.events import COMMENT_CREATED, COMMENT_DELETED, EventSink
from comment_threads.main import app
from comment_threads.middleware import install_query_counter
from comment_threads.services.thread_service import ThreadService

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Dependency override: replace production get_db with the test session factory
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_test() as session:
        yield session


@pytest.fixture
def session_factory() -> async_sessionmaker:
    """Factory for extra sessions, e.g. to act as a second concurrent request."""
    return async_session_test


@pytest.fixture
def cache() -> MemoryResultCache:
    return MemoryResultCache(max_entries=1000, default_ttl=60)


@pytest.fixture
def events() -> EventSink:
    return EventSink()


@pytest.fixture
def recorded(events: EventSink) -> list:
    """Every (event_name, payload) emitted on the ``events`` sink, in order."""
    seen: list = []
    events.subscribe(COMMENT_CREATED, lambda payload: seen.append((COMMENT_CREATED, payload)))
    events.subscribe(COMMENT_DELETED, lambda payload: seen.append((COMMENT_DELETED, payload)))
    return seen


@pytest.fixture
def service(db_session: AsyncSession, cache: MemoryResultCache, events: EventSink) -> ThreadService:
    return ThreadService(db_session, cache, events, ttl=60)


@pytest_asyncio.fixture
async def async_client(cache: MemoryResultCache, events: EventSink) -> AsyncClient:
    """httpx.AsyncClient wired to the app, with this test's cache and sink installed."""
    app.state.cache = cache
    app.state.events = events
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
