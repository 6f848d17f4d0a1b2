"""
Test infrastructure for the reddit clone API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- A fresh engine is built for every test and the app's get_db dependency is
  pointed at it, so each test starts from empty tables.
- The process-wide in-memory repositories are rebuilt before each test so
  their asyncio locks belong to the test's event loop.
- bcrypt runs at its minimum cost; hashing strength is not under test.
"""
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.database import Base, get_db
from app.dependencies import memory
from app.main import app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

settings.BCRYPT_ROUNDS = 4


class FakeClock:
    """Settable clock for session expiry tests."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def session_factory():
    """Create all tables before each test, drop after to guarantee isolation."""
    engine_test = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine_test, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    memory.reset()
    backends = (settings.STORAGE_BACKEND, settings.SESSION_BACKEND)

    yield factory

    settings.STORAGE_BACKEND, settings.SESSION_BACKEND = backends
    app.dependency_overrides.pop(get_db, None)
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine_test.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncSession:
    """
    Yield a live AsyncSession for tests that drive the SQL repositories
    directly.
    """
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def memory_client(async_client: AsyncClient) -> AsyncClient:
    """Same client with posts, users and sessions on the in-memory backends."""
    settings.STORAGE_BACKEND = "memory"
    settings.SESSION_BACKEND = "memory"
    yield async_client
