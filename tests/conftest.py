"""
Test infrastructure for the board API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- The app's get_db dependency is overridden so every test-time request uses
  the test session factory rather than the production one.
- All tables are created fresh before each test and dropped after.
- The Redis cache is disabled by setting cache._redis = None; the
  ListingCache treats that as a permanent miss.
- Time is injected: the app's ``components.clock`` is swapped for a
  ``FakeClock`` so cooldown and expiry scenarios need no sleeping.
"""
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from boardapi.cache import cache
from boardapi.database import Base, get_db
from boardapi.main import app
from boardapi.tokens import TokenCodec

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)

TEST_SECRET = "test-secret-key-with-at-least-32-bytes!!"
NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


class FakeClock:
    """Callable clock returning a fixed instant that tests move by hand."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


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
def codec() -> TokenCodec:
    return TokenCodec(TEST_SECRET, ttl=timedelta(hours=1))


@pytest.fixture
def clock():
    """Freeze the application clock at ``NOW`` for the duration of a test."""
    components = app.state.components
    original = components.clock
    fake = FakeClock(NOW)
    components.clock = fake
    yield fake
    components.clock = original


@pytest_asyncio.fixture
async def async_client(clock) -> AsyncClient:
    """httpx.AsyncClient wired to the app over ASGITransport, Redis disabled."""
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def login(async_client: AsyncClient):
    """
    Factory: register *username* and log in, returning the issued token.

    The client's cookie jar is cleared afterwards so each test chooses
    explicitly whether to authenticate by header or by cookie.
    """

    async def _login(username: str = "alice", password: str = "correct-horse") -> str:
        resp = await async_client.post("/api/users/signUp", json={
            "username": username,
            "password": password,
            "email": f"{username}@example.com",
        })
        assert resp.status_code == 201, resp.text
        resp = await async_client.post("/api/users/login", json={
            "username": username,
            "password": password,
        })
        assert resp.status_code == 200, resp.text
        async_client.cookies.clear()
        return resp.json()["token"]

    return _login


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
