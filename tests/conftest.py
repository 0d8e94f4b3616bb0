"""
Shared test fixtures — async DB, fake analytics provider, FastAPI test client.
"""

from datetime import date

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import async_sessionmaker

import gacounter.models  # noqa: F401
from gacounter.config import Settings
from gacounter.database import Base, create_tables, get_db, make_engine
from gacounter.main import app
from gacounter.routes import get_provider, get_settings
from gacounter.schemas.report import FetchParameters, ReportChunk, ReportRow


# ── Test Database (SQLite in-memory) ────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture()
async def db_engine():
    engine = make_engine(TEST_DB_URL)
    await create_tables(engine)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(db_session_factory):
    async with db_session_factory() as session:
        yield session


# ── Fakes ───────────────────────────────────────────────

class FakeClock:
    """Callable clock the tests can move by hand."""

    def __init__(self, now: float = 1_700_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider:
    """AnalyticsProvider returning canned (path, pageviews) rows."""

    def __init__(self, rows=None, error: Exception | None = None, total_results: int | None = None):
        self.rows = list(rows or [])
        self.total_results = total_results
        self.error = error
        self.calls: list[FetchParameters] = []

    async def fetch_report(self, params: FetchParameters) -> ReportChunk:
        self.calls.append(params)
        if self.error:
            raise self.error
        return ReportChunk(
            rows=[ReportRow(pagePath=p, pageviews=v) for p, v in self.rows],
            total_results=len(self.rows) if self.total_results is None else self.total_results,
        )


class FakeOAuth:
    """Stands in for GoogleOAuthClient."""

    def __init__(self, response=None, error: Exception | None = None):
        self.response = response or {"access_token": "fresh-token", "expires_in": 3600}
        self.error = error
        self.refreshed: list[str] = []
        self.exchanged: list[str] = []
        self.revoked: list[str] = []

    def authorization_url(self, state=None):
        return "https://accounts.google.com/o/oauth2/auth?client_id=test"

    async def refresh(self, refresh_token):
        self.refreshed.append(refresh_token)
        if self.error:
            raise self.error
        return dict(self.response)

    async def exchange_code(self, code):
        self.exchanged.append(code)
        if self.error:
            raise self.error
        return dict(self.response)

    async def revoke(self, token):
        self.revoked.append(token)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        ga_profile_id="12345",
        ga_client_id="client-id",
        ga_client_secret="client-secret",
        chunk_to_fetch=2,
        start_date=date(2020, 1, 1),
        cache_length=3600,
    )


@pytest.fixture
def fake_provider():
    return FakeProvider(rows=[("/a", 5), ("/b", 7)], total_results=10)


# ── FastAPI client ──────────────────────────────────────

@pytest_asyncio.fixture()
async def client(db_session_factory, test_settings, fake_provider):
    """FastAPI test client with test DB, settings and provider injected."""

    async def _override_get_db():
        async with db_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_provider] = lambda: fake_provider

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
