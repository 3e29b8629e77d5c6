import os

# Configure settings for tests before importing regwatch modules.
os.environ.setdefault("SERVICE_TOKEN_SECRET", "test-service-secret-with-32-plus-bytes")
os.environ.setdefault("REQUIRE_SERVICE_AUTH", "true")
os.environ.setdefault("WORKER_BASE_URL", "http://workers.test")
os.environ.setdefault("POLL_PAGE_DELAY_SECONDS", "0")
os.environ.setdefault("FETCH_BASE_DELAY_SECONDS", "0")
os.environ.setdefault("FETCH_MAX_DELAY_SECONDS", "0")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "false")

# Keep source credentials from a developer's .env out of the test run
for _name in (
    "DATABASE_URL",
    "CONGRESS_API_KEY",
    "OPENSTATES_API_KEY",
    "LEGISCAN_API_KEY",
    "FEDERAL_REGISTER_API_KEY",
    "COURTLISTENER_API_TOKEN",
):
    os.environ[_name] = ""

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from regwatch.core.shared.instrument_service import instrument_service
from regwatch.database import models  # noqa: F401
from regwatch.database.base import Base


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Session on a fresh schema with jurisdictions seeded."""
    async with session_factory() as session:
        await instrument_service.seed_jurisdictions(session)
        yield session


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler):
        self.requests = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture
def recording_transport():
    return RecordingTransport


@pytest.fixture
def no_sleep(monkeypatch):
    """Skip retry backoff waits."""
    async def _sleep(_seconds):
        return None

    monkeypatch.setattr("regwatch.core.shared.http_retry.asyncio.sleep", _sleep)
