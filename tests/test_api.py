"""
HTTP-level tests for the v1 API (pollers, dispatcher, progress, health).

The database dependency is overridden with an in-memory SQLite store that is
created inside the TestClient's event loop.
"""

from datetime import date, datetime
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from regwatch.config import settings
from regwatch.core.auth.service_token import service_token_service
from regwatch.core.ingestion.metadata import AgencyFeedMeta
from regwatch.core.ops.dispatcher_service import DispatchReport
from regwatch.core.shared.instrument_service import InstrumentRecord, instrument_service
from regwatch.core.shared.progress_service import progress_service
from regwatch.database import models  # noqa: F401
from regwatch.database.base import Base, get_db
from regwatch.main import app


class SqliteStore:
    """In-memory store bound to the TestClient's event loop."""

    def __init__(self):
        self.engine = None
        self.factory = None

    async def setup(self):
        self.engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
        async with self.factory() as session:
            await instrument_service.seed_jurisdictions(session)

    async def get_db(self):
        async with self.factory() as session:
            yield session

    async def acquire(self, source_name):
        async with self.factory() as session:
            return await progress_service.acquire(session, source_name)

    async def add_instruments(self, records):
        async with self.factory() as session:
            return await instrument_service.upsert_batch(session, records)


@pytest.fixture
def store():
    return SqliteStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_db] = store.get_db
    with TestClient(app) as test_client:
        test_client.portal.call(store.setup)
        yield test_client
        test_client.portal.call(store.engine.dispose)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {service_token_service.mint(subject='test')}"}


class TestPollerRoutes:
    """Test the worker endpoints."""

    def test_list_pollers(self, client):
        response = client.get("/api/v1/pollers")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 8
        names = [p["name"] for p in data["pollers"]]
        assert names[0] == "federal-register-poller"
        assert "kava-poller" in names
        kava = next(p for p in data["pollers"] if p["name"] == "kava-poller")
        assert kava["schedule"] == "daily at 5 UTC"
        assert kava["source"] == "kava"

    def test_missing_token(self, client):
        response = client.post("/api/v1/pollers/kava-poller")

        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authentication credentials"

    def test_invalid_token(self, client):
        response = client.post("/api/v1/pollers/kava-poller", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token"

    def test_unknown_poller(self, client, auth_headers):
        response = client.post("/api/v1/pollers/not-a-poller", headers=auth_headers)

        assert response.status_code == 404

    def test_missing_api_key_returns_400(self, client, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "congress_api_key", None)

        response = client.post("/api/v1/pollers/congress-poller", headers=auth_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["missing"] == ["CONGRESS_API_KEY"]
        assert "CONGRESS_API_KEY" in body["error"]

    def test_run_with_options_and_session_id(self, client, auth_headers):
        response = client.post(
            "/api/v1/pollers/kava-poller",
            headers=auth_headers,
            json={"sessionId": "ui-1", "stateCode": "ZZ"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["sessionId"] == "ui-1"
        assert body["sourceName"] == "kava"
        assert body["notes"] == ["No agency sources for stateCode=ZZ"]

        progress = client.get("/api/v1/population-progress", params={"source_name": "kava"}).json()
        assert progress["total"] == 1
        assert progress["items"][0]["session_id"] == "ui-1"
        assert progress["items"][0]["status"] == "completed"

    def test_non_json_body_is_tolerated(self, client, store, auth_headers):
        # Hold the lock so the run stops before any network access
        client.portal.call(store.acquire, "kratom")

        response = client.post(
            "/api/v1/pollers/kratom-poller",
            headers={**auth_headers, "Content-Type": "text/plain"},
            content="run please",
        )

        assert response.status_code == 409
        assert response.json()["sessionId"] is None

    def test_lock_conflict_returns_409(self, client, store, auth_headers):
        client.portal.call(store.acquire, "kava")

        response = client.post("/api/v1/pollers/kava-poller", headers=auth_headers, json={"stateCode": "ZZ"})

        assert response.status_code == 409
        assert response.json()["success"] is False
        assert "already in progress" in response.json()["message"]

    def test_auth_can_be_disabled(self, client, monkeypatch):
        monkeypatch.setattr(settings, "require_service_auth", False)

        response = client.post("/api/v1/pollers/kava-poller", json={"stateCode": "ZZ"})

        assert response.status_code == 200


class TestInstrumentRoutes:
    """Test the stored-instrument listing."""

    def test_lists_source_with_parsed_metadata(self, client, store):
        client.portal.call(store.add_instruments, [
            InstrumentRecord(
                external_id="kava-HI-news-aaa",
                source="kava",
                title="Kava advisory",
                effective_date=date(2024, 4, 2),
                metadata=AgencyFeedMeta(
                    agency_code="HI", agency_name="Hawaii Department of Health", source_type="news",
                    feed_url="https://health.hawaii.gov/news/", products=["kava"],
                ),
            ),
            InstrumentRecord(external_id="kava-HI-news-bbb", source="kava", title="Kava labeling"),
            InstrumentRecord(external_id="kratom-AL-news-ccc", source="kratom", title="Kratom ban"),
        ])

        response = client.get("/api/v1/instruments", params={"source": "kava"})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [item["external_id"] for item in data["items"]] == ["kava-HI-news-aaa", "kava-HI-news-bbb"]
        first, second = data["items"]
        assert first["metadata_kind"] == "agency_feed"
        assert first["metadata"]["agency_code"] == "HI"
        assert first["effective_date"] == "2024-04-02"
        assert second["metadata_kind"] is None
        assert second["metadata"] == {}

    def test_limit_keeps_full_total(self, client, store):
        client.portal.call(store.add_instruments, [
            InstrumentRecord(external_id=f"kava-x-{n}", source="kava", title="Kava") for n in range(3)
        ])

        data = client.get("/api/v1/instruments", params={"source": "kava", "limit": 1}).json()

        assert len(data["items"]) == 1
        assert data["total"] == 3

    def test_source_is_required(self, client):
        assert client.get("/api/v1/instruments").status_code == 422


class TestDispatcherRoute:
    """Test the scheduled-poller-cron endpoint."""

    def test_requires_token(self, client):
        assert client.post("/api/v1/scheduled-poller-cron").status_code == 401

    def test_returns_dispatch_report(self, client, auth_headers):
        report = DispatchReport(
            current_hour=6,
            timestamp=datetime(2024, 1, 1, 6, 0),
            execution_ms=42,
            results={
                "federalRegister": {"success": True, "message": "ok", "recordsAdded": 2},
                "caselawPoller": {
                    "success": False, "message": "Skipped - runs daily at 3 UTC (current: 6)",
                    "recordsAdded": 0, "skipped": True,
                },
            },
        )
        with patch(
            "regwatch.api.v1.routers.dispatcher.dispatcher_service.dispatch",
            AsyncMock(return_value=report),
        ):
            response = client.post("/api/v1/scheduled-poller-cron", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "executionTime": 42,
            "currentHour": 6,
            "timestamp": "2024-01-01T06:00:00Z",
            "results": {
                "federalRegister": {"success": True, "message": "ok", "recordsAdded": 2},
                "caselawPoller": {
                    "success": False, "message": "Skipped - runs daily at 3 UTC (current: 6)", "recordsAdded": 0,
                },
            },
        }


class TestProgressAndHealth:
    """Test dashboard and health endpoints."""

    def test_progress_stats(self, client, auth_headers):
        client.post("/api/v1/pollers/kava-poller", headers=auth_headers, json={"stateCode": "ZZ"})

        response = client.get("/api/v1/population-progress/stats", params={"days": 7})

        assert response.status_code == 200
        data = response.json()
        assert data["days"] == 7
        assert data["sources"][0]["source_name"] == "kava"
        assert data["sources"][0]["success_rate"] == 100.0

    def test_single_progress_row(self, client, auth_headers):
        client.post("/api/v1/pollers/kava-poller", headers=auth_headers, json={"sessionId": "ui-7", "stateCode": "ZZ"})
        row = client.get("/api/v1/population-progress", params={"source_name": "kava"}).json()["items"][0]

        response = client.get(f"/api/v1/population-progress/{row['id']}")

        assert response.status_code == 200
        assert response.json()["session_id"] == "ui-7"
        assert response.json()["status"] == "completed"

    def test_unknown_progress_row(self, client):
        response = client.get("/api/v1/population-progress/00000000-0000-0000-0000-00000000abcd")

        assert response.status_code == 404

    def test_progress_limit_validation(self, client):
        assert client.get("/api/v1/population-progress", params={"limit": 0}).status_code == 422

    def test_health_without_database(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["database"]["status"] == "not_configured"
        assert data["pollers"] == 8

    def test_root(self, client):
        assert client.get("/").json()["health_check"] == "/api/v1/health"


class TestCors:
    """Test CORS preflight handling."""

    def test_preflight_from_configured_origin(self, client):
        response = client.options(
            "/api/v1/pollers/kava-poller",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"

    def test_preflight_from_preview_deployment(self, client):
        response = client.options(
            "/api/v1/scheduled-poller-cron",
            headers={"Origin": "https://regwatch-git-main.vercel.app", "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "https://regwatch-git-main.vercel.app"

    def test_preflight_from_unknown_origin(self, client):
        response = client.options(
            "/api/v1/pollers/kava-poller",
            headers={"Origin": "https://evil.example.com", "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 400
