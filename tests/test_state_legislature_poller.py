"""
Tests for the state legislature poller (OpenStates + LegiScan).
"""

from datetime import date

import httpx
import pytest

from regwatch.config import settings
from regwatch.connectors.state_legislature.state_legislature_poller import (
    LEGISCAN_API_URL,
    LEGISCAN_TERMS,
    OPENSTATES_BILLS_URL,
    OPENSTATES_QUERIES,
    StateLegislaturePoller,
)
from regwatch.core.errors import ConfigurationError
from regwatch.core.ingestion.metadata import LegislationMeta, parse_metadata
from regwatch.core.shared.instrument_service import instrument_service

OPENSTATES_BILL = {
    "id": "ocd-bill/1234",
    "identifier": "HB 1001",
    "title": "Relating to the regulation of kratom products",
    "session": "2024",
    "jurisdiction": {"name": "Texas"},
    "latest_action_date": "2024-03-01",
    "latest_action_description": "Passed House",
    "updated_at": "2024-03-02T10:00:00",
    "openstates_url": "https://openstates.org/tx/bills/2024/HB1001/",
    "abstracts": [{"abstract": "Requires labeling of kratom products."}],
}

LEGISCAN_SEARCH = {
    "status": "OK",
    "searchresult": {
        "summary": {"page": "1", "page_total": "1", "count": 2},
        "0": {
            "bill_id": 555,
            "state": "co",
            "bill_number": "SB24-076",
            "title": "Regulation of Hemp Products",
            "last_action": "Signed by Governor",
            "last_action_date": "2024-04-10",
            "url": "https://legiscan.com/CO/bill/SB076/2024",
        },
        "1": {
            "bill_id": 556,
            "state": "CO",
            "bill_number": "HB24-001",
            "title": "Wildlife Crossing Funding",
            "last_action": "Introduced",
            "last_action_date": "2024-01-10",
        },
    },
}


def handler(request: httpx.Request) -> httpx.Response:
    url = str(request.url)
    if url.startswith(OPENSTATES_BILLS_URL):
        results = [OPENSTATES_BILL] if request.url.params["q"] == "kratom" else []
        return httpx.Response(200, json={"results": results})
    if url.startswith(LEGISCAN_API_URL):
        if request.url.params["query"] == "hemp":
            return httpx.Response(200, json=LEGISCAN_SEARCH)
        return httpx.Response(200, json={"status": "OK", "searchresult": {"summary": {"page_total": 0}}})
    return httpx.Response(404)


class TestStateLegislaturePoller:
    """Test provider selection and record shape."""

    @pytest.mark.asyncio
    async def test_requires_one_provider_key(self, db_session, monkeypatch):
        monkeypatch.setattr(settings, "openstates_api_key", None)
        monkeypatch.setattr(settings, "legiscan_api_key", None)

        with pytest.raises(ConfigurationError) as exc:
            await StateLegislaturePoller(transport=httpx.MockTransport(handler)).run(db_session)

        assert exc.value.missing == ["OPENSTATES_API_KEY", "LEGISCAN_API_KEY"]

    @pytest.mark.asyncio
    async def test_openstates_only(self, db_session, monkeypatch, recording_transport):
        monkeypatch.setattr(settings, "openstates_api_key", "os-key")
        monkeypatch.setattr(settings, "legiscan_api_key", None)
        transport = recording_transport(handler)

        result = await StateLegislaturePoller(transport=transport).run(db_session)

        assert result.http_status == 200
        assert len(transport.requests) == len(OPENSTATES_QUERIES)
        assert transport.requests[0].headers["X-API-Key"] == "os-key"
        assert "LegiScan skipped: LEGISCAN_API_KEY not set" in result.to_response()["notes"]

        rows = await instrument_service.list_for_source(db_session, "state_legislature")
        assert [row.external_id for row in rows] == ["openstates-ocd-bill/1234"]
        bill = rows[0]
        index = await instrument_service.load_jurisdictions(db_session)
        assert bill.jurisdiction_id == index.resolve("TX")
        assert bill.title == "HB 1001: Relating to the regulation of kratom products"
        assert bill.description == "Requires labeling of kratom products."
        assert bill.effective_date == date(2024, 3, 1)
        meta = parse_metadata(bill.instrument_metadata)
        assert isinstance(meta, LegislationMeta)
        assert meta.provider == "openstates"
        assert meta.state == "TX"
        assert meta.products == ["kratom"]

    @pytest.mark.asyncio
    async def test_both_providers(self, db_session, monkeypatch):
        monkeypatch.setattr(settings, "openstates_api_key", "os-key")
        monkeypatch.setattr(settings, "legiscan_api_key", "ls-key")

        result = await StateLegislaturePoller(transport=httpx.MockTransport(handler)).run(db_session)

        assert result.http_status == 200
        assert result.stats.accepted == 2
        assert result.stats.skipped == 1

        rows = {row.external_id: row for row in await instrument_service.list_for_source(db_session, "state_legislature")}
        hemp = rows["legiscan-555"]
        index = await instrument_service.load_jurisdictions(db_session)
        assert hemp.jurisdiction_id == index.resolve("CO")
        assert hemp.title == "[CO] SB24-076: Regulation of Hemp Products"
        assert hemp.description == "Signed by Governor (2024-04-10)"
        assert hemp.url == "https://legiscan.com/CO/bill/SB076/2024"

    @pytest.mark.asyncio
    async def test_legiscan_error_status_is_recorded(self, db_session, monkeypatch, recording_transport):
        monkeypatch.setattr(settings, "openstates_api_key", None)
        monkeypatch.setattr(settings, "legiscan_api_key", "bad-key")

        def failing(request):
            return httpx.Response(200, json={"status": "ERROR", "alert": {"message": "Invalid API key"}})

        transport = recording_transport(failing)
        result = await StateLegislaturePoller(transport=transport).run(db_session)

        assert result.http_status == 207
        assert len(transport.requests) == len(LEGISCAN_TERMS)
        assert all("status ERROR" in e for e in result.stats.errors)
