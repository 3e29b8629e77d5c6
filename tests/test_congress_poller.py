"""
Tests for the Congress.gov poller.
"""

from datetime import date

import httpx
import pytest

from regwatch.config import settings
from regwatch.connectors.congress_gov.congress_poller import (
    BILL_TYPES,
    CongressPoller,
    bill_web_url,
    current_congress,
    ordinal,
)
from regwatch.core.errors import ConfigurationError
from regwatch.core.ingestion.metadata import CongressMeta, parse_metadata
from regwatch.core.shared.instrument_service import instrument_service

HR_BILLS = [
    {
        "congress": 118,
        "type": "HR",
        "number": "3617",
        "title": "Secure And Fair Enforcement Banking Act (cannabis banking)",
        "originChamber": "House",
        "updateDate": "2024-02-01",
        "latestAction": {"actionDate": "2024-01-15", "text": "Referred to the Subcommittee."},
        "url": "https://api.congress.gov/v3/bill/118/hr/3617?format=json",
    },
    {
        "congress": 118,
        "type": "HR",
        "number": "100",
        "title": "Highway Funding Act",
        "updateDate": "2024-02-01",
        "latestAction": {"actionDate": "2024-01-10", "text": "Introduced."},
    },
]

S_BILLS = [
    {
        "congress": 118,
        "type": "S",
        "number": "1323",
        "title": "A bill to address controlled substance scheduling of kratom",
        "updateDate": "2024-03-05",
        "latestAction": {},
    },
]


@pytest.fixture
def congress_key(monkeypatch):
    monkeypatch.setattr(settings, "congress_api_key", "test-key")
    monkeypatch.setattr(settings, "congress_number", 118)


def handler(request: httpx.Request) -> httpx.Response:
    bill_type = request.url.path.rsplit("/", 1)[-1]
    bills = {"hr": HR_BILLS, "s": S_BILLS}.get(bill_type, [])
    return httpx.Response(200, json={"bills": bills})


class TestCongressHelpers:
    """Test congress number and URL helpers."""

    def test_current_congress(self):
        assert current_congress(date(2023, 1, 3)) == 118
        assert current_congress(date(2024, 12, 31)) == 118
        assert current_congress(date(2025, 6, 1)) == 119

    def test_ordinal(self):
        assert [ordinal(n) for n in (1, 2, 3, 4, 11, 12, 13, 21, 118, 119)] == [
            "1st", "2nd", "3rd", "4th", "11th", "12th", "13th", "21st", "118th", "119th",
        ]

    def test_bill_web_url(self):
        assert bill_web_url(118, "hr", "3617") == "https://www.congress.gov/bill/118th-congress/house-bill/3617"
        assert bill_web_url(118, "SJRES", "5") == (
            "https://www.congress.gov/bill/118th-congress/senate-joint-resolution/5"
        )

    def test_schedule_i_keyword_also_matches_schedule_is(self):
        assert CongressPoller.relevance.matches("To move marijuana out of schedule I")
        # Plural suffix makes "schedule is" a hit as well; accepted over-match
        assert CongressPoller.relevance.matches("Hearing schedule is posted for the farm bill")


class TestCongressPoller:
    """Test configuration checks and record shape."""

    @pytest.mark.asyncio
    async def test_requires_api_key(self, db_session, monkeypatch, recording_transport):
        monkeypatch.setattr(settings, "congress_api_key", "")
        transport = recording_transport(handler)

        with pytest.raises(ConfigurationError) as exc:
            await CongressPoller(transport=transport).run(db_session)

        assert "CONGRESS_API_KEY" in exc.value.message
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_run_stores_relevant_bills(self, db_session, congress_key, recording_transport):
        transport = recording_transport(handler)

        result = await CongressPoller(transport=transport).run(db_session)

        assert result.http_status == 200
        assert len(transport.requests) == len(BILL_TYPES)
        first = transport.requests[0]
        assert first.url.path == "/v3/bill/118/hr"
        assert first.url.params["api_key"] == "test-key"
        assert first.url.params["fromDateTime"] == "2019-01-01T00:00:00Z"
        assert result.stats.accepted == 2
        assert result.stats.skipped == 1

        rows = {row.external_id: row for row in await instrument_service.list_for_source(db_session, "congress_gov")}
        assert set(rows) == {"congress-118-hr-3617", "congress-118-s-1323"}

        safe = rows["congress-118-hr-3617"]
        assert safe.title.startswith("HR 3617: Secure And Fair")
        assert safe.description == "Referred to the Subcommittee."
        assert safe.effective_date == date(2024, 1, 15)
        assert safe.url == "https://www.congress.gov/bill/118th-congress/house-bill/3617"
        meta = parse_metadata(safe.instrument_metadata)
        assert isinstance(meta, CongressMeta)
        assert meta.origin_chamber == "House"
        assert meta.products == ["cannabis"]

        kratom = rows["congress-118-s-1323"]
        assert kratom.effective_date == date(2024, 3, 5)
        assert kratom.description == ""
