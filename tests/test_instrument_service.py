"""
Tests for the instrument store: upsert semantics, fetch window lookup and
jurisdiction resolution.
"""

from datetime import date

import pytest

from regwatch.core.ingestion.metadata import CongressMeta, FederalRegisterMeta, parse_metadata
from regwatch.core.shared.instrument_service import (
    FEDERAL_JURISDICTION_ID,
    InstrumentRecord,
    instrument_service,
    slugify,
)


def _record(external_id="federalregister-2024-00001", **overrides):
    values = dict(
        external_id=external_id,
        source="federal_register",
        title="Hemp production rule",
        description="Amends hemp testing requirements",
        effective_date=date(2024, 3, 1),
        jurisdiction_id=FEDERAL_JURISDICTION_ID,
        url="https://www.federalregister.gov/d/2024-00001",
        metadata=FederalRegisterMeta(document_number="2024-00001", products=["hemp"]),
    )
    values.update(overrides)
    return InstrumentRecord(**values)


class TestInstrumentRecord:
    """Test record normalization."""

    def test_missing_title_gets_filler(self):
        assert InstrumentRecord(external_id="x", source="s", title=None).title == "Untitled"
        assert InstrumentRecord(external_id="x", source="s", title="   ").title == "Untitled"

    def test_title_whitespace_collapsed(self):
        assert InstrumentRecord(external_id="x", source="s", title="A\n  rule").title == "A rule"

    def test_none_description_becomes_empty(self):
        assert InstrumentRecord(external_id="x", source="s", description=None).description == ""

    def test_metadata_serialized_with_kind(self):
        row = _record().to_row(now=date(2024, 1, 1))
        assert row["metadata"]["kind"] == "federal_register"
        assert row["metadata"]["document_number"] == "2024-00001"
        assert "abstract" not in row["metadata"]


class TestUpsertBatch:
    """Test idempotent upsert keyed on external_id."""

    @pytest.mark.asyncio
    async def test_insert_then_replace(self, db_session):
        await instrument_service.upsert_batch(db_session, [_record()])
        await instrument_service.upsert_batch(
            db_session,
            [_record(title="Hemp production final rule", description="", url=None)],
        )

        rows = await instrument_service.list_for_source(db_session, "federal_register")
        assert len(rows) == 1
        await db_session.refresh(rows[0])
        assert rows[0].title == "Hemp production final rule"
        assert rows[0].description == ""
        assert rows[0].url is None

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, db_session):
        records = [_record(f"federalregister-{n}") for n in range(3)]
        await instrument_service.upsert_batch(db_session, records)
        await instrument_service.upsert_batch(db_session, records)

        assert await instrument_service.count_by_source(db_session, "federal_register") == 3

    @pytest.mark.asyncio
    async def test_duplicates_in_batch_collapse_to_last(self, db_session):
        written = await instrument_service.upsert_batch(
            db_session, [_record(title="First"), _record(title="Second")]
        )

        assert written == 1
        rows = await instrument_service.list_for_source(db_session, "federal_register")
        assert rows[0].title == "Second"

    @pytest.mark.asyncio
    async def test_empty_batch(self, db_session):
        assert await instrument_service.upsert_batch(db_session, []) == 0

    @pytest.mark.asyncio
    async def test_metadata_round_trips(self, db_session):
        meta = CongressMeta(congress=119, bill_type="hr", bill_number="42", products=["cannabis"])
        await instrument_service.upsert_batch(
            db_session, [_record("congress-119-hr-42", source="congress_gov", metadata=meta)]
        )

        rows = await instrument_service.list_for_source(db_session, "congress_gov")
        parsed = parse_metadata(rows[0].instrument_metadata)
        assert isinstance(parsed, CongressMeta)
        assert parsed.bill_number == "42"


class TestWindowAndJurisdictions:
    """Test the latest-date lookup and jurisdiction resolution."""

    @pytest.mark.asyncio
    async def test_latest_effective_date(self, db_session):
        assert await instrument_service.get_latest_effective_date(db_session, "federal_register") is None

        await instrument_service.upsert_batch(db_session, [
            _record("a", effective_date=date(2024, 1, 5)),
            _record("b", effective_date=date(2024, 2, 9)),
            _record("c", effective_date=None),
            _record("d", source="kava", effective_date=date(2025, 1, 1)),
        ])

        assert await instrument_service.get_latest_effective_date(db_session, "federal_register") == date(2024, 2, 9)

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, db_session):
        assert await instrument_service.seed_jurisdictions(db_session) == 0

    @pytest.mark.asyncio
    async def test_resolve_codes_and_names(self, db_session):
        index = await instrument_service.load_jurisdictions(db_session)

        california = index.resolve("CA")
        assert california != FEDERAL_JURISDICTION_ID
        assert index.resolve("california") == california
        assert index.resolve("California") == california
        assert index.resolve("new-york") == index.resolve("NY")
        assert index.resolve(None) == FEDERAL_JURISDICTION_ID
        assert index.resolve("Atlantis") == FEDERAL_JURISDICTION_ID

    @pytest.mark.asyncio
    async def test_resolve_in_text_prefers_longest_name(self, db_session):
        index = await instrument_service.load_jurisdictions(db_session)

        assert index.resolve_in_text("Supreme Court of West Virginia") == index.resolve("WV")
        assert index.resolve_in_text("Court of Appeals of Virginia") == index.resolve("VA")
        assert index.resolve_in_text("Tax Court") == FEDERAL_JURISDICTION_ID

    def test_slugify(self):
        assert slugify("District of Columbia") == "district-of-columbia"
