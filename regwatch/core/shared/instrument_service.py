# regwatch/core/shared/instrument_service.py
"""
Instrument store operations shared by every poller.

Handles the idempotent batch upsert keyed on ``external_id``, the incremental
fetch window lookup, and jurisdiction seeding/resolution.

Upsert semantics:
    A record whose external_id already exists replaces the stored row in
    full (every column except id and created_at). Pollers therefore always
    build complete records; there is no field-level merge.

Usage:
    from regwatch.core.shared.instrument_service import instrument_service

    latest = await instrument_service.get_latest_effective_date(session, "federal_register")
    jurisdictions = await instrument_service.load_jurisdictions(session)
    written = await instrument_service.upsert_batch(session, records)
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, field_validator
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from regwatch.core.ingestion.metadata import InstrumentMetadata, dump_metadata
from regwatch.database.models import Instrument, Jurisdiction

logger = logging.getLogger("regwatch.instruments")

FEDERAL_JURISDICTION_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
UNTITLED = "Untitled"
MAX_TITLE_LENGTH = 1000

STATE_NAMES: Dict[str, str] = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
    "DC": "District of Columbia", "FL": "Florida", "GA": "Georgia", "HI": "Hawaii",
    "ID": "Idaho", "IL": "Illinois", "IN": "Indiana", "IA": "Iowa",
    "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine",
    "MD": "Maryland", "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota",
    "MS": "Mississippi", "MO": "Missouri", "MT": "Montana", "NE": "Nebraska",
    "NV": "Nevada", "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico",
    "NY": "New York", "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio",
    "OK": "Oklahoma", "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island",
    "SC": "South Carolina", "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas",
    "UT": "Utah", "VT": "Vermont", "VA": "Virginia", "WA": "Washington",
    "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming",
}


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


# =========================================================================
# RECORD
# =========================================================================


class InstrumentRecord(BaseModel):
    """A complete Instrument row as built by a poller, before upsert."""

    external_id: str
    source: str
    title: str = UNTITLED
    description: str = ""
    effective_date: Optional[date] = None
    jurisdiction_id: Optional[uuid.UUID] = None
    url: Optional[str] = None
    metadata: Optional[InstrumentMetadata] = None

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, value):
        if value is None or not str(value).strip():
            return UNTITLED
        return " ".join(str(value).split())[:MAX_TITLE_LENGTH]

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, value):
        if value is None:
            return ""
        return str(value).strip()

    def to_row(self, now: datetime) -> Dict[str, object]:
        """Column-keyed dict for a Core insert."""
        return {
            "id": uuid.uuid4(),
            "external_id": self.external_id,
            "title": self.title,
            "description": self.description,
            "effective_date": self.effective_date,
            "jurisdiction_id": self.jurisdiction_id,
            "source": self.source,
            "url": self.url,
            "metadata": dump_metadata(self.metadata) if self.metadata is not None else {},
            "created_at": now,
            "updated_at": now,
        }


# =========================================================================
# JURISDICTIONS
# =========================================================================


@dataclass
class JurisdictionIndex:
    """
    In-memory jurisdiction lookup, loaded once per poller run.

    Anything that cannot be resolved falls back to the federal jurisdiction.
    """

    federal_id: uuid.UUID = FEDERAL_JURISDICTION_ID
    by_code: Dict[str, uuid.UUID] = field(default_factory=dict)
    by_name: Dict[str, uuid.UUID] = field(default_factory=dict)

    def resolve(self, value: Optional[str]) -> uuid.UUID:
        """Resolve a state code ("CA"), name ("California") or slug; else federal."""
        if not value:
            return self.federal_id
        key = value.strip()
        if key.upper() in self.by_code:
            return self.by_code[key.upper()]
        lowered = key.lower()
        if lowered in self.by_name:
            return self.by_name[lowered]
        return self.by_name.get(slugify(key).replace("-", " "), self.federal_id)

    def resolve_in_text(self, text: Optional[str]) -> uuid.UUID:
        """Find the first state named in free text (e.g. a court name); else federal."""
        if not text:
            return self.federal_id
        lowered = text.lower()
        # Longest names first so "West Virginia" wins over "Virginia"
        for name in sorted(self.by_name, key=len, reverse=True):
            if re.search(r"\b" + re.escape(name) + r"\b", lowered):
                return self.by_name[name]
        return self.federal_id


# =========================================================================
# SERVICE
# =========================================================================


class InstrumentService:
    """Upsert, window and jurisdiction helpers for the Instrument store."""

    async def upsert_batch(self, session: AsyncSession, records: Sequence[InstrumentRecord]) -> int:
        """
        Insert-or-replace a batch of records keyed on external_id.

        Duplicate external_ids inside one batch collapse to the last record,
        since a single INSERT .. ON CONFLICT cannot touch a row twice.

        Returns:
            Number of rows written

        Raises:
            SQLAlchemyError: On any store failure (the session is rolled back)
        """
        if not records:
            return 0

        deduped: Dict[str, InstrumentRecord] = {}
        for record in records:
            deduped[record.external_id] = record

        now = datetime.utcnow()
        rows = [record.to_row(now) for record in deduped.values()]
        table = Instrument.__table__

        dialect = session.get_bind().dialect.name
        insert_fn = pg_insert if dialect == "postgresql" else sqlite_insert

        stmt = insert_fn(table).values(rows)
        replace_columns = {
            column.name: stmt.excluded[column.key]
            for column in table.columns
            if column.name not in ("id", "created_at", "external_id")
        }
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.external_id],
            set_=replace_columns,
        )

        try:
            await session.execute(stmt)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

        logger.debug(f"Upserted {len(rows)} instruments")
        return len(rows)

    async def get_latest_effective_date(self, session: AsyncSession, source: str) -> Optional[date]:
        """Most recent effective_date stored for a source, or None."""
        result = await session.execute(
            select(func.max(Instrument.effective_date)).where(Instrument.source == source)
        )
        return result.scalar()

    async def count_by_source(self, session: AsyncSession, source: str) -> int:
        result = await session.execute(
            select(func.count()).select_from(Instrument).where(Instrument.source == source)
        )
        return result.scalar() or 0

    async def seed_jurisdictions(self, session: AsyncSession) -> int:
        """
        Create the federal jurisdiction and every state/DC if missing.

        Returns:
            Number of rows created
        """
        result = await session.execute(select(Jurisdiction.slug))
        existing = set(result.scalars().all())

        created = 0
        if "federal" not in existing:
            session.add(Jurisdiction(
                id=FEDERAL_JURISDICTION_ID, name="Federal", slug="federal", code="US", type="federal",
            ))
            created += 1
        for code, name in STATE_NAMES.items():
            slug = slugify(name)
            if slug in existing:
                continue
            session.add(Jurisdiction(name=name, slug=slug, code=code, type="state"))
            created += 1

        if created:
            await session.commit()
        return created

    async def load_jurisdictions(self, session: AsyncSession) -> JurisdictionIndex:
        """Load every jurisdiction into a JurisdictionIndex."""
        result = await session.execute(select(Jurisdiction))
        index = JurisdictionIndex()
        for jurisdiction in result.scalars().all():
            if jurisdiction.type == "federal":
                index.federal_id = jurisdiction.id
                continue
            if jurisdiction.code:
                index.by_code[jurisdiction.code.upper()] = jurisdiction.id
            index.by_name[jurisdiction.name.lower()] = jurisdiction.id
        return index

    async def list_for_source(
        self, session: AsyncSession, source: str, limit: int = 100
    ) -> List[Instrument]:
        result = await session.execute(
            select(Instrument)
            .where(Instrument.source == source)
            .order_by(Instrument.external_id)
            .limit(limit)
        )
        return list(result.scalars().all())


# Global instance
instrument_service = InstrumentService()
