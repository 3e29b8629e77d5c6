# regwatch/database/models.py
"""
SQLAlchemy ORM models for the regwatch ingestion store.

Models:
    - Jurisdiction: Federal government or a single state
    - Instrument: One ingested regulatory document, keyed by external_id
    - PopulationProgress: Per-run progress row that doubles as the source lock

All models use UUID primary keys and include timestamps for auditing.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    TypeDecorator,
    text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship

from .base import Base


# UUID type that works with both SQLite and PostgreSQL
class UUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL's UUID type when available, otherwise uses String(36).
    """
    impl = String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        else:
            return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        elif dialect.name == 'postgresql':
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        else:
            return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        else:
            if not isinstance(value, uuid.UUID):
                return uuid.UUID(value)
            else:
                return value


# Status values for PopulationProgress.status
PROGRESS_RUNNING = "running"
PROGRESS_COMPLETED = "completed"
PROGRESS_FAILED = "failed"
PROGRESS_ABORTED = "aborted"
PROGRESS_STATUSES = (PROGRESS_RUNNING, PROGRESS_COMPLETED, PROGRESS_FAILED, PROGRESS_ABORTED)


class Jurisdiction(Base):
    """
    Jurisdiction model.

    Either the federal government (type="federal") or one state / DC
    (type="state", with its two-letter postal code). Pollers load every
    jurisdiction once per run and resolve names or codes in memory.

    Attributes:
        id: Unique jurisdiction identifier
        name: Display name ("California", "Federal")
        slug: URL-safe unique key ("california", "federal")
        code: Two-letter postal code for states, "US" for federal
        type: "federal" or "state"
        created_at: When the row was seeded
    """

    __tablename__ = "jurisdiction"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    code = Column(String(10), nullable=True, index=True)
    type = Column(String(20), nullable=False, default="state")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    instruments = relationship("Instrument", back_populates="jurisdiction")

    def __repr__(self) -> str:
        return f"<Jurisdiction(slug={self.slug}, code={self.code})>"


class Instrument(Base):
    """
    Instrument model representing one ingested regulatory document.

    ``external_id`` is minted by the poller from source identifiers
    (``federalregister-2024-01234``, ``congress-119-hr-42``) and is the
    upsert conflict target: a later upsert with the same external_id
    replaces every column except ``id`` and ``created_at``.

    Attributes:
        id: Row identifier
        external_id: Stable natural key, unique across all pollers
        title: Document title (never null; pollers substitute a filler)
        description: Abstract or summary text
        effective_date: Publication / action / update date, best effort
        jurisdiction_id: Federal or state jurisdiction
        source: Poller that produced the row (federal_register, congress_gov, ...)
        url: Canonical outbound link
        instrument_metadata: Source-specific JSON (stored in the "metadata" column)
        created_at: First ingestion time
        updated_at: Last upsert time
    """

    __tablename__ = "instrument"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    external_id = Column(String(512), nullable=False, unique=True, index=True)

    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    effective_date = Column(Date, nullable=True)

    jurisdiction_id = Column(
        UUID(), ForeignKey("jurisdiction.id", ondelete="SET NULL"), nullable=True, index=True
    )
    source = Column(String(50), nullable=False, index=True)
    url = Column(Text, nullable=True)

    # "metadata" is reserved on declarative classes
    instrument_metadata = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    jurisdiction = relationship("Jurisdiction", back_populates="instruments")

    __table_args__ = (
        Index("ix_instrument_source_effective_date", "source", "effective_date"),
    )

    def __repr__(self) -> str:
        return f"<Instrument(external_id={self.external_id}, source={self.source})>"


class PopulationProgress(Base):
    """
    Progress row for one poller run; the running row is the source lock.

    A poller inserts a row with status="running" when it starts. The partial
    unique index below allows at most one running row per source_name, so two
    concurrent starts cannot both hold the lock: the loser's insert fails and
    is reported as a conflict. A running row older than the lock TTL is marked
    failed by the next run before it inserts its own.

    Attributes:
        id: Row identifier
        session_id: Caller-supplied correlation id (null for scheduled calls)
        source_name: Lock domain this row guards
        status: running, completed, failed or aborted
        records_fetched: Accepted records so far, updated after each flush
        records_skipped: Items rejected by the relevance filter
        error_message: Truncated diagnostic text (<= 500 chars)
        started_at: When the run started (or was refused, for aborted rows)
        completed_at: When the run was finalized
        updated_at: Last progress update

    Status Transitions:
        running -> completed
        running -> failed
        aborted (terminal; written when a live lock refused the run)
    """

    __tablename__ = "data_population_progress"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    session_id = Column(String(255), nullable=True, index=True)
    source_name = Column(String(100), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=PROGRESS_RUNNING, index=True)

    records_fetched = Column(Integer, nullable=False, default=0)
    records_skipped = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)

    started_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index(
            "uq_population_progress_running_source",
            "source_name",
            unique=True,
            postgresql_where=text("status = 'running'"),
            sqlite_where=text("status = 'running'"),
        ),
        Index("ix_population_progress_source_started", "source_name", "started_at"),
    )

    @property
    def duration_seconds(self):
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def __repr__(self) -> str:
        return f"<PopulationProgress(source_name={self.source_name}, status={self.status})>"
