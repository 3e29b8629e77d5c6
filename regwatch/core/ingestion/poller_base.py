# regwatch/core/ingestion/poller_base.py
"""
Shared poller worker: lock -> window -> fetch -> filter -> normalize -> flush -> finalize.

Every source-specific poller subclasses ``BasePoller`` and supplies three
things: how to page through its source (``iter_items``), which text the
relevance filter sees (``relevance_text``), and how to turn an accepted item
into an ``InstrumentRecord`` (``build_record``). Everything else (locking,
the incremental fetch window, page error handling, batching, progress
updates and guaranteed finalization) lives here.

Run lifecycle:
    idle -> lock-check -> (aborted | running) -> fetching -> flushing -> (completed | failed)

Page errors:
    - 2xx: items are yielded
    - 429/5xx still failing after retries, or a network error after retries:
      the page is skipped and paging continues
    - any other non-2xx (e.g. 400, 404): the current term stops early

Batching:
    Accepted records accumulate until ``batch_size`` (POLL_BATCH_SIZE, 50) and
    are upserted by external_id. A failed upsert is retried once in
    half-size chunks; chunks that still fail are logged and recorded as
    errors and the run continues.

Usage:
    poller = FederalRegisterPoller()
    async with database_service.get_session() as session:
        result = await poller.run(session, session_id="ui-123")
    return JSONResponse(status_code=result.http_status, content=result.to_response())
"""

import asyncio
import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, AsyncIterator, Dict, List, Optional, Set, Tuple

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from regwatch.config import settings
from regwatch.core.errors import ConfigurationError
from regwatch.core.ingestion.relevance import DEFAULT_FILTER, RelevanceFilter
from regwatch.core.shared.http_retry import fetch_with_retries, format_error, is_retryable_status
from regwatch.core.shared.instrument_service import (
    InstrumentRecord,
    JurisdictionIndex,
    instrument_service,
)
from regwatch.core.shared.progress_service import progress_service
from regwatch.database.models import PROGRESS_COMPLETED, PROGRESS_FAILED

USER_AGENT = "regwatch/1.0 (+regulatory ingestion)"
MAX_REPORTED_ERRORS = 20


class PageStatus(enum.Enum):
    OK = "ok"
    SKIP_PAGE = "skip_page"
    END_TERM = "end_term"


@dataclass
class PollStats:
    """Counters for one run."""

    fetched: int = 0
    accepted: int = 0
    skipped: int = 0
    upserted: int = 0
    pages: int = 0
    errors: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)


@dataclass
class PollContext:
    """Per-run state handed to iter_items/build_record."""

    client: httpx.AsyncClient
    since: date
    jurisdictions: JurisdictionIndex
    stats: PollStats
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PollResult:
    """Outcome of one poller invocation, mapped onto the HTTP contract."""

    poller: str
    source: str
    source_name: str
    status: str
    http_status: int
    message: str
    session_id: Optional[str] = None
    stats: PollStats = field(default_factory=PollStats)
    since: Optional[date] = None
    polled_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def success(self) -> bool:
        return self.status == PROGRESS_COMPLETED

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": self.success,
            "partial": self.http_status == 207,
            "message": self.message,
            "poller": self.poller,
            "source": self.source,
            "sourceName": self.source_name,
            "sessionId": self.session_id,
            "recordsProcessed": self.stats.accepted,
            "totalInserted": self.stats.upserted,
            "recordsAdded": self.stats.upserted,
            "totalFetched": self.stats.fetched,
            "totalSkipped": self.stats.skipped,
            "pagesFetched": self.stats.pages,
            "since": self.since.isoformat() if self.since else None,
            "polledAt": self.polled_at.isoformat() + "Z",
        }
        if self.stats.errors:
            body["errors"] = self.stats.errors[:MAX_REPORTED_ERRORS]
        if self.stats.notes:
            body["notes"] = self.stats.notes
        return body


class BasePoller(ABC):
    """
    Base class for every source poller.

    Class attributes:
        name: Route name (set by @register_poller)
        source: Instrument.source value and default lock domain
        required_settings: Settings fields that must all be set
        required_any_settings: Settings fields of which at least one must be set
        relevance: RelevanceFilter used by is_relevant()
        window_offset: Added to the latest stored effective_date
        epoch: Window start when the source has no data (default DEFAULT_SINCE_DATE)
        max_pages: Page bound per term
    """

    name: str = ""
    source: str = ""
    required_settings: Tuple[str, ...] = ()
    required_any_settings: Tuple[str, ...] = ()
    relevance: RelevanceFilter = DEFAULT_FILTER
    window_offset: timedelta = timedelta(days=1)
    epoch: Optional[date] = None
    max_pages: int = 5

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        batch_size: Optional[int] = None,
        page_delay_seconds: Optional[float] = None,
    ):
        self.logger = logging.getLogger(f"regwatch.pollers.{self.source}")
        self._transport = transport
        self.batch_size = batch_size or settings.poll_batch_size
        self.page_delay_seconds = (
            page_delay_seconds if page_delay_seconds is not None else settings.poll_page_delay_seconds
        )

    # =========================================================================
    # SOURCE HOOKS
    # =========================================================================

    @abstractmethod
    def iter_items(self, ctx: PollContext) -> AsyncIterator[Any]:
        """Yield raw source items in a fixed, deterministic order."""

    @abstractmethod
    def relevance_text(self, item: Any) -> Tuple[Optional[str], Optional[str]]:
        """Return (title, description) for the relevance filter."""

    @abstractmethod
    def build_record(self, item: Any, ctx: PollContext) -> Optional[InstrumentRecord]:
        """Build the complete Instrument record for an accepted item (None to skip)."""

    def is_relevant(self, item: Any) -> bool:
        title, description = self.relevance_text(item)
        return self.relevance.matches(title, description)

    def default_headers(self) -> Dict[str, str]:
        return {"User-Agent": USER_AGENT, "Accept": "application/json"}

    # =========================================================================
    # CONFIGURATION & WINDOW
    # =========================================================================

    def check_configuration(self) -> None:
        """
        Fail fast on missing API keys.

        Raises:
            ConfigurationError: status 400 naming the missing variable(s)
        """
        missing = [
            name.upper() for name in self.required_settings if not getattr(settings, name, None)
        ]
        if missing:
            raise ConfigurationError.for_missing(*missing)
        if self.required_any_settings and not any(
            getattr(settings, name, None) for name in self.required_any_settings
        ):
            names = [name.upper() for name in self.required_any_settings]
            raise ConfigurationError(
                f"Missing required environment variable: one of {' or '.join(names)}",
                missing=names,
            )

    async def determine_since(self, session: AsyncSession) -> date:
        """Latest stored effective_date plus window_offset, or the epoch."""
        epoch = self.epoch or settings.default_since_date
        latest = await instrument_service.get_latest_effective_date(session, self.source)
        if latest is None:
            return epoch
        since = latest + self.window_offset
        # Future-dated rows must not push the window past today
        return max(epoch, min(since, datetime.utcnow().date()))

    # =========================================================================
    # FETCH HELPERS
    # =========================================================================

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self.default_headers(),
            follow_redirects=True,
            timeout=httpx.Timeout(settings.fetch_timeout_seconds),
            transport=self._transport,
        )

    async def fetch_page(
        self,
        ctx: PollContext,
        url: str,
        *,
        params: Any = None,
        headers: Optional[Dict[str, str]] = None,
        label: Optional[str] = None,
    ) -> Tuple[PageStatus, Optional[httpx.Response]]:
        """
        Fetch one page through the retry primitive and classify the outcome.

        Returns:
            (PageStatus.OK, response) on 2xx,
            (PageStatus.SKIP_PAGE, None) when retries were exhausted,
            (PageStatus.END_TERM, None) on a non-retryable status
        """
        label = label or url
        try:
            response = await fetch_with_retries(ctx.client, "GET", url, params=params, headers=headers)
        except httpx.TransportError as e:
            message = f"{label}: {format_error(e)}"
            self.logger.warning(f"Skipping page after retries: {message}")
            ctx.stats.add_error(message)
            return PageStatus.SKIP_PAGE, None

        if response.is_success:
            ctx.stats.pages += 1
            return PageStatus.OK, response

        message = f"{label}: HTTP {response.status_code}"
        ctx.stats.add_error(message)
        if is_retryable_status(response.status_code):
            self.logger.warning(f"Skipping page after retries: {message}")
            return PageStatus.SKIP_PAGE, None

        self.logger.warning(f"Stopping term early: {message}")
        return PageStatus.END_TERM, None

    async def fetch_json(
        self,
        ctx: PollContext,
        url: str,
        *,
        params: Any = None,
        headers: Optional[Dict[str, str]] = None,
        label: Optional[str] = None,
    ) -> Tuple[PageStatus, Any]:
        """fetch_page() plus JSON decoding; undecodable bodies skip the page."""
        status, response = await self.fetch_page(ctx, url, params=params, headers=headers, label=label)
        if status is not PageStatus.OK:
            return status, None
        try:
            return PageStatus.OK, response.json()
        except ValueError as e:
            message = f"{label or url}: invalid JSON ({e})"
            self.logger.warning(message)
            ctx.stats.add_error(message)
            return PageStatus.SKIP_PAGE, None

    async def page_pause(self) -> None:
        if self.page_delay_seconds > 0:
            await asyncio.sleep(self.page_delay_seconds)

    # =========================================================================
    # RUN
    # =========================================================================

    async def run(
        self,
        session: AsyncSession,
        session_id: Optional[str] = None,
        source_name: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> PollResult:
        """
        Execute one poll.

        Args:
            session: Database session used for the lock, the window and upserts
            session_id: Optional caller correlation id stored on progress rows
            source_name: Lock domain override (defaults to ``source``)
            options: Source-specific request options (e.g. stateCode)

        Returns:
            PollResult with http_status 200 (clean), 207 (errors recorded),
            409 (lock held elsewhere) or 500 (fatal)

        Raises:
            ConfigurationError: Before any lock or network activity when a
                required API key is missing
        """
        source_name = source_name or self.source
        self.check_configuration()

        lock = await progress_service.acquire(session, source_name, session_id=session_id)
        if not lock.acquired:
            return PollResult(
                poller=self.name,
                source=self.source,
                source_name=source_name,
                session_id=session_id,
                status="conflict",
                http_status=409,
                message=lock.message,
            )

        stats = PollStats()
        status = PROGRESS_FAILED
        error_message: Optional[str] = None
        since: Optional[date] = None
        started = datetime.utcnow()

        try:
            since = await self.determine_since(session)
            jurisdictions = await instrument_service.load_jurisdictions(session)
            self.logger.info(f"{self.name}: polling {self.source} since {since.isoformat()}")

            async with self._create_client() as client:
                ctx = PollContext(
                    client=client,
                    since=since,
                    jurisdictions=jurisdictions,
                    stats=stats,
                    options=options or {},
                )
                batch: Dict[str, InstrumentRecord] = {}
                seen: Set[str] = set()
                async for item in self.iter_items(ctx):
                    stats.fetched += 1
                    if not self.is_relevant(item):
                        stats.skipped += 1
                        if self.logger.isEnabledFor(logging.DEBUG):
                            title, description = self.relevance_text(item)
                            self.logger.debug(
                                f"Skipped '{(title or '')[:80]}': {self.relevance.explain(title, description)}"
                            )
                        continue
                    record = self.build_record(item, ctx)
                    if record is None:
                        stats.skipped += 1
                        continue
                    if record.external_id not in seen:
                        seen.add(record.external_id)
                        stats.accepted += 1
                    elif record.external_id not in batch:
                        # Already flushed earlier in this run
                        continue
                    batch[record.external_id] = record
                    if len(batch) >= self.batch_size:
                        await self._flush(session, ctx, list(batch.values()), lock.progress_id)
                        batch = {}

                await self._flush(session, ctx, list(batch.values()), lock.progress_id)

            status = PROGRESS_COMPLETED
        except Exception as e:
            error_message = format_error(e)
            stats.add_error(error_message)
            self.logger.error(f"{self.name}: run failed: {error_message}", exc_info=True)
            await session.rollback()
        finally:
            if status == PROGRESS_FAILED and error_message is None:
                error_message = "Run interrupted before completion"
            try:
                await progress_service.finalize(
                    session,
                    lock.progress_id,
                    status,
                    records_fetched=stats.accepted,
                    records_skipped=stats.skipped,
                    error_message=error_message,
                )
            except Exception as e:
                self.logger.error(f"{self.name}: could not finalize progress {lock.progress_id}: {e}")

        elapsed = (datetime.utcnow() - started).total_seconds()
        self.logger.info(
            f"{self.name}: {status} in {elapsed:.1f}s - fetched={stats.fetched} "
            f"accepted={stats.accepted} upserted={stats.upserted} skipped={stats.skipped} "
            f"errors={len(stats.errors)}"
        )

        if status == PROGRESS_COMPLETED:
            http_status = 207 if stats.errors else 200
            message = (
                f"Processed {stats.accepted} records "
                f"({stats.upserted} upserted, {stats.skipped} skipped)"
            )
        else:
            http_status = 500
            message = f"Poll failed: {error_message}"

        return PollResult(
            poller=self.name,
            source=self.source,
            source_name=source_name,
            session_id=session_id,
            status=status,
            http_status=http_status,
            message=message,
            stats=stats,
            since=since,
        )

    async def _flush(
        self,
        session: AsyncSession,
        ctx: PollContext,
        records: List[InstrumentRecord],
        progress_id,
    ) -> None:
        if not records:
            return

        try:
            written = await instrument_service.upsert_batch(session, records)
        except Exception as e:
            self.logger.warning(
                f"Upsert of {len(records)} records failed ({format_error(e)}); retrying in smaller chunks"
            )
            written = 0
            chunk_size = max(1, len(records) // 2)
            for start in range(0, len(records), chunk_size):
                chunk = records[start:start + chunk_size]
                try:
                    written += await instrument_service.upsert_batch(session, chunk)
                except Exception as retry_error:
                    message = f"Upsert failed for {len(chunk)} records: {format_error(retry_error)}"
                    self.logger.error(message)
                    ctx.stats.add_error(message)

        ctx.stats.upserted += written
        self.logger.info(f"{self.name}: flushed {written}/{len(records)} records")

        try:
            await progress_service.update_progress(
                session, progress_id, records_fetched=ctx.stats.accepted, records_skipped=ctx.stats.skipped
            )
        except Exception as e:
            self.logger.warning(f"{self.name}: progress update failed: {e}")
