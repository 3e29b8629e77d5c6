# regwatch/core/shared/progress_service.py
"""
Progress/lock store for poller runs.

Each poller run owns one row in ``data_population_progress``. Inserting the
row with status="running" is the lock acquisition; updating it as batches
flush is the progress report; finalizing it to completed/failed releases the
lock. The same table feeds the operations dashboard (run history, success
rate, average duration).

Exclusion:
    - A running row younger than the TTL (LOCK_TTL_MINUTES, default 120)
      refuses the new run. When the caller supplied a session id, an
      "aborted" row records the refusal.
    - Running rows older than the TTL are marked failed ("abandoned") before
      the new row is inserted.
    - A partial unique index allows one running row per source_name, so the
      loser of two simultaneous inserts gets an IntegrityError, reported as
      a conflict like any other live lock.

Usage:
    from regwatch.core.shared.progress_service import progress_service

    lock = await progress_service.acquire(session, "federal_register", session_id="abc")
    if not lock.acquired:
        return conflict_response(lock)
    try:
        ...
        await progress_service.update_progress(session, lock.progress_id, records_fetched=50)
    finally:
        await progress_service.finalize(session, lock.progress_id, "completed", records_fetched=50)
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from regwatch.config import settings
from regwatch.database.models import (
    PROGRESS_ABORTED,
    PROGRESS_COMPLETED,
    PROGRESS_FAILED,
    PROGRESS_RUNNING,
    PopulationProgress,
)

logger = logging.getLogger("regwatch.progress")

MAX_ERROR_LENGTH = 500


def truncate_error(message: Optional[str], limit: int = MAX_ERROR_LENGTH) -> Optional[str]:
    if message is None:
        return None
    message = str(message)
    if len(message) <= limit:
        return message
    return message[: limit - 3] + "..."


@dataclass
class LockAcquisition:
    """Outcome of a lock attempt."""

    acquired: bool
    source_name: str
    progress_id: Optional[uuid.UUID] = None
    holder_session_id: Optional[str] = None
    holder_started_at: Optional[datetime] = None
    reclaimed: int = 0

    @property
    def message(self) -> str:
        if self.acquired:
            return f"Lock acquired for {self.source_name}"
        started = self.holder_started_at.isoformat() if self.holder_started_at else "unknown"
        return f"Another {self.source_name} run is already in progress (started {started})"


class ProgressService:
    """
    Lock acquisition, progress updates and run statistics.

    All methods take the caller's AsyncSession and commit their own writes,
    so progress stays visible to other readers while a poller is still busy.
    """

    # =========================================================================
    # LOCKING
    # =========================================================================

    async def acquire(
        self,
        session: AsyncSession,
        source_name: str,
        session_id: Optional[str] = None,
        ttl_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> LockAcquisition:
        """
        Try to take the lock for a source by inserting a running row.

        Args:
            session: Database session
            source_name: Lock domain (usually the poller's source name)
            session_id: Optional caller correlation id
            ttl_minutes: Override for settings.lock_ttl_minutes
            now: Clock override for tests

        Returns:
            LockAcquisition with acquired=True and the new row id, or
            acquired=False describing the live holder
        """
        now = now or datetime.utcnow()
        ttl = timedelta(minutes=ttl_minutes if ttl_minutes is not None else settings.lock_ttl_minutes)

        result = await session.execute(
            select(PopulationProgress)
            .where(
                PopulationProgress.source_name == source_name,
                PopulationProgress.status == PROGRESS_RUNNING,
            )
            .order_by(PopulationProgress.started_at.desc())
        )
        running = list(result.scalars().all())

        live = [row for row in running if now - row.started_at < ttl]
        if live:
            holder = live[0]
            logger.info(
                f"Lock conflict for {source_name}: run {holder.id} started {holder.started_at.isoformat()}"
            )
            conflict = LockAcquisition(
                acquired=False,
                source_name=source_name,
                holder_session_id=holder.session_id,
                holder_started_at=holder.started_at,
            )
            await self._record_aborted(session, source_name, session_id, conflict, now)
            return conflict

        reclaimed = 0
        for row in running:
            row.status = PROGRESS_FAILED
            row.completed_at = now
            row.updated_at = now
            row.error_message = truncate_error(
                f"Abandoned: lock expired after {int(ttl.total_seconds() // 60)} minutes"
            )
            reclaimed += 1
        if reclaimed:
            logger.warning(f"Reclaimed {reclaimed} stale lock(s) for {source_name}")

        progress = PopulationProgress(
            id=uuid.uuid4(),
            session_id=session_id,
            source_name=source_name,
            status=PROGRESS_RUNNING,
            records_fetched=0,
            records_skipped=0,
            started_at=now,
            updated_at=now,
        )
        session.add(progress)
        try:
            await session.commit()
        except IntegrityError:
            # Another run inserted its running row between our check and insert
            await session.rollback()
            logger.info(f"Lock conflict for {source_name}: lost the insert race")
            conflict = LockAcquisition(acquired=False, source_name=source_name)
            await self._record_aborted(session, source_name, session_id, conflict, now)
            return conflict

        logger.info(f"Lock acquired for {source_name} (progress {progress.id})")
        return LockAcquisition(
            acquired=True,
            source_name=source_name,
            progress_id=progress.id,
            reclaimed=reclaimed,
        )

    async def _record_aborted(
        self,
        session: AsyncSession,
        source_name: str,
        session_id: Optional[str],
        conflict: LockAcquisition,
        now: datetime,
    ) -> None:
        if not session_id:
            return
        session.add(PopulationProgress(
            id=uuid.uuid4(),
            session_id=session_id,
            source_name=source_name,
            status=PROGRESS_ABORTED,
            started_at=now,
            completed_at=now,
            updated_at=now,
            error_message=truncate_error(conflict.message),
        ))
        await session.commit()

    async def expire_stale_locks(
        self,
        session: AsyncSession,
        source_name: Optional[str] = None,
        ttl_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Mark running rows older than the TTL as failed.

        Returns:
            Number of rows marked failed
        """
        now = now or datetime.utcnow()
        minutes = ttl_minutes if ttl_minutes is not None else settings.lock_ttl_minutes
        cutoff = now - timedelta(minutes=minutes)

        stmt = (
            update(PopulationProgress)
            .where(
                PopulationProgress.status == PROGRESS_RUNNING,
                PopulationProgress.started_at < cutoff,
            )
            .values(
                status=PROGRESS_FAILED,
                completed_at=now,
                updated_at=now,
                error_message=f"Abandoned: lock expired after {minutes} minutes",
            )
        )
        if source_name:
            stmt = stmt.where(PopulationProgress.source_name == source_name)

        result = await session.execute(stmt)
        await session.commit()
        if result.rowcount:
            logger.warning(f"Expired {result.rowcount} stale running row(s)")
        return result.rowcount or 0

    # =========================================================================
    # PROGRESS
    # =========================================================================

    async def update_progress(
        self,
        session: AsyncSession,
        progress_id: uuid.UUID,
        records_fetched: int,
        records_skipped: Optional[int] = None,
    ) -> None:
        values: Dict[str, Any] = {"records_fetched": records_fetched, "updated_at": datetime.utcnow()}
        if records_skipped is not None:
            values["records_skipped"] = records_skipped
        await session.execute(
            update(PopulationProgress).where(PopulationProgress.id == progress_id).values(**values)
        )
        await session.commit()

    async def finalize(
        self,
        session: AsyncSession,
        progress_id: uuid.UUID,
        status: str,
        records_fetched: int,
        records_skipped: Optional[int] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """
        Move a running row to its terminal status.

        Rows that are no longer running (e.g. reclaimed as abandoned by a
        later run) are left untouched.
        """
        if status not in (PROGRESS_COMPLETED, PROGRESS_FAILED):
            raise ValueError(f"Invalid terminal status: {status}")

        now = datetime.utcnow()
        values: Dict[str, Any] = {
            "status": status,
            "records_fetched": records_fetched,
            "completed_at": now,
            "updated_at": now,
            "error_message": truncate_error(error_message),
        }
        if records_skipped is not None:
            values["records_skipped"] = records_skipped

        await session.execute(
            update(PopulationProgress)
            .where(
                PopulationProgress.id == progress_id,
                PopulationProgress.status == PROGRESS_RUNNING,
            )
            .values(**values)
        )
        await session.commit()
        logger.info(f"Progress {progress_id} finalized as {status} ({records_fetched} records)")

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get(self, session: AsyncSession, progress_id: uuid.UUID) -> Optional[PopulationProgress]:
        result = await session.execute(
            select(PopulationProgress).where(PopulationProgress.id == progress_id)
        )
        return result.scalar_one_or_none()

    async def list_recent(
        self,
        session: AsyncSession,
        source_name: Optional[str] = None,
        limit: int = 50,
    ) -> List[PopulationProgress]:
        query = select(PopulationProgress).order_by(PopulationProgress.started_at.desc()).limit(limit)
        if source_name:
            query = query.where(PopulationProgress.source_name == source_name)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def get_source_stats(
        self,
        session: AsyncSession,
        days: int = 30,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """
        Per-source run statistics for the operations dashboard.

        Success rate counts completed vs. failed runs; aborted rows (refused
        by a live lock) and still-running rows are reported but excluded
        from the rate. Average duration covers completed runs only.

        Returns:
            List of dicts sorted by source_name
        """
        now = now or datetime.utcnow()
        cutoff = now - timedelta(days=days)
        result = await session.execute(
            select(PopulationProgress)
            .where(PopulationProgress.started_at >= cutoff)
            .order_by(PopulationProgress.started_at.desc())
        )

        stats: Dict[str, Dict[str, Any]] = {}
        durations: Dict[str, List[float]] = {}
        for row in result.scalars().all():
            entry = stats.setdefault(row.source_name, {
                "source_name": row.source_name,
                "latest_status": row.status,
                "last_started_at": row.started_at,
                "last_completed_at": row.completed_at,
                "total_runs": 0,
                "completed_runs": 0,
                "failed_runs": 0,
                "aborted_runs": 0,
                "running_runs": 0,
                "total_records": 0,
                "success_rate": 0.0,
                "avg_duration_seconds": None,
            })
            entry["total_runs"] += 1
            if row.status == PROGRESS_COMPLETED:
                entry["completed_runs"] += 1
                entry["total_records"] += row.records_fetched or 0
                if row.duration_seconds is not None:
                    durations.setdefault(row.source_name, []).append(row.duration_seconds)
            elif row.status == PROGRESS_FAILED:
                entry["failed_runs"] += 1
            elif row.status == PROGRESS_ABORTED:
                entry["aborted_runs"] += 1
            else:
                entry["running_runs"] += 1

        for source_name, entry in stats.items():
            finished = entry["completed_runs"] + entry["failed_runs"]
            if finished:
                entry["success_rate"] = round(entry["completed_runs"] / finished * 100, 1)
            if durations.get(source_name):
                values = durations[source_name]
                entry["avg_duration_seconds"] = round(sum(values) / len(values), 1)

        return [stats[name] for name in sorted(stats)]


# Global instance
progress_service = ProgressService()
