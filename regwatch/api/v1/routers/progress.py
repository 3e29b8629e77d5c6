# regwatch/api/v1/routers/progress.py
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from regwatch.api.v1.models import (
    HealthStatus,
    ProgressListResponse,
    ProgressRowResponse,
    SourceStatsListResponse,
    SourceStatsResponse,
)
from regwatch.config import settings
from regwatch.core.ops.schedule_registry import get_registered_pollers
from regwatch.core.shared.database_service import database_service
from regwatch.core.shared.progress_service import progress_service
from regwatch.database.base import get_db

router = APIRouter()


@router.get("/population-progress", response_model=ProgressListResponse, tags=["Progress"])
async def list_population_progress(
    source_name: Optional[str] = Query(None, description="Filter by lock domain"),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Most recent progress rows, newest first."""
    rows = await progress_service.list_recent(db, source_name=source_name, limit=limit)
    items = [ProgressRowResponse.model_validate(row) for row in rows]
    return ProgressListResponse(items=items, total=len(items))


@router.get("/population-progress/stats", response_model=SourceStatsListResponse, tags=["Progress"])
async def population_progress_stats(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
):
    """Per-source dashboard statistics over the last ``days`` days."""
    stats = await progress_service.get_source_stats(db, days=days)
    return SourceStatsListResponse(
        days=days,
        sources=[SourceStatsResponse(**entry) for entry in stats],
    )


@router.get("/population-progress/{progress_id}", response_model=ProgressRowResponse, tags=["Progress"])
async def get_population_progress(progress_id: UUID, db: AsyncSession = Depends(get_db)):
    """One progress row, for polling a run started with a sessionId."""
    row = await progress_service.get(db, progress_id)
    if row is None:
        raise HTTPException(status_code=404, detail=f"Progress row {progress_id} not found")
    return ProgressRowResponse.model_validate(row)


@router.get("/health", response_model=HealthStatus, tags=["System"])
async def health_check():
    """Liveness plus database health."""
    database = await database_service.health_check()
    return HealthStatus(
        status="healthy" if database.get("status") == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=settings.api_version,
        database=database,
        pollers=len(get_registered_pollers()),
    )
