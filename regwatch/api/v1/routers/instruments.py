# regwatch/api/v1/routers/instruments.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from regwatch.api.v1.models import InstrumentListResponse, InstrumentResponse
from regwatch.core.ingestion.metadata import dump_metadata, parse_metadata
from regwatch.core.shared.instrument_service import instrument_service
from regwatch.database.base import get_db
from regwatch.database.models import Instrument

router = APIRouter()


def _to_response(row: Instrument) -> InstrumentResponse:
    parsed = parse_metadata(row.instrument_metadata)
    return InstrumentResponse(
        id=row.id,
        external_id=row.external_id,
        source=row.source,
        title=row.title,
        description=row.description or "",
        effective_date=row.effective_date,
        jurisdiction_id=row.jurisdiction_id,
        url=row.url,
        metadata_kind=parsed.kind if parsed is not None else None,
        metadata=dump_metadata(parsed) if parsed is not None else dict(row.instrument_metadata or {}),
        updated_at=row.updated_at,
    )


@router.get("/instruments", response_model=InstrumentListResponse, tags=["Instruments"])
async def list_instruments(
    source: str = Query(..., description="Instrument.source, e.g. federal_register"),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Stored instruments for one source, ordered by external_id."""
    rows = await instrument_service.list_for_source(db, source, limit=limit)
    total = await instrument_service.count_by_source(db, source)
    return InstrumentListResponse(source=source, items=[_to_response(row) for row in rows], total=total)
