# regwatch/api/v1/models.py
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


# =========================================================================
# POLLER MODELS
# =========================================================================


class PollerInfo(BaseModel):
    """A registered poller and its dispatch schedule."""
    name: str = Field(..., description="Route name, e.g. federal-register-poller")
    display_name: str = Field(..., description="Human-readable name")
    result_key: str = Field(..., description="Key used in the dispatcher's results map")
    source: Optional[str] = Field(None, description="Instrument.source value written by this poller")
    schedule: str = Field(..., description="Schedule description, e.g. 'daily at 3 UTC'")
    cron_expression: str = Field(..., description="Equivalent cron expression")
    hours: List[int] = Field(default_factory=list, description="UTC hours at which the poller is due")
    timeout_seconds: float = Field(..., description="Dispatcher timeout for this poller")


class PollerListResponse(BaseModel):
    pollers: List[PollerInfo]
    total: int


# =========================================================================
# PROGRESS MODELS
# =========================================================================


class ProgressRowResponse(BaseModel):
    """One data_population_progress row."""
    id: UUID = Field(..., description="Progress row UUID")
    session_id: Optional[str] = Field(None, description="Caller correlation id")
    source_name: str = Field(..., description="Lock domain")
    status: str = Field(..., description="running, completed, failed or aborted")
    records_fetched: int = Field(0, description="Accepted records")
    records_skipped: int = Field(0, description="Items rejected by the relevance filter")
    error_message: Optional[str] = Field(None, description="Truncated error text")
    started_at: datetime
    completed_at: Optional[datetime] = None
    updated_at: datetime
    duration_seconds: Optional[float] = None

    class Config:
        from_attributes = True


class ProgressListResponse(BaseModel):
    items: List[ProgressRowResponse]
    total: int


class SourceStatsResponse(BaseModel):
    """Per-source run statistics for the operations dashboard."""
    source_name: str
    latest_status: str
    last_started_at: Optional[datetime] = None
    last_completed_at: Optional[datetime] = None
    total_runs: int = 0
    completed_runs: int = 0
    failed_runs: int = 0
    aborted_runs: int = 0
    running_runs: int = 0
    total_records: int = 0
    success_rate: float = Field(0.0, description="Completed / (completed + failed), percent")
    avg_duration_seconds: Optional[float] = None


class SourceStatsListResponse(BaseModel):
    days: int
    sources: List[SourceStatsResponse]


# =========================================================================
# INSTRUMENT MODELS
# =========================================================================


class InstrumentResponse(BaseModel):
    """One stored instrument with its parsed source metadata."""
    id: UUID
    external_id: str
    source: str
    title: str
    description: str = ""
    effective_date: Optional[date] = None
    jurisdiction_id: Optional[UUID] = None
    url: Optional[str] = None
    metadata_kind: Optional[str] = Field(None, description="Metadata union tag; null when the blob is unrecognized")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    updated_at: datetime


class InstrumentListResponse(BaseModel):
    source: str
    items: List[InstrumentResponse]
    total: int = Field(..., description="All instruments stored for the source")


# =========================================================================
# SYSTEM MODELS
# =========================================================================


class HealthStatus(BaseModel):
    status: str
    timestamp: datetime
    version: str
    database: Dict[str, Any] = Field(default_factory=dict)
    pollers: int = 0
