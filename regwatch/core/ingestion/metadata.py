# regwatch/core/ingestion/metadata.py
"""
Per-source metadata models for Instrument records.

Each poller fills one of these models; the ``kind`` field discriminates the
union so a stored JSON blob can be parsed back into the right model. The
database column stays schema-less JSON, and downstream readers must treat
every key as optional.

Usage:
    meta = FederalRegisterMeta(document_number="2024-01234", agencies=["DEA"])
    row["metadata"] = dump_metadata(meta)

    parsed = parse_metadata(instrument.instrument_metadata)
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class BaseMeta(BaseModel):
    """Fields every source contributes."""

    model_config = ConfigDict(extra="allow")

    products: List[str] = Field(default_factory=list, description="Inferred product categories")
    original_url: Optional[str] = None
    verified_url: Optional[str] = None


class FederalRegisterMeta(BaseMeta):
    kind: Literal["federal_register"] = "federal_register"
    document_number: str
    document_type: Optional[str] = None
    agencies: List[str] = Field(default_factory=list)
    abstract: Optional[str] = None
    search_term: Optional[str] = None


class CongressMeta(BaseMeta):
    kind: Literal["congress"] = "congress"
    congress: int
    bill_type: str
    bill_number: str
    latest_action: Optional[str] = None
    latest_action_date: Optional[str] = None
    origin_chamber: Optional[str] = None
    policy_area: Optional[str] = None
    update_date: Optional[str] = None


class CaselawMeta(BaseMeta):
    kind: Literal["caselaw"] = "caselaw"
    case_name: str
    court: Optional[str] = None
    court_id: Optional[str] = None
    docket_number: Optional[str] = None
    citations: List[str] = Field(default_factory=list)
    judge: Optional[str] = None
    status: Optional[str] = None
    search_term: Optional[str] = None


class LegislationMeta(BaseMeta):
    kind: Literal["legislation"] = "legislation"
    provider: Literal["openstates", "legiscan"]
    state: Optional[str] = None
    bill_number: Optional[str] = None
    session: Optional[str] = None
    status: Optional[str] = None
    last_action: Optional[str] = None
    last_action_date: Optional[str] = None
    search_term: Optional[str] = None


class AgencyFeedMeta(BaseMeta):
    kind: Literal["agency_feed"] = "agency_feed"
    agency_code: str
    agency_name: str
    source_type: Literal["rss", "news"]
    feed_url: str
    state_code: Optional[str] = None
    document_type: str = "news"
    urgency: Literal["low", "medium", "high"] = "low"


InstrumentMetadata = Annotated[
    Union[FederalRegisterMeta, CongressMeta, CaselawMeta, LegislationMeta, AgencyFeedMeta],
    Field(discriminator="kind"),
]

_metadata_adapter = TypeAdapter(InstrumentMetadata)


def dump_metadata(meta: BaseMeta) -> Dict[str, Any]:
    """Serialize metadata for the JSON column, dropping unset optionals."""
    return meta.model_dump(mode="json", exclude_none=True)


def parse_metadata(data: Optional[Dict[str, Any]]) -> Optional[BaseMeta]:
    """
    Parse a stored metadata blob back into its model.

    Returns None for empty, unknown or malformed blobs rather than raising,
    since rows written by older code may not carry a ``kind``.
    """
    if not data:
        return None
    try:
        return _metadata_adapter.validate_python(data)
    except ValidationError:
        return None
