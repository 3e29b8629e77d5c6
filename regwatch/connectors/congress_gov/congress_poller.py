# regwatch/connectors/congress_gov/congress_poller.py
"""
Congress.gov poller.

Lists bills and joint resolutions of the current Congress, most recently
updated first, and keeps those whose titles are in scope.

API:
    GET https://api.congress.gov/v3/bill/{congress}/{type}
        ?api_key=<CONGRESS_API_KEY>&format=json&limit=100&offset=<n>
        &sort=updateDate desc&fromDateTime=<YYYY-MM-DDT00:00:00Z>

    CONGRESS_API_KEY is required; the poller refuses to start without it.

Record shape:
    external_id  congress-<congress>-<type>-<number>   (type lower-cased)
    title        "<TYPE> <number>: <title>"
    effective_date  latestAction.actionDate -> updateDate
    url          https://www.congress.gov/bill/<n>th-congress/<chamber-type>/<number>
"""

from datetime import date, datetime
from typing import Any, AsyncIterator, Dict, Optional, Tuple

from regwatch.config import settings
from regwatch.core.ingestion.metadata import CongressMeta
from regwatch.core.ingestion.poller_base import BasePoller, PageStatus, PollContext
from regwatch.core.ingestion.relevance import DEFAULT_FILTER, sorted_products
from regwatch.core.ops.schedule_registry import WorkerSchedule, register_poller
from regwatch.core.shared.instrument_service import InstrumentRecord

CONGRESS_API_BASE_URL = "https://api.congress.gov/v3"
CONGRESS_WEB_BASE_URL = "https://www.congress.gov"
PAGE_SIZE = 100

BILL_TYPES = ("hr", "s", "hjres", "sjres")

BILL_TYPE_PATHS = {
    "hr": "house-bill",
    "s": "senate-bill",
    "hjres": "house-joint-resolution",
    "sjres": "senate-joint-resolution",
}


def current_congress(today: Optional[date] = None) -> int:
    """The Congress in session for a date (the 1st Congress began in 1789)."""
    today = today or datetime.utcnow().date()
    return (today.year - 1789) // 2 + 1


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def bill_web_url(congress: int, bill_type: str, number: str) -> str:
    path = BILL_TYPE_PATHS.get(bill_type.lower())
    if not path:
        return CONGRESS_WEB_BASE_URL
    return f"{CONGRESS_WEB_BASE_URL}/bill/{ordinal(congress)}-congress/{path}/{number}"


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


@register_poller(
    name="congress-poller",
    result_key="congressPoller",
    display_name="Congress.gov Poller",
    schedule=WorkerSchedule(every_n_hours=24, offset_hours=7),
    timeout_seconds=150,
    order=80,
)
class CongressPoller(BasePoller):
    """Bills from api.congress.gov filtered on title keywords."""

    source = "congress_gov"
    required_settings = ("congress_api_key",)
    relevance = DEFAULT_FILTER.extend(
        include=("controlled substance", "drug scheduling", "schedule i")
    )
    max_pages = 2

    @property
    def congress(self) -> int:
        return settings.congress_number or current_congress()

    async def iter_items(self, ctx: PollContext) -> AsyncIterator[Dict[str, Any]]:
        congress = self.congress
        for bill_type in BILL_TYPES:
            for page in range(self.max_pages):
                offset = page * PAGE_SIZE
                status, data = await self.fetch_json(
                    ctx,
                    f"{CONGRESS_API_BASE_URL}/bill/{congress}/{bill_type}",
                    params={
                        "api_key": settings.congress_api_key,
                        "format": "json",
                        "limit": PAGE_SIZE,
                        "offset": offset,
                        "sort": "updateDate desc",
                        "fromDateTime": f"{ctx.since.isoformat()}T00:00:00Z",
                    },
                    label=f"congress {congress} {bill_type} offset {offset}",
                )
                if status is PageStatus.END_TERM:
                    break
                if status is PageStatus.SKIP_PAGE:
                    continue

                bills = (data or {}).get("bills") or []
                for bill in bills:
                    yield bill
                if len(bills) < PAGE_SIZE:
                    break
                await self.page_pause()

    def relevance_text(self, item: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        return item.get("title"), None

    def build_record(self, item: Dict[str, Any], ctx: PollContext) -> Optional[InstrumentRecord]:
        bill_type = str(item.get("type") or "").lower()
        number = str(item.get("number") or "").strip()
        if not bill_type or not number:
            return None
        try:
            congress = int(item.get("congress") or self.congress)
        except (TypeError, ValueError):
            congress = self.congress

        title = item.get("title") or ""
        latest_action = item.get("latestAction") or {}
        policy_area = (item.get("policyArea") or {}).get("name")
        web_url = bill_web_url(congress, bill_type, number)

        return InstrumentRecord(
            external_id=f"congress-{congress}-{bill_type}-{number}",
            source=self.source,
            title=f"{bill_type.upper()} {number}: {title}" if title else None,
            description=latest_action.get("text") or "",
            effective_date=_parse_date(latest_action.get("actionDate")) or _parse_date(item.get("updateDate")),
            jurisdiction_id=ctx.jurisdictions.federal_id,
            url=web_url,
            metadata=CongressMeta(
                congress=congress,
                bill_type=bill_type,
                bill_number=number,
                latest_action=latest_action.get("text"),
                latest_action_date=latest_action.get("actionDate"),
                origin_chamber=item.get("originChamber"),
                policy_area=policy_area,
                update_date=item.get("updateDate"),
                products=sorted_products(title),
                original_url=item.get("url"),
                verified_url=web_url,
            ),
        )
