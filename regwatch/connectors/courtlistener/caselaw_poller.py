# regwatch/connectors/courtlistener/caselaw_poller.py
"""
CourtListener caselaw poller.

Runs a fixed list of opinion searches against the CourtListener v4 search
API and stores in-scope opinions. The window looks back 30 days from the
latest stored filing date because opinions are often indexed weeks after
they are filed.

API:
    GET https://www.courtlistener.com/api/rest/v4/search/
        ?q=<query>&type=o&order_by=dateFiled desc&filed_after=<YYYY-MM-DD>

    v4 paginates with a ``next`` cursor URL; at most ``max_pages`` pages are
    followed per query. COURTLISTENER_API_TOKEN is optional and raises the
    rate limit (sent as ``Authorization: Token <token>``).

Record shape:
    external_id  courtlistener-<cluster_id | docket_number>
    effective_date  dateFiled
    jurisdiction  state named in the court name, else federal
"""

import re
from datetime import date, timedelta
from typing import Any, AsyncIterator, Dict, Optional, Tuple

from bs4 import BeautifulSoup

from regwatch.config import settings
from regwatch.core.ingestion.metadata import CaselawMeta
from regwatch.core.ingestion.poller_base import BasePoller, PageStatus, PollContext
from regwatch.core.ingestion.relevance import DEFAULT_FILTER, infer_products
from regwatch.core.ops.schedule_registry import WorkerSchedule, register_poller
from regwatch.core.shared.instrument_service import InstrumentRecord

COURTLISTENER_BASE_URL = "https://www.courtlistener.com"
COURTLISTENER_SEARCH_URL = f"{COURTLISTENER_BASE_URL}/api/rest/v4/search/"

# (query, products implied by the query)
SEARCH_QUERIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("cannabis regulation", ("cannabis",)),
    ("marijuana legalization", ("cannabis",)),
    ("hemp regulation", ("hemp",)),
    ("CBD cannabidiol", ("hemp", "cannabis")),
    ("THC delta-8", ("cannabis", "delta-8")),
    ("kratom ban", ("kratom",)),
    ("kratom regulation", ("kratom",)),
    ("kava regulation", ("kava",)),
    ("psilocybin mushroom", ("psychedelics",)),
    ("psychedelic therapy", ("psychedelics",)),
    ("nicotine vaping regulation", ("nicotine",)),
    ("tobacco regulation", ("nicotine",)),
    ("controlled substance scheduling", ("cannabis", "kratom", "psychedelics")),
)

CASELAW_FILTER = DEFAULT_FILTER.extend(
    include=("delta-9", "mdma", "mushroom", "controlled substance", "drug scheduling"),
    exclude=(
        "murder", "assault", "robbery", "burglary", "theft", "kidnapping",
        "child custody", "divorce", "immigration", "deportation",
    ),
)

# Supreme Court and federal circuit court ids (ca1..ca11, cadc, cafc)
FEDERAL_COURT_ID = re.compile(r"^(scotus|ca\d+|cadc|cafc)$")


def strip_html(value: Optional[str]) -> str:
    if not value:
        return ""
    return BeautifulSoup(value, "html.parser").get_text(" ", strip=True)


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


@register_poller(
    name="caselaw-poller",
    result_key="caselawPoller",
    display_name="CourtListener Caselaw Poller",
    schedule=WorkerSchedule(every_n_hours=24, offset_hours=3),
    timeout_seconds=150,
    order=40,
)
class CaselawPoller(BasePoller):
    """Opinions from CourtListener matching the caselaw search queries."""

    source = "courtlistener"
    relevance = CASELAW_FILTER
    window_offset = timedelta(days=-30)
    epoch = date(2018, 1, 1)
    max_pages = 2

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        if settings.courtlistener_api_token:
            headers["Authorization"] = f"Token {settings.courtlistener_api_token}"
        return headers

    async def iter_items(self, ctx: PollContext) -> AsyncIterator[Dict[str, Any]]:
        for query, products in SEARCH_QUERIES:
            url: Optional[str] = COURTLISTENER_SEARCH_URL
            params: Optional[Dict[str, Any]] = {
                "q": query,
                "type": "o",
                "order_by": "dateFiled desc",
                "filed_after": ctx.since.isoformat(),
                "highlight": "on",
            }
            for page in range(1, self.max_pages + 1):
                status, data = await self.fetch_json(
                    ctx, url, params=params, label=f"courtlistener '{query}' page {page}"
                )
                if status is not PageStatus.OK:
                    # The cursor lives in the failed page, so there is nothing to skip to
                    break

                results = (data or {}).get("results") or []
                for result in results:
                    yield dict(result, _query=query, _products=products)

                url = (data or {}).get("next")
                params = None
                if not results or not url:
                    break
                await self.page_pause()

    def _snippet(self, item: Dict[str, Any]) -> str:
        opinions = item.get("opinions") or []
        if opinions and isinstance(opinions[0], dict):
            return strip_html(opinions[0].get("snippet"))
        return ""

    def relevance_text(self, item: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        return item.get("caseName") or item.get("caseNameFull"), self._snippet(item)

    def build_record(self, item: Dict[str, Any], ctx: PollContext) -> Optional[InstrumentRecord]:
        cluster_id = item.get("cluster_id")
        docket_number = item.get("docketNumber")
        key = str(cluster_id) if cluster_id else docket_number
        if not key:
            return None

        case_name = item.get("caseName") or item.get("caseNameFull")
        snippet = self._snippet(item)
        court = item.get("court") or ""
        court_id = item.get("court_id") or ""
        products = set(item.get("_products") or ()) | infer_products(case_name, snippet)

        if not court_id or FEDERAL_COURT_ID.match(court_id):
            jurisdiction_id = ctx.jurisdictions.federal_id
        else:
            jurisdiction_id = ctx.jurisdictions.resolve_in_text(court)

        absolute_url = item.get("absolute_url")
        url = f"{COURTLISTENER_BASE_URL}{absolute_url}" if absolute_url else COURTLISTENER_BASE_URL

        return InstrumentRecord(
            external_id=f"courtlistener-{key}",
            source=self.source,
            title=case_name,
            description=snippet[:2000],
            effective_date=_parse_date(item.get("dateFiled")),
            jurisdiction_id=jurisdiction_id,
            url=url,
            metadata=CaselawMeta(
                case_name=case_name or "Untitled",
                court=court or None,
                court_id=court_id or None,
                docket_number=docket_number,
                citations=[str(c) for c in (item.get("citation") or [])],
                judge=item.get("judge") or None,
                status=item.get("status"),
                search_term=item.get("_query"),
                products=sorted(products),
                original_url=url,
            ),
        )
