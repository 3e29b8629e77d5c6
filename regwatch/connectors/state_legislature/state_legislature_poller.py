# regwatch/connectors/state_legislature/state_legislature_poller.py
"""
State legislature poller (OpenStates + LegiScan).

Searches state bills in two providers and stores them under one source,
``state_legislature``. Each provider is polled only when its key is set;
with neither key the poller refuses to start.

APIs:
    OpenStates v3
        GET https://v3.openstates.org/bills?q=<query>&sort=updated_desc
            &per_page=20&include=abstracts&updated_since=<YYYY-MM-DD>
        Header: X-API-Key: <OPENSTATES_API_KEY>

    LegiScan
        GET https://api.legiscan.com/?key=<LEGISCAN_API_KEY>&op=getSearch
            &query=<term>&state=ALL&page=<n>

Record shape:
    external_id  openstates-<ocd bill id> | legiscan-<bill_id>
    effective_date  latest action date -> updated date
    jurisdiction  state from the provider's jurisdiction name / state code
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, AsyncIterator, Dict, Optional, Tuple

from regwatch.config import settings
from regwatch.core.ingestion.metadata import LegislationMeta
from regwatch.core.ingestion.poller_base import BasePoller, PageStatus, PollContext
from regwatch.core.ingestion.relevance import DEFAULT_FILTER, infer_products, sorted_products
from regwatch.core.ops.schedule_registry import WorkerSchedule, register_poller
from regwatch.core.shared.instrument_service import STATE_NAMES, InstrumentRecord

OPENSTATES_BILLS_URL = "https://v3.openstates.org/bills"
LEGISCAN_API_URL = "https://api.legiscan.com/"
OPENSTATES_PAGE_SIZE = 20

OPENSTATES_QUERIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("cannabis OR marijuana", ("cannabis",)),
    ("hemp OR CBD OR cannabidiol", ("hemp",)),
    ("kratom", ("kratom",)),
    ("kava", ("kava",)),
    ("psilocybin OR psychedelic", ("psychedelics",)),
    ("nicotine OR vaping OR tobacco", ("nicotine",)),
    ("delta-8 OR delta-9 OR THC", ("cannabis", "delta-8")),
    ("controlled substance scheduling", ("cannabis", "kratom", "psychedelics")),
)

LEGISCAN_TERMS = (
    "cannabis",
    "marijuana",
    "hemp",
    "kratom",
    "kava",
    "psilocybin",
    "nicotine vaping",
    "controlled substance",
)

LEGISLATION_FILTER = DEFAULT_FILTER.extend(
    include=("delta-9", "controlled substance", "cannabinoid")
)


@dataclass
class LegislationItem:
    """One bill from either provider, tagged with the query that found it."""

    provider: str
    payload: Dict[str, Any]
    query: str
    products: Tuple[str, ...] = field(default_factory=tuple)


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


@register_poller(
    name="state-legislature-poller",
    result_key="stateLegislature",
    display_name="State Legislature Poller",
    schedule=WorkerSchedule(every_n_hours=24, offset_hours=6),
    timeout_seconds=200,
    order=70,
)
class StateLegislaturePoller(BasePoller):
    """State bills from OpenStates and LegiScan."""

    source = "state_legislature"
    required_any_settings = ("openstates_api_key", "legiscan_api_key")
    relevance = LEGISLATION_FILTER
    max_pages = 2

    async def iter_items(self, ctx: PollContext) -> AsyncIterator[LegislationItem]:
        if settings.openstates_api_key:
            async for item in self._iter_openstates(ctx):
                yield item
        else:
            ctx.stats.notes.append("OpenStates skipped: OPENSTATES_API_KEY not set")

        if settings.legiscan_api_key:
            async for item in self._iter_legiscan(ctx):
                yield item
        else:
            ctx.stats.notes.append("LegiScan skipped: LEGISCAN_API_KEY not set")

    async def _iter_openstates(self, ctx: PollContext) -> AsyncIterator[LegislationItem]:
        headers = {"X-API-Key": settings.openstates_api_key}
        for query, products in OPENSTATES_QUERIES:
            status, data = await self.fetch_json(
                ctx,
                OPENSTATES_BILLS_URL,
                params=[
                    ("q", query),
                    ("sort", "updated_desc"),
                    ("per_page", OPENSTATES_PAGE_SIZE),
                    ("include", "abstracts"),
                    ("updated_since", ctx.since.isoformat()),
                ],
                headers=headers,
                label=f"openstates '{query}'",
            )
            if status is not PageStatus.OK:
                continue
            for bill in (data or {}).get("results") or []:
                yield LegislationItem("openstates", bill, query, products)
            await self.page_pause()

    async def _iter_legiscan(self, ctx: PollContext) -> AsyncIterator[LegislationItem]:
        for term in LEGISCAN_TERMS:
            for page in range(1, self.max_pages + 1):
                status, data = await self.fetch_json(
                    ctx,
                    LEGISCAN_API_URL,
                    params={
                        "key": settings.legiscan_api_key,
                        "op": "getSearch",
                        "query": term,
                        "state": "ALL",
                        "page": page,
                    },
                    label=f"legiscan '{term}' page {page}",
                )
                if status is PageStatus.END_TERM:
                    break
                if status is PageStatus.SKIP_PAGE:
                    continue
                if (data or {}).get("status") != "OK":
                    ctx.stats.add_error(f"legiscan '{term}' page {page}: status {data.get('status') if data else None}")
                    break

                search_result = data.get("searchresult") or {}
                bills = [
                    value for key, value in search_result.items()
                    if key != "summary" and isinstance(value, dict) and value.get("bill_id")
                ]
                for bill in bills:
                    yield LegislationItem("legiscan", bill, term)

                summary = search_result.get("summary") or {}
                if not bills or page >= int(summary.get("page_total") or 1):
                    break
                await self.page_pause()

    # ---------------------------------------------------------------------

    def relevance_text(self, item: LegislationItem) -> Tuple[Optional[str], Optional[str]]:
        bill = item.payload
        if item.provider == "openstates":
            abstracts = bill.get("abstracts") or []
            abstract = abstracts[0].get("abstract") if abstracts and isinstance(abstracts[0], dict) else None
            return bill.get("title"), abstract
        return bill.get("title"), bill.get("last_action")

    def build_record(self, item: LegislationItem, ctx: PollContext) -> Optional[InstrumentRecord]:
        if item.provider == "openstates":
            return self._openstates_record(item, ctx)
        return self._legiscan_record(item, ctx)

    def _openstates_record(self, item: LegislationItem, ctx: PollContext) -> Optional[InstrumentRecord]:
        bill = item.payload
        bill_id = bill.get("id")
        if not bill_id:
            return None

        title, abstract = self.relevance_text(item)
        identifier = bill.get("identifier") or ""
        jurisdiction_name = (bill.get("jurisdiction") or {}).get("name") or ""
        state_code = next(
            (code for code, name in STATE_NAMES.items() if name.lower() == jurisdiction_name.lower()),
            None,
        )
        products = set(item.products) | infer_products(title, abstract)
        url = bill.get("openstates_url") or "https://openstates.org/"

        return InstrumentRecord(
            external_id=f"openstates-{bill_id}",
            source=self.source,
            title=f"{identifier}: {title}" if identifier and title else title,
            description=abstract or f"{jurisdiction_name} bill {identifier}".strip(),
            effective_date=_parse_date(bill.get("latest_action_date")) or _parse_date(bill.get("updated_at")),
            jurisdiction_id=ctx.jurisdictions.resolve(jurisdiction_name),
            url=url,
            metadata=LegislationMeta(
                provider="openstates",
                state=state_code,
                bill_number=identifier or None,
                session=bill.get("session"),
                status=bill.get("latest_action_description"),
                last_action=bill.get("latest_action_description"),
                last_action_date=bill.get("latest_action_date"),
                search_term=item.query,
                products=sorted(products),
                original_url=url,
            ),
        )

    def _legiscan_record(self, item: LegislationItem, ctx: PollContext) -> Optional[InstrumentRecord]:
        bill = item.payload
        bill_id = bill.get("bill_id")
        if not bill_id:
            return None

        title = bill.get("title") or ""
        state = (bill.get("state") or "").upper()
        bill_number = bill.get("bill_number") or ""
        last_action = bill.get("last_action") or ""
        last_action_date = bill.get("last_action_date")
        url = bill.get("url") or f"https://legiscan.com/bill/{bill_id}"

        return InstrumentRecord(
            external_id=f"legiscan-{bill_id}",
            source=self.source,
            title=f"[{state}] {bill_number}: {title}" if title else None,
            description=f"{last_action} ({last_action_date or 'date unknown'})" if last_action else "",
            effective_date=_parse_date(last_action_date),
            jurisdiction_id=ctx.jurisdictions.resolve(state),
            url=url,
            metadata=LegislationMeta(
                provider="legiscan",
                state=state or None,
                bill_number=bill_number or None,
                last_action=last_action or None,
                last_action_date=last_action_date,
                search_term=item.query,
                products=sorted_products(title, last_action),
                original_url=url,
            ),
        )
