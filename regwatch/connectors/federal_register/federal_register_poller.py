# regwatch/connectors/federal_register/federal_register_poller.py
"""
Federal Register poller.

Searches the Federal Register documents API once per search term, newest
first, from the incremental window start, and stores matching rules,
proposed rules and notices as federal Instruments.

API:
    GET https://www.federalregister.gov/api/v1/documents.json
        ?conditions[term]=<term>
        &conditions[publication_date][gte]=<YYYY-MM-DD>
        &order=newest&per_page=100&page=<n>
        &fields[]=title&fields[]=abstract&...

    An API key is optional (FEDERAL_REGISTER_API_KEY, sent as X-Api-Key).

Record shape:
    external_id  federalregister-<document_number>
    effective_date  publication_date
    url  agency deep link for the inferred product -> html_url -> federalregister.gov
"""

from datetime import date
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from regwatch.config import settings
from regwatch.core.ingestion.metadata import FederalRegisterMeta
from regwatch.core.ingestion.poller_base import BasePoller, PageStatus, PollContext
from regwatch.core.ingestion.relevance import infer_products
from regwatch.core.ops.schedule_registry import EVERY_TICK, register_poller
from regwatch.core.shared.instrument_service import InstrumentRecord

FEDERAL_REGISTER_API_URL = "https://www.federalregister.gov/api/v1/documents.json"
FEDERAL_REGISTER_HOME = "https://www.federalregister.gov/"
PAGE_SIZE = 100

SEARCH_TERMS = (
    "cannabis",
    "marijuana",
    "hemp",
    "CBD",
    "THC",
    "kratom",
    "kava",
    "nicotine",
    "tobacco",
    "vaping",
    "psilocybin",
)

RESPONSE_FIELDS = (
    "title",
    "abstract",
    "document_number",
    "publication_date",
    "html_url",
    "type",
    "agencies",
)

# Agency deep links by product category, keyed on the agency slug the API returns
AGENCY_PRODUCT_URLS: Dict[str, Dict[str, str]] = {
    "drug-enforcement-administration": {
        "cannabis": "https://www.dea.gov/drug-information/drug-scheduling",
        "hemp": "https://www.deadiversion.usdoj.gov/",
        "psychedelics": "https://www.dea.gov/drug-information/drug-scheduling",
        "kratom": "https://www.dea.gov/factsheets/kratom",
    },
    "food-and-drug-administration": {
        "cannabis": "https://www.fda.gov/news-events/public-health-focus/fda-regulation-cannabis-and-cannabis-derived-products-including-cannabidiol-cbd",
        "hemp": "https://www.fda.gov/news-events/public-health-focus/fda-regulation-cannabis-and-cannabis-derived-products-including-cannabidiol-cbd",
        "delta-8": "https://www.fda.gov/consumers/consumer-updates/5-things-know-about-delta-8-tetrahydrocannabinol-delta-8-thc",
        "kratom": "https://www.fda.gov/news-events/public-health-focus/fda-and-kratom",
        "nicotine": "https://www.fda.gov/tobacco-products",
    },
    "agricultural-marketing-service": {
        "hemp": "https://www.ams.usda.gov/rules-regulations/hemp",
    },
    "agriculture-department": {
        "hemp": "https://www.ams.usda.gov/rules-regulations/hemp",
    },
    "alcohol-tobacco-tax-and-trade-bureau": {
        "nicotine": "https://www.ttb.gov/tobacco",
    },
    "alcohol-tobacco-firearms-and-explosives-bureau": {
        "nicotine": "https://www.atf.gov/alcohol-tobacco",
    },
}

# Stable preference when several products match
PRODUCT_PRIORITY = ("delta-8", "kratom", "kava", "hemp", "cannabis", "psychedelics", "nicotine")


def resolve_verified_url(agency_slugs: List[str], products, html_url: Optional[str]) -> str:
    """Agency deep link for the first matching product, else html_url, else the site root."""
    for product in PRODUCT_PRIORITY:
        if product not in products:
            continue
        for slug in agency_slugs:
            link = AGENCY_PRODUCT_URLS.get(slug, {}).get(product)
            if link:
                return link
    return html_url or FEDERAL_REGISTER_HOME


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


@register_poller(
    name="federal-register-poller",
    result_key="federalRegister",
    display_name="Federal Register Poller",
    schedule=EVERY_TICK,
    timeout_seconds=150,
    order=10,
)
class FederalRegisterPoller(BasePoller):
    """Federal Register documents for every search term, newest first."""

    source = "federal_register"
    max_pages = 5

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        if settings.federal_register_api_key:
            headers["X-Api-Key"] = settings.federal_register_api_key
        return headers

    def build_params(self, term: str, page: int, since: date) -> List[Tuple[str, Any]]:
        params: List[Tuple[str, Any]] = [
            ("conditions[term]", term),
            ("conditions[publication_date][gte]", since.isoformat()),
            ("order", "newest"),
            ("per_page", PAGE_SIZE),
            ("page", page),
        ]
        params.extend(("fields[]", f) for f in RESPONSE_FIELDS)
        return params

    async def iter_items(self, ctx: PollContext) -> AsyncIterator[Dict[str, Any]]:
        for term in SEARCH_TERMS:
            term_count = 0
            for page in range(1, self.max_pages + 1):
                status, data = await self.fetch_json(
                    ctx,
                    FEDERAL_REGISTER_API_URL,
                    params=self.build_params(term, page, ctx.since),
                    label=f"federal register '{term}' page {page}",
                )
                if status is PageStatus.END_TERM:
                    break
                if status is PageStatus.SKIP_PAGE:
                    continue

                results = (data or {}).get("results") or []
                for doc in results:
                    term_count += 1
                    yield dict(doc, _search_term=term)

                total_pages = (data or {}).get("total_pages") or 0
                if not results or page >= total_pages:
                    break
                await self.page_pause()

            self.logger.debug(f"'{term}': {term_count} documents")

    def relevance_text(self, item: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        return item.get("title"), item.get("abstract")

    def build_record(self, item: Dict[str, Any], ctx: PollContext) -> Optional[InstrumentRecord]:
        document_number = item.get("document_number")
        if not document_number:
            return None

        products = infer_products(item.get("title"), item.get("abstract"))
        agencies = item.get("agencies") or []
        agency_names = [a.get("name") or a.get("raw_name") for a in agencies if a.get("name") or a.get("raw_name")]
        agency_slugs = [a.get("slug") for a in agencies if a.get("slug")]
        html_url = item.get("html_url")
        verified_url = resolve_verified_url(agency_slugs, products, html_url)

        return InstrumentRecord(
            external_id=f"federalregister-{document_number}",
            source=self.source,
            title=item.get("title"),
            description=item.get("abstract") or "",
            effective_date=_parse_date(item.get("publication_date")),
            jurisdiction_id=ctx.jurisdictions.federal_id,
            url=verified_url,
            metadata=FederalRegisterMeta(
                document_number=document_number,
                document_type=item.get("type"),
                agencies=agency_names,
                abstract=item.get("abstract"),
                search_term=item.get("_search_term"),
                products=sorted(products),
                original_url=html_url,
                verified_url=verified_url,
            ),
        )
