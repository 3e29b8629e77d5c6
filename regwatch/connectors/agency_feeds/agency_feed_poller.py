# regwatch/connectors/agency_feeds/agency_feed_poller.py
"""
Generic poller over a fixed list of agency RSS feeds and news pages.

The kava, kratom, cannabis/hemp and state-regulations workers are all the
same shape: walk a curated list of agencies, read each agency's RSS feeds
and news listing pages, keep the entries that mention the worker's
products, and store them as instruments. Subclasses only declare
``sources``, ``id_prefix``, ``source`` and a relevance filter.

Record shape:
    external_id  <id_prefix>-<agency code>-<rss|news>-<sha256(guid or link)[:16]>
    effective_date  entry published date (None when the page has none)
    jurisdiction  the agency's state, else federal

Request options:
    stateCode   Restrict the run to agencies of one state ("CA") or to the
                federal agencies ("FEDERAL"); raises the per-agency item cap
    pollAll     Poll every agency even when stateCode is given
    fullScan    Also read each agency's regulation pages
"""

import hashlib
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import AsyncIterator, Dict, Optional, Tuple

from regwatch.connectors.agency_feeds.feed_parser import (
    FeedEntry,
    classify_entry,
    parse_news_page,
    parse_rss,
)
from regwatch.core.ingestion.metadata import AgencyFeedMeta
from regwatch.core.ingestion.poller_base import BasePoller, PageStatus, PollContext
from regwatch.core.ingestion.relevance import infer_products
from regwatch.core.shared.instrument_service import InstrumentRecord

FEDERAL_CODE = "FEDERAL"


@dataclass(frozen=True)
class AgencySource:
    """One agency and the pages it publishes."""

    code: str
    agency_name: str
    homepage: str
    rss_feeds: Tuple[str, ...] = ()
    news_pages: Tuple[str, ...] = ()
    regulation_pages: Tuple[str, ...] = ()
    state_code: Optional[str] = None

    @property
    def region(self) -> str:
        return self.state_code or FEDERAL_CODE


@dataclass
class AgencyItem:
    agency: AgencySource
    entry: FeedEntry
    source_type: str
    feed_url: str


def entry_digest(entry: FeedEntry) -> str:
    return hashlib.sha256(entry.identity.encode("utf-8")).hexdigest()[:16]


class AgencyFeedPoller(BasePoller):
    """
    Base for agency feed workers.

    Class attributes:
        sources: Agencies polled, in order
        id_prefix: external_id prefix
        default_products: Products tagged on every record in addition to
            the ones inferred from the text
        max_items_per_source: Entry cap per agency per run
        single_source_item_limit: Entry cap when stateCode narrows the run
        time_budget_seconds: No new agency is started once this much time
            has passed
    """

    sources: Tuple[AgencySource, ...] = ()
    id_prefix: str = ""
    default_products: Tuple[str, ...] = ()
    max_items_per_source: int = 15
    single_source_item_limit: int = 50
    time_budget_seconds: float = 120.0
    # Feeds are not filterable server-side and entries are often backdated
    window_offset = timedelta(days=-7)

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers["Accept"] = "application/rss+xml, application/xml, text/html;q=0.9, */*;q=0.8"
        return headers

    def select_sources(self, options: Dict) -> Tuple[AgencySource, ...]:
        options = options or {}
        state_code = options.get("stateCode")
        if not state_code or options.get("pollAll"):
            return self.sources
        wanted = str(state_code).strip().upper()
        return tuple(s for s in self.sources if s.region == wanted or s.code.upper() == wanted)

    def item_limit(self, options: Dict) -> int:
        options = options or {}
        if options.get("stateCode") and not options.get("pollAll"):
            return self.single_source_item_limit
        return self.max_items_per_source

    async def iter_items(self, ctx: PollContext) -> AsyncIterator[AgencyItem]:
        sources = self.select_sources(ctx.options)
        if not sources:
            ctx.stats.notes.append(f"No agency sources for stateCode={ctx.options.get('stateCode')}")
            return
        full_scan = bool(ctx.options.get("fullScan"))
        limit = self.item_limit(ctx.options)
        started = time.monotonic()

        for index, agency in enumerate(sources):
            if time.monotonic() - started > self.time_budget_seconds:
                skipped = ", ".join(s.code for s in sources[index:])
                ctx.stats.notes.append(f"Time budget reached; not polled: {skipped}")
                self.logger.warning(f"{self.name}: time budget reached before {skipped}")
                break

            pages = [("rss", url) for url in agency.rss_feeds]
            pages += [("news", url) for url in agency.news_pages]
            if full_scan:
                pages += [("news", url) for url in agency.regulation_pages]

            remaining = limit
            for source_type, url in pages:
                if remaining <= 0:
                    break
                status, response = await self.fetch_page(
                    ctx, url, label=f"{agency.code} {source_type} {url}"
                )
                if status is not PageStatus.OK:
                    continue

                if source_type == "rss":
                    entries = parse_rss(response.text, url, limit=remaining)
                else:
                    entries = parse_news_page(response.text, url, limit=remaining)

                for entry in entries:
                    if entry.published and entry.published < ctx.since:
                        continue
                    remaining -= 1
                    yield AgencyItem(agency, entry, source_type, url)
                await self.page_pause()

            self.logger.debug(f"{self.name}: {agency.code} yielded {limit - remaining} entries")

    def relevance_text(self, item: AgencyItem) -> Tuple[Optional[str], Optional[str]]:
        return item.entry.title, item.entry.description

    def build_record(self, item: AgencyItem, ctx: PollContext) -> Optional[InstrumentRecord]:
        entry = item.entry
        if not entry.link:
            return None

        document_type, urgency = classify_entry(entry.title, entry.description)
        products = set(self.default_products) | infer_products(entry.title, entry.description)
        agency = item.agency

        return InstrumentRecord(
            external_id=f"{self.id_prefix}-{agency.code.lower()}-{item.source_type}-{entry_digest(entry)}",
            source=self.source,
            title=entry.title,
            description=entry.description,
            effective_date=entry.published,
            jurisdiction_id=ctx.jurisdictions.resolve(agency.state_code),
            url=entry.link or agency.homepage,
            metadata=AgencyFeedMeta(
                agency_code=agency.code,
                agency_name=agency.agency_name,
                source_type=item.source_type,
                feed_url=item.feed_url,
                state_code=agency.state_code,
                document_type=document_type,
                urgency=urgency,
                products=sorted(products),
                original_url=entry.link,
            ),
        )
