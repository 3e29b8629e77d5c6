# regwatch/connectors/agency_feeds/kratom_poller.py
"""
Kratom poller.

Covers FDA/DEA kratom pages and the health departments of states that ban
or regulate kratom. ``fullScan`` additionally reads each agency's
regulation pages.
"""

from regwatch.connectors.agency_feeds.agency_feed_poller import AgencyFeedPoller, AgencySource
from regwatch.core.ingestion.relevance import RelevanceFilter
from regwatch.core.ops.schedule_registry import WorkerSchedule, register_poller

KRATOM_KEYWORDS = (
    "kratom",
    "mitragynine",
    "7-hydroxymitragynine",
    "7-oh",
    "mitragyna speciosa",
)

KRATOM_SOURCES = (
    AgencySource(
        code="FEDERAL",
        agency_name="FDA / DEA",
        homepage="https://www.fda.gov/",
        news_pages=(
            "https://www.fda.gov/news-events/public-health-focus/fda-and-kratom",
            "https://www.dea.gov/drug-information/drug-scheduling",
        ),
        regulation_pages=("https://www.fda.gov/food/dietary-supplements",),
    ),
    AgencySource(
        code="AL",
        agency_name="Alabama Department of Public Health",
        homepage="https://www.alabamapublichealth.gov/",
        news_pages=("https://www.alabamapublichealth.gov/news/",),
        regulation_pages=("https://www.alabamapublichealth.gov/legal/index.html",),
        state_code="AL",
    ),
    AgencySource(
        code="AR",
        agency_name="Arkansas Department of Health",
        homepage="https://www.healthy.arkansas.gov/",
        news_pages=("https://www.healthy.arkansas.gov/news",),
        regulation_pages=("https://www.healthy.arkansas.gov/programs-services/topics/controlled-substances",),
        state_code="AR",
    ),
    AgencySource(
        code="IN",
        agency_name="Indiana Department of Health",
        homepage="https://www.in.gov/health/",
        news_pages=("https://www.in.gov/health/newsroom/",),
        regulation_pages=("https://www.in.gov/health/rules-and-regulations/",),
        state_code="IN",
    ),
    AgencySource(
        code="RI",
        agency_name="Rhode Island Department of Health",
        homepage="https://health.ri.gov/",
        news_pages=("https://health.ri.gov/news/",),
        regulation_pages=("https://health.ri.gov/regulations/",),
        state_code="RI",
    ),
    AgencySource(
        code="VT",
        agency_name="Vermont Department of Health",
        homepage="https://www.healthvermont.gov/",
        news_pages=("https://www.healthvermont.gov/news-events",),
        regulation_pages=("https://www.healthvermont.gov/regulations",),
        state_code="VT",
    ),
    AgencySource(
        code="WI",
        agency_name="Wisconsin Department of Health Services",
        homepage="https://www.dhs.wisconsin.gov/",
        news_pages=("https://www.dhs.wisconsin.gov/news/index.htm",),
        state_code="WI",
    ),
)


@register_poller(
    name="kratom-poller",
    result_key="kratomPoller",
    display_name="Kratom Regulatory Poller",
    schedule=WorkerSchedule(every_n_hours=24, offset_hours=4),
    order=50,
)
class KratomPoller(AgencyFeedPoller):
    source = "kratom"
    id_prefix = "kratom"
    sources = KRATOM_SOURCES
    default_products = ("kratom",)
    relevance = RelevanceFilter(include=KRATOM_KEYWORDS)
