# regwatch/connectors/agency_feeds/kava_poller.py
"""Kava poller: FDA and state health department news pages."""

from regwatch.connectors.agency_feeds.agency_feed_poller import AgencyFeedPoller, AgencySource
from regwatch.core.ingestion.relevance import RelevanceFilter
from regwatch.core.ops.schedule_registry import WorkerSchedule, register_poller

KAVA_KEYWORDS = ("kava", "kavalactone", "kavain", "piper methysticum", "kava kava")

KAVA_SOURCES = (
    AgencySource(
        code="FEDERAL",
        agency_name="U.S. Food and Drug Administration",
        homepage="https://www.fda.gov/",
        news_pages=(
            "https://www.fda.gov/food/dietary-supplements",
            "https://www.fda.gov/food/dietary-supplement-products-ingredients",
        ),
    ),
    AgencySource(
        code="CA",
        agency_name="California Dept of Public Health",
        homepage="https://www.cdph.ca.gov/",
        news_pages=("https://www.cdph.ca.gov/Programs/OPA/Pages/New-Release-List.aspx",),
        state_code="CA",
    ),
    AgencySource(
        code="FL",
        agency_name="Florida Dept of Health",
        homepage="https://www.floridahealth.gov/",
        news_pages=("https://www.floridahealth.gov/newsroom/",),
        state_code="FL",
    ),
    AgencySource(
        code="HI",
        agency_name="Hawaii Dept of Health",
        homepage="https://health.hawaii.gov/",
        news_pages=("https://health.hawaii.gov/news/",),
        state_code="HI",
    ),
    AgencySource(
        code="NY",
        agency_name="New York Dept of Health",
        homepage="https://www.health.ny.gov/",
        news_pages=("https://www.health.ny.gov/press/",),
        state_code="NY",
    ),
    AgencySource(
        code="TX",
        agency_name="Texas Dept of State Health Services",
        homepage="https://www.dshs.texas.gov/",
        news_pages=("https://www.dshs.texas.gov/news/",),
        state_code="TX",
    ),
    AgencySource(
        code="UT",
        agency_name="Utah Dept of Health",
        homepage="https://health.utah.gov/",
        news_pages=("https://health.utah.gov/news",),
        state_code="UT",
    ),
    AgencySource(
        code="CO",
        agency_name="Colorado Dept of Public Health and Environment",
        homepage="https://cdphe.colorado.gov/",
        news_pages=("https://cdphe.colorado.gov/press-release",),
        state_code="CO",
    ),
    AgencySource(
        code="AZ",
        agency_name="Arizona Dept of Health Services",
        homepage="https://www.azdhs.gov/",
        news_pages=("https://www.azdhs.gov/news/",),
        state_code="AZ",
    ),
    AgencySource(
        code="WA",
        agency_name="Washington Dept of Health",
        homepage="https://doh.wa.gov/",
        news_pages=("https://doh.wa.gov/news",),
        state_code="WA",
    ),
    AgencySource(
        code="OR",
        agency_name="Oregon Health Authority",
        homepage="https://www.oregon.gov/oha/",
        news_pages=("https://www.oregon.gov/oha/ERD/Pages/news.aspx",),
        state_code="OR",
    ),
)


@register_poller(
    name="kava-poller",
    result_key="kavaPoller",
    display_name="Kava Regulatory Poller",
    schedule=WorkerSchedule(every_n_hours=24, offset_hours=5),
    order=60,
)
class KavaPoller(AgencyFeedPoller):
    source = "kava"
    id_prefix = "kava"
    sources = KAVA_SOURCES
    default_products = ("kava",)
    relevance = RelevanceFilter(include=KAVA_KEYWORDS)
