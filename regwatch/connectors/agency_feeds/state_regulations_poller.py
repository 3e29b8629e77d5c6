# regwatch/connectors/agency_feeds/state_regulations_poller.py
"""
State regulations poller.

State cannabis control boards: announcements, press releases and (with
``fullScan``, which the dispatcher always sends) rulemaking pages.
"""

from regwatch.connectors.agency_feeds.agency_feed_poller import AgencyFeedPoller, AgencySource
from regwatch.core.ingestion.relevance import DEFAULT_FILTER
from regwatch.core.ops.schedule_registry import WorkerSchedule, register_poller

STATE_REGULATION_SOURCES = (
    AgencySource(
        code="CA",
        agency_name="California Department of Cannabis Control",
        homepage="https://cannabis.ca.gov/",
        news_pages=("https://www.cannabis.ca.gov/about-us/announcements/",),
        regulation_pages=("https://cannabis.ca.gov/cannabis-laws/rulemaking/",),
        state_code="CA",
    ),
    AgencySource(
        code="CO",
        agency_name="Colorado Marijuana Enforcement Division",
        homepage="https://med.colorado.gov/",
        news_pages=("https://cdor.colorado.gov/category/press-release",),
        regulation_pages=("https://med.colorado.gov/rulemaking",),
        state_code="CO",
    ),
    AgencySource(
        code="MA",
        agency_name="Massachusetts Cannabis Control Commission",
        homepage="https://masscannabiscontrol.com/",
        rss_feeds=("https://masscannabiscontrol.com/feed",),
        regulation_pages=("https://masscannabiscontrol.com/public-documents/regulations/",),
        state_code="MA",
    ),
    AgencySource(
        code="MI",
        agency_name="Michigan Cannabis Regulatory Agency",
        homepage="https://www.michigan.gov/cra",
        news_pages=("https://www.michigan.gov/cra/news-releases",),
        regulation_pages=("https://www.michigan.gov/cra/laws-rules",),
        state_code="MI",
    ),
    AgencySource(
        code="NY",
        agency_name="New York Office of Cannabis Management",
        homepage="https://cannabis.ny.gov/",
        news_pages=("https://cannabis.ny.gov/news",),
        regulation_pages=("https://cannabis.ny.gov/regulations",),
        state_code="NY",
    ),
    AgencySource(
        code="IL",
        agency_name="Illinois Cannabis Regulation Oversight Officer",
        homepage="https://cannabis.illinois.gov/",
        news_pages=("https://cannabis.illinois.gov/news.html",),
        state_code="IL",
    ),
    AgencySource(
        code="WA",
        agency_name="Washington State Liquor and Cannabis Board",
        homepage="https://lcb.wa.gov/",
        news_pages=("https://lcb.wa.gov/pressreleases",),
        regulation_pages=("https://lcb.wa.gov/laws/current-rulemaking-activity",),
        state_code="WA",
    ),
    AgencySource(
        code="OR",
        agency_name="Oregon Liquor and Cannabis Commission",
        homepage="https://www.oregon.gov/olcc/",
        news_pages=("https://www.oregon.gov/olcc/pages/news.aspx",),
        regulation_pages=("https://www.oregon.gov/olcc/marijuana/pages/recreational-marijuana-laws-and-rules.aspx",),
        state_code="OR",
    ),
)

STATE_REGULATION_FILTER = DEFAULT_FILTER.extend(
    include=(
        "cannabinoid",
        "dispensary",
        "dispensaries",
        "adult-use",
        "adult use",
        "medical marijuana",
        "cannabis control",
    )
)


@register_poller(
    name="state-regulations-poller",
    result_key="stateRegulations",
    display_name="State Regulations Poller",
    schedule=WorkerSchedule(every_n_hours=6, offset_hours=2),
    timeout_seconds=200,
    request_body={"fullScan": True},
    order=30,
)
class StateRegulationsPoller(AgencyFeedPoller):
    source = "state_regulations"
    id_prefix = "stateregs"
    sources = STATE_REGULATION_SOURCES
    relevance = STATE_REGULATION_FILTER
