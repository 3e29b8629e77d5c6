# regwatch/connectors/agency_feeds/cannabis_hemp_poller.py
"""
Cannabis/hemp poller.

Federal agencies that regulate cannabis and hemp (FDA, USDA AMS, DEA)
plus one cannabis or hemp regulator per state. The dispatcher calls it
with ``pollAll`` every six hours; ``stateCode`` narrows a manual run to
one state.
"""

from regwatch.connectors.agency_feeds.agency_feed_poller import AgencyFeedPoller, AgencySource
from regwatch.core.ingestion.relevance import DEFAULT_FILTER
from regwatch.core.ops.schedule_registry import WorkerSchedule, register_poller

CANNABIS_HEMP_SOURCES = (
    AgencySource(
        code="FDA",
        agency_name="U.S. Food and Drug Administration",
        homepage="https://www.fda.gov/",
        rss_feeds=("https://www.fda.gov/about-fda/contact-fda/stay-informed/rss-feeds/press-releases/rss.xml",),
        news_pages=(
            "https://www.fda.gov/news-events/public-health-focus/fda-regulation-cannabis-and-cannabis-derived-products-including-cannabidiol-cbd",
        ),
    ),
    AgencySource(
        code="USDA",
        agency_name="USDA Agricultural Marketing Service",
        homepage="https://www.ams.usda.gov/",
        news_pages=("https://www.ams.usda.gov/rules-regulations/hemp",),
        regulation_pages=("https://www.ams.usda.gov/rules-regulations/hemp/enforcement",),
    ),
    AgencySource(
        code="DEA",
        agency_name="Drug Enforcement Administration",
        homepage="https://www.dea.gov/",
        news_pages=(
            "https://www.dea.gov/what-we-do/news/press-releases",
            "https://www.dea.gov/drug-information/drug-scheduling",
        ),
    ),
    AgencySource(
        code="AL",
        agency_name="Alabama Department of Agriculture and Industries",
        homepage="https://www.agi.alabama.gov/",
        news_pages=("https://www.agi.alabama.gov/news",),
        regulation_pages=("https://amcc.alabama.gov/rules/",),
        state_code="AL",
    ),
    AgencySource(
        code="CA",
        agency_name="California Department of Food and Agriculture",
        homepage="https://www.cdfa.ca.gov/",
        news_pages=("https://www.cdfa.ca.gov/plant/industrialhemp/news",),
        state_code="CA",
    ),
    AgencySource(
        code="KY",
        agency_name="Kentucky Department of Agriculture",
        homepage="https://www.kyagr.com/",
        news_pages=("https://www.kyagr.com/marketing/hemp-news.html",),
        state_code="KY",
    ),
    AgencySource(
        code="TX",
        agency_name="Texas Department of Agriculture",
        homepage="https://www.texasagriculture.gov/",
        news_pages=("https://www.texasagriculture.gov/News-Events",),
        state_code="TX",
    ),
    AgencySource(
        code="AK",
        agency_name="Alaska Marijuana Control Board",
        homepage="https://www.commerce.alaska.gov/web/amco/",
        news_pages=("https://www.commerce.alaska.gov/web/amco/MCBMeetingDocuments",),
        regulation_pages=("https://www.commerce.alaska.gov/web/cbpl/Hemp",),
        state_code="AK",
    ),
    AgencySource(
        code="AZ",
        agency_name="Arizona Department of Health Services, Marijuana Program",
        homepage="https://www.azdhs.gov/licensing/marijuana/",
        news_pages=("https://www.azdhs.gov/news/",),
        regulation_pages=("https://www.azdhs.gov/licensing/marijuana/adult-use-marijuana/",),
        state_code="AZ",
    ),
    AgencySource(
        code="AR",
        agency_name="Arkansas Medical Marijuana Commission",
        homepage="https://www.arkansas.gov/amcc/",
        news_pages=("https://www.arkansas.gov/amcc/",),
        state_code="AR",
    ),
    AgencySource(
        code="CO",
        agency_name="Colorado Marijuana Enforcement Division",
        homepage="https://sbg.colorado.gov/marijuana-home",
        news_pages=("https://cdor.colorado.gov/media-center-marijuana-enforcement-division",),
        regulation_pages=("https://cdps.colorado.gov/Marijuana/Laws-and-Rules",),
        state_code="CO",
    ),
    AgencySource(
        code="CT",
        agency_name="Connecticut Department of Consumer Protection, Cannabis",
        homepage="https://portal.ct.gov/dcp/cannabis",
        news_pages=("https://www.ct.gov/agriculture/hemp/news/",),
        regulation_pages=("https://www.ct.gov/agriculture/hemp/",),
        state_code="CT",
    ),
    AgencySource(
        code="DE",
        agency_name="Delaware Office of the Marijuana Commissioner",
        homepage="https://omc.delaware.gov/",
        news_pages=("https://news.delaware.gov",),
        regulation_pages=("https://omc.delaware.gov/regulations/",),
        state_code="DE",
    ),
    AgencySource(
        code="FL",
        agency_name="Florida Office of Medical Marijuana Use",
        homepage="https://knowthefactsmmj.com/",
        news_pages=("https://knowthefactsmmj.com/about/weekly-updates/",),
        regulation_pages=("https://knowthefactsmmj.com/about/",),
        state_code="FL",
    ),
    AgencySource(
        code="GA",
        agency_name="Georgia Access to Medical Cannabis Commission",
        homepage="https://www.gmcc.ga.gov/",
        news_pages=("https://www.gmcc.ga.gov/news",),
        regulation_pages=("https://www.gmcc.ga.gov/regulations",),
        state_code="GA",
    ),
    AgencySource(
        code="HI",
        agency_name="Hawaii Department of Health, Medical Cannabis Program",
        homepage="https://health.hawaii.gov/medicalcannabis/",
        news_pages=("https://hdoa.hawaii.gov/hemp",),
        regulation_pages=("https://health.hawaii.gov/medicalcannabis/statutes-rules/",),
        state_code="HI",
    ),
    AgencySource(
        code="ID",
        agency_name="Idaho State Department of Agriculture, Hemp Program",
        homepage="https://agri.idaho.gov/main/hemp/",
        news_pages=("https://www.idahoagriculture.gov/plant-industries/hemp/news/",),
        regulation_pages=("https://www.idahoagriculture.gov/plant-industries/hemp/",),
        state_code="ID",
    ),
    AgencySource(
        code="IL",
        agency_name="Illinois Department of Financial and Professional Regulation, Cannabis",
        homepage="https://idfpr.illinois.gov/profs/adultusecan.html",
        news_pages=("https://idfpr.illinois.gov/News.html",),
        regulation_pages=("https://idfpr.illinois.gov/profs/adultusecan.html",),
        state_code="IL",
    ),
    AgencySource(
        code="IN",
        agency_name="Indiana State Department of Health, Cannabis and Hemp",
        homepage="https://www.in.gov/cannabis/",
        news_pages=("https://www.in.gov/cannabis/",),
        state_code="IN",
    ),
    AgencySource(
        code="IA",
        agency_name="Iowa Department of Health and Human Services, Medical Cannabis",
        homepage="https://hhs.iowa.gov/medical-cannabis",
        news_pages=("https://hhs.iowa.gov/news",),
        regulation_pages=("https://hhs.iowa.gov/medical-cannabis",),
        state_code="IA",
    ),
    AgencySource(
        code="KS",
        agency_name="Kansas Department of Agriculture, Hemp Program",
        homepage="https://agriculture.ks.gov/divisions-programs/plant-protection-and-weed-control/hemp",
        news_pages=("https://www.ksda.gov/plant-protection/hemp/news/",),
        regulation_pages=("https://www.ksda.gov/plant-protection/hemp/",),
        state_code="KS",
    ),
    AgencySource(
        code="LA",
        agency_name="Louisiana Department of Agriculture and Forestry, Medical Marijuana",
        homepage="https://www.ldaf.state.la.us/medical-marijuana/",
        news_pages=("https://www.ldaf.state.la.us/medical-marijuana/",),
        state_code="LA",
    ),
    AgencySource(
        code="ME",
        agency_name="Maine Office of Cannabis Policy",
        homepage="https://www.maine.gov/dafs/ocp",
        news_pages=("https://www.maine.gov/dafs/ocp/news",),
        regulation_pages=("https://www.maine.gov/dafs/ocp/rules-statutes",),
        state_code="ME",
    ),
    AgencySource(
        code="MD",
        agency_name="Maryland Cannabis Administration",
        homepage="https://cannabis.maryland.gov/",
        news_pages=("https://cannabis.maryland.gov/Pages/news.aspx",),
        regulation_pages=("https://cannabis.maryland.gov/Pages/Laws-Regulations.aspx",),
        state_code="MD",
    ),
    AgencySource(
        code="MA",
        agency_name="Massachusetts Cannabis Control Commission",
        homepage="https://masscannabiscontrol.com/",
        rss_feeds=("https://masscannabiscontrol.com/feed",),
        news_pages=("https://masscannabiscontrol.com/news",),
        regulation_pages=("https://masscannabiscontrol.com/public-documents/regulations",),
        state_code="MA",
    ),
    AgencySource(
        code="MI",
        agency_name="Michigan Cannabis Regulatory Agency",
        homepage="https://www.michigan.gov/cra",
        news_pages=("https://www.michigan.gov/cra/news-releases",),
        regulation_pages=("https://www.michigan.gov/cra/about/rules",),
        state_code="MI",
    ),
    AgencySource(
        code="MN",
        agency_name="Minnesota Office of Cannabis Management",
        homepage="https://mn.gov/ocm/",
        news_pages=("https://www.mda.state.mn.us/plants/hemp/news/",),
        regulation_pages=("https://www.mda.state.mn.us/plants/hemp/",),
        state_code="MN",
    ),
    AgencySource(
        code="MS",
        agency_name="Mississippi Department of Agriculture, Hemp",
        homepage="https://www.mda.ms.gov/divisions/hemp",
        news_pages=("https://www.mda.ms.gov/divisions/hemp",),
        state_code="MS",
    ),
    AgencySource(
        code="MO",
        agency_name="Missouri Division of Cannabis Regulation",
        homepage="https://cannabis.mo.gov/",
        news_pages=("https://cannabis.mo.gov/news",),
        regulation_pages=("https://cannabis.mo.gov/rules-regulations",),
        state_code="MO",
    ),
    AgencySource(
        code="MT",
        agency_name="Montana Department of Revenue, Cannabis Control Division",
        homepage="https://mt.gov/cannabis",
        news_pages=("https://agr.mt.gov/agriculture/hemp/news/",),
        regulation_pages=("https://agr.mt.gov/hemp",),
        state_code="MT",
    ),
    AgencySource(
        code="NE",
        agency_name="Nebraska Department of Agriculture, Hemp",
        homepage="https://agr.nebraska.gov/hemp",
        news_pages=("https://nda.nebraska.gov/agriculture/hemp/news/",),
        regulation_pages=("https://nda.nebraska.gov/agriculture/hemp/",),
        state_code="NE",
    ),
    AgencySource(
        code="NV",
        agency_name="Nevada Cannabis Compliance Board",
        homepage="https://ccb.nv.gov/",
        news_pages=("https://www.agri.nv.gov/Programs/Industrial_Hemp/news/",),
        regulation_pages=("https://www.agri.nv.gov/Programs/Industrial_Hemp/",),
        state_code="NV",
    ),
    AgencySource(
        code="NH",
        agency_name="New Hampshire Therapeutic Cannabis Program",
        homepage="https://www.dhhs.nh.gov/programs-services/population-health/therapeutic-cannabis",
        news_pages=("https://www.dhhs.nh.gov/programs-services/population-health/therapeutic-cannabis",),
        state_code="NH",
    ),
    AgencySource(
        code="NJ",
        agency_name="New Jersey Cannabis Regulatory Commission",
        homepage="https://www.nj.gov/cannabis/",
        news_pages=("https://www.nj.gov/agriculture/hemp/news/",),
        regulation_pages=("https://www.nj.gov/agriculture/plant-industry/",),
        state_code="NJ",
    ),
    AgencySource(
        code="NM",
        agency_name="New Mexico Cannabis Control Division",
        homepage="https://www.rld.nm.gov/cannabis/",
        news_pages=("https://www.nmda.nmsu.edu/agriculture/hemp/news/",),
        regulation_pages=("https://www.nmda.nmsu.edu/agriculture/hemp/",),
        state_code="NM",
    ),
    AgencySource(
        code="NY",
        agency_name="New York Office of Cannabis Management",
        homepage="https://cannabis.ny.gov/",
        news_pages=("https://www.agriculture.ny.gov/plant-industry/hemp/news/",),
        regulation_pages=("https://www.agriculture.ny.gov/plant-industry/hemp/",),
        state_code="NY",
    ),
    AgencySource(
        code="NC",
        agency_name="North Carolina Department of Agriculture, Hemp Program",
        homepage="https://www.ncagr.gov/divisions/plant-industry/hemp-nc",
        news_pages=("https://www.ncagr.gov/divisions/public-affairs/news-roundup",),
        regulation_pages=("https://www.ncagr.gov/divisions/plant-industry/hemp-nc",),
        state_code="NC",
    ),
    AgencySource(
        code="ND",
        agency_name="North Dakota Department of Agriculture",
        homepage="https://www.ndda.nd.gov/",
        news_pages=("https://www.ndda.nd.gov/agriculture/hemp/news/",),
        regulation_pages=("https://www.ndda.nd.gov/agriculture/hemp/",),
        state_code="ND",
    ),
    AgencySource(
        code="OH",
        agency_name="Ohio Division of Cannabis Control",
        homepage="https://cannabis.ohio.gov/",
        news_pages=("https://cannabis.ohio.gov/news",),
        regulation_pages=("https://cannabis.ohio.gov/rules",),
        state_code="OH",
    ),
    AgencySource(
        code="OK",
        agency_name="Oklahoma Medical Marijuana Authority",
        homepage="https://oklahoma.gov/omma.html",
        news_pages=("https://oklahoma.gov/omma/news.html",),
        regulation_pages=("https://oklahoma.gov/omma/rules.html",),
        state_code="OK",
    ),
    AgencySource(
        code="OR",
        agency_name="Oregon Liquor and Cannabis Commission",
        homepage="https://www.oregon.gov/olcc/",
        news_pages=("https://www.oregon.gov/olcc/Pages/News.aspx",),
        regulation_pages=("https://www.oregon.gov/olcc/marijuana/Pages/Recreational-Marijuana-Laws-and-Rules.aspx",),
        state_code="OR",
    ),
    AgencySource(
        code="PA",
        agency_name="Pennsylvania Department of Health, Medical Marijuana Program",
        homepage="https://www.health.pa.gov/topics/programs/Medical%20Marijuana",
        news_pages=("https://www.agriculture.pa.gov/Plants_Land_Water/PlantIndustry/hemp/news/",),
        regulation_pages=("https://www.health.pa.gov/topics/programs/Medical%20Marijuana/Pages/Regulations.aspx",),
        state_code="PA",
    ),
    AgencySource(
        code="RI",
        agency_name="Rhode Island Cannabis Control Commission",
        homepage="https://ccc.ri.gov/",
        news_pages=("https://ccc.ri.gov/",),
        state_code="RI",
    ),
    AgencySource(
        code="SC",
        agency_name="South Carolina Department of Agriculture, Hemp Program",
        homepage="https://agriculture.sc.gov/divisions/consumer-protection/hemp/",
        news_pages=("https://www.clemson.edu/cafls/hemp/news/",),
        regulation_pages=("https://www.scstatehouse.gov/code/t46c055.php",),
        state_code="SC",
    ),
    AgencySource(
        code="SD",
        agency_name="South Dakota Department of Health, Medical Cannabis Program",
        homepage="https://medcannabis.sd.gov/",
        news_pages=("https://sddps.gov/agriculture/hemp/news/",),
        regulation_pages=("https://sddps.gov/agriculture/hemp/",),
        state_code="SD",
    ),
    AgencySource(
        code="TN",
        agency_name="Tennessee Department of Agriculture, Hemp Program",
        homepage="https://www.tn.gov/agriculture/businesses/hemp.html",
        news_pages=("https://www.tn.gov/agriculture/businesses/hemp/news/",),
        regulation_pages=("https://www.tn.gov/agriculture/businesses/hemp/",),
        state_code="TN",
    ),
    AgencySource(
        code="UT",
        agency_name="Utah Medical Cannabis Program",
        homepage="https://medicalcannabis.utah.gov/",
        news_pages=("https://ag.utah.gov/plant/hemp/news/",),
        regulation_pages=("https://ag.utah.gov/plant/hemp/",),
        state_code="UT",
    ),
    AgencySource(
        code="VT",
        agency_name="Vermont Cannabis Control Board",
        homepage="https://ccb.vermont.gov/",
        rss_feeds=("https://ccb.vermont.gov/feed",),
        news_pages=("https://ccb.vermont.gov/news",),
        regulation_pages=("https://ccb.vermont.gov/rules",),
        state_code="VT",
    ),
    AgencySource(
        code="VA",
        agency_name="Virginia Cannabis Control Authority",
        homepage="https://www.cca.virginia.gov/",
        news_pages=("https://www.vdacs.virginia.gov/agriculture/hemp/news/",),
        regulation_pages=("https://www.vdacs.virginia.gov/agriculture/hemp/",),
        state_code="VA",
    ),
    AgencySource(
        code="WA",
        agency_name="Washington State Liquor and Cannabis Board",
        homepage="https://lcb.wa.gov/",
        news_pages=("https://www.agr.wa.gov/lcb/hemp/news/",),
        regulation_pages=("https://www.agr.wa.gov/lcb/hemp/",),
        state_code="WA",
    ),
    AgencySource(
        code="WV",
        agency_name="West Virginia Office of Medical Cannabis",
        homepage="https://omc.wv.gov/",
        news_pages=("https://omc.wv.gov/news",),
        regulation_pages=("https://omc.wv.gov/rules/Pages/default.aspx",),
        state_code="WV",
    ),
    AgencySource(
        code="WI",
        agency_name="Wisconsin DATCP, Hemp Program",
        homepage="https://datcp.wi.gov/Pages/Programs_Services/Hemp.aspx",
        news_pages=("https://www.wisconsin.gov/datcp/agriculture/hemp/news/",),
        regulation_pages=("https://www.wisconsin.gov/datcp/agriculture/hemp/",),
        state_code="WI",
    ),
    AgencySource(
        code="WY",
        agency_name="Wyoming Department of Agriculture, Hemp Program",
        homepage="https://agriculture.wy.gov/divisions/hemp",
        news_pages=("https://www.wyo.gov/agriculture/plant/hemp/news/",),
        regulation_pages=("https://www.wyo.gov/agriculture/plant/hemp/",),
        state_code="WY",
    ),
)


@register_poller(
    name="cannabis-hemp-poller",
    result_key="cannabisHempPoller",
    display_name="Cannabis & Hemp Poller",
    schedule=WorkerSchedule(every_n_hours=6, offset_hours=0),
    timeout_seconds=300,
    request_body={"pollAll": True},
    order=20,
)
class CannabisHempPoller(AgencyFeedPoller):
    source = "cannabis_hemp"
    id_prefix = "cannabishemp"
    sources = CANNABIS_HEMP_SOURCES
    relevance = DEFAULT_FILTER.extend(include=("cannabinoid", "industrial hemp", "farm bill"))
    time_budget_seconds = 240.0
