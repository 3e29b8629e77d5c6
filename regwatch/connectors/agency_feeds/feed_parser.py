# regwatch/connectors/agency_feeds/feed_parser.py
"""
Parsing helpers for agency RSS feeds and news listing pages.

RSS/Atom documents go through feedparser. News listing pages are parsed
with BeautifulSoup using a small set of heuristics: look for article-like
containers (``<article>``, elements whose class mentions news/post/release,
list items), take the first link with a meaningful title, the first
paragraph as the description and a ``<time datetime>`` as the date.
"""

import re
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Tuple
from urllib.parse import urljoin

import feedparser
from bs4 import BeautifulSoup

MAX_DESCRIPTION_LENGTH = 1000
MIN_TITLE_LENGTH = 10

CONTAINER_CLASS_PATTERN = re.compile(
    r"news|post|article|announcement|bulletin|update|press-release|release|result", re.I
)
NAVIGATION_TITLE_PATTERN = re.compile(
    r"^(home|about|contact|menu|nav|skip|search|login|sign|careers|employment|privacy|"
    r"facebook|twitter|instagram|youtube|linkedin|newsletter|read more)\b",
    re.I,
)


@dataclass
class FeedEntry:
    """One item from a feed or listing page."""

    title: str
    link: str
    description: str = ""
    published: Optional[date] = None
    guid: Optional[str] = None

    @property
    def identity(self) -> str:
        return self.guid or self.link


def _clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    text = BeautifulSoup(value, "html.parser").get_text(" ", strip=True)
    return " ".join(text.split())


def _struct_to_date(value: Optional[time.struct_time]) -> Optional[date]:
    if not value:
        return None
    try:
        return date(value.tm_year, value.tm_mon, value.tm_mday)
    except ValueError:
        return None


def parse_rss(content: str, base_url: str, limit: int = 25) -> List[FeedEntry]:
    """Parse an RSS/Atom document into FeedEntry items (at most ``limit``)."""
    parsed = feedparser.parse(content)
    entries: List[FeedEntry] = []
    for entry in parsed.entries[:limit]:
        title = _clean_text(entry.get("title"))
        link = entry.get("link") or ""
        if not title or not link:
            continue
        entries.append(FeedEntry(
            title=title,
            link=urljoin(base_url, link),
            description=_clean_text(entry.get("summary") or entry.get("description"))[:MAX_DESCRIPTION_LENGTH],
            published=_struct_to_date(entry.get("published_parsed") or entry.get("updated_parsed")),
            guid=entry.get("id") or entry.get("guid"),
        ))
    return entries


def _parse_iso_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
    except ValueError:
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None


def parse_news_page(html: str, base_url: str, limit: int = 25) -> List[FeedEntry]:
    """Extract article links from a news listing page (at most ``limit``)."""
    soup = BeautifulSoup(html, "html.parser")
    containers = soup.find_all("article")
    containers += soup.find_all(["div", "li", "section"], class_=CONTAINER_CLASS_PATTERN)
    if not containers:
        containers = soup.find_all("li")

    entries: List[FeedEntry] = []
    seen_links = set()
    for container in containers:
        anchor = container.find("a", href=True)
        if anchor is None:
            continue
        title = _clean_text(anchor.get_text(" ", strip=True))
        heading = container.find(["h1", "h2", "h3", "h4"])
        if heading is not None and len(_clean_text(heading.get_text())) >= MIN_TITLE_LENGTH:
            title = _clean_text(heading.get_text())
        if len(title) < MIN_TITLE_LENGTH or NAVIGATION_TITLE_PATTERN.match(title):
            continue

        link = urljoin(base_url, anchor["href"])
        if link in seen_links or link.startswith(("mailto:", "javascript:")):
            continue
        seen_links.add(link)

        paragraph = container.find("p")
        time_tag = container.find("time")
        published = None
        if time_tag is not None:
            published = _parse_iso_date(time_tag.get("datetime") or time_tag.get_text())

        entries.append(FeedEntry(
            title=title,
            link=link,
            description=_clean_text(paragraph.get_text())[:MAX_DESCRIPTION_LENGTH] if paragraph else "",
            published=published,
        ))
        if len(entries) >= limit:
            break
    return entries


# =========================================================================
# CLASSIFICATION
# =========================================================================

# First match wins; anything unmatched is "news"
_DOCUMENT_TYPES: Tuple[Tuple[str, re.Pattern], ...] = (
    ("recall", re.compile(r"\brecall", re.I)),
    ("warning", re.compile(r"warning|advisory|enforcement|violation|seiz", re.I)),
    ("rule", re.compile(r"\brule|rulemaking|regulation|regulatory", re.I)),
    ("guidance", re.compile(r"guidance|guideline|\bfaq", re.I)),
)

_HIGH_URGENCY = re.compile(r"emergency|immediate|urgent|recall|warning|\bban(ned|s)?\b", re.I)
_MEDIUM_URGENCY = re.compile(r"deadline|required|mandatory|\brule|effective|comment period", re.I)


def classify_entry(title: str, description: str = "") -> Tuple[str, str]:
    """
    Classify an entry into (document_type, urgency).

    document_type is one of rule, guidance, warning, recall or news;
    urgency is high, medium or low.
    """
    text = f"{title} {description}"
    document_type = "news"
    for name, pattern in _DOCUMENT_TYPES:
        if pattern.search(text):
            document_type = name
            break

    if _HIGH_URGENCY.search(text):
        urgency = "high"
    elif _MEDIUM_URGENCY.search(text):
        urgency = "medium"
    else:
        urgency = "low"
    return document_type, urgency
