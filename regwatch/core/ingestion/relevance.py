# regwatch/core/ingestion/relevance.py
"""
Relevance filter and product inferencer.

Both operate on ``(title, description)`` text and are pure: no I/O, no
exceptions for any input (``None`` is treated as empty text), and the same
input always produces the same output.

Relevance:
    An exclude keyword anywhere in the text rejects the document, even when
    an include keyword is also present. Otherwise the document is accepted
    only if at least one include keyword appears.

Products:
    Lower-cased text is tested against per-category keyword lists. Zero, one
    or several categories may match.

Keywords match whole words (so "thc" does not fire inside "healthcare"),
with an optional plural suffix.

Usage:
    from regwatch.core.ingestion.relevance import is_relevant, infer_products

    if is_relevant(doc["title"], doc.get("abstract")):
        products = infer_products(doc["title"], doc.get("abstract"))
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, FrozenSet, Iterable, List, Optional, Pattern, Tuple

# =========================================================================
# KEYWORD SETS
# =========================================================================

INCLUDE_KEYWORDS: Tuple[str, ...] = (
    "cannabis",
    "marijuana",
    "marihuana",
    "hemp",
    "cbd",
    "cannabidiol",
    "thc",
    "tetrahydrocannabinol",
    "delta-8",
    "delta 8",
    "kratom",
    "mitragynine",
    "kava",
    "nicotine",
    "tobacco",
    "vaping",
    "e-cigarette",
    "psilocybin",
    "psychedelic",
)

EXCLUDE_KEYWORDS: Tuple[str, ...] = (
    "wildlife",
    "ocean",
    "marine",
    "fishery",
    "fisheries",
    "hunting",
    "fishing",
    "endangered species",
    "endangered",
    "migratory bird",
    "conservation",
    "forestry",
    "timber",
    "mining",
    "coal",
    "petroleum",
    "natural gas",
    "oil and gas",
    "aviation",
    "airplane",
)

PRODUCT_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "cannabis": ("cannabis", "marijuana", "marihuana", "weed"),
    "hemp": ("hemp", "cbd", "cannabidiol", "industrial hemp"),
    "delta-8": ("delta-8", "delta 8", "delta-8-thc"),
    "kratom": ("kratom", "mitragynine", "mitragyna"),
    "kava": ("kava", "kavain", "kavalactone"),
    "nicotine": ("nicotine", "tobacco", "vaping", "e-cigarette", "vape", "juul"),
    "psychedelics": (
        "psilocybin",
        "psychedelic",
        "mushroom",
        "mdma",
        "ketamine",
        "lsd",
        "ayahuasca",
        "ibogaine",
        "mescaline",
    ),
}


def _normalize(*parts: Optional[str]) -> str:
    return " ".join(str(p) for p in parts if p).lower()


@lru_cache(maxsize=None)
def _keyword_pattern(keyword: str) -> Pattern[str]:
    # Whole-word match; a trailing plural "s"/"es" is allowed
    return re.compile(r"(?<![a-z0-9])" + re.escape(keyword) + r"(?:s|es)?(?![a-z0-9])")


def _first_hit(text: str, keywords: Iterable[str]) -> Optional[str]:
    for keyword in keywords:
        if _keyword_pattern(keyword).search(text):
            return keyword
    return None


@dataclass(frozen=True)
class RelevanceFilter:
    """
    Keyword-based relevance classifier.

    Pollers that need a different vocabulary (e.g. caselaw excludes criminal
    matters, congress adds scheduling terms) build their own instance with
    ``extend()``; the matching rule stays the same.
    """

    include: Tuple[str, ...] = INCLUDE_KEYWORDS
    exclude: Tuple[str, ...] = EXCLUDE_KEYWORDS

    def extend(
        self,
        include: Iterable[str] = (),
        exclude: Iterable[str] = (),
    ) -> "RelevanceFilter":
        return RelevanceFilter(
            include=self.include + tuple(k.lower() for k in include if k.lower() not in self.include),
            exclude=self.exclude + tuple(k.lower() for k in exclude if k.lower() not in self.exclude),
        )

    def matches(self, title: Optional[str], description: Optional[str] = None) -> bool:
        text = _normalize(title, description)
        if not text:
            return False
        if _first_hit(text, self.exclude) is not None:
            return False
        return _first_hit(text, self.include) is not None

    def explain(self, title: Optional[str], description: Optional[str] = None) -> str:
        """Short reason string for debug logging."""
        text = _normalize(title, description)
        excluded = _first_hit(text, self.exclude)
        if excluded:
            return f"excluded by '{excluded}'"
        included = _first_hit(text, self.include)
        if included:
            return f"included by '{included}'"
        return "no include keyword"


DEFAULT_FILTER = RelevanceFilter()


def is_relevant(title: Optional[str], description: Optional[str] = None) -> bool:
    """Apply the default relevance filter."""
    return DEFAULT_FILTER.matches(title, description)


def infer_products(*texts: Optional[str]) -> FrozenSet[str]:
    """
    Infer product-category tags from any number of text fragments.

    Returns:
        Frozen set of category names from PRODUCT_KEYWORDS (possibly empty)
    """
    text = _normalize(*texts)
    if not text:
        return frozenset()
    return frozenset(
        category
        for category, keywords in PRODUCT_KEYWORDS.items()
        if _first_hit(text, keywords) is not None
    )


def sorted_products(*texts: Optional[str]) -> List[str]:
    """infer_products() as a sorted list, for JSON metadata."""
    return sorted(infer_products(*texts))
