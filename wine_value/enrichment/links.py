"""Verification links a user can follow to check enrichment data."""

import re
from urllib.parse import quote, quote_plus

from wine_value.core.schema import VerificationLinks, WineRecord
from wine_value.enrichment.normalizer import build_search_name

PRICE_SITE = "https://www.wine-searcher.com"
COMMUNITY_SITE = "https://www.cellartracker.com"

# Wine-Searcher regional paths, keyed by currency
COUNTRY_PATHS = {
    "GBP": "/uk",
    "EUR": "/europe",
    "AUD": "/australia",
    "CAD": "/canada",
    "CHF": "/switzerland",
}

_APOSTROPHES = re.compile(r"['’]")
_NON_WORD = re.compile(r"[^\w\s]")


def price_search_terms(wine: WineRecord) -> str:
    """Search terms in Wine-Searcher's path format: lower-case, '+'-joined."""
    text = _APOSTROPHES.sub("", build_search_name(wine.name, wine.producer))
    text = _NON_WORD.sub(" ", text)
    return "+".join(quote(word) for word in text.lower().split())


def build_price_url(wine: WineRecord, currency: str) -> str:
    """
    Build the Wine-Searcher "find" URL for a wine.

    Args:
        wine: The wine record
        currency: Session currency code, which picks the regional path

    Returns:
        URL such as https://www.wine-searcher.com/find/chateau+margaux/2015/uk
    """
    vintage = f"/{wine.vintage}" if wine.vintage is not None else ""
    country = COUNTRY_PATHS.get(currency.upper(), "/usa")
    return f"{PRICE_SITE}/find/{price_search_terms(wine)}{vintage}{country}"


def build_community_url(wine: WineRecord) -> str:
    """Build the CellarTracker search URL for a wine."""
    query = build_search_name(wine.name, wine.producer)
    if wine.vintage is not None:
        query = f"{query} {wine.vintage}"
    return f"{COMMUNITY_SITE}/list.html?szSearch={quote_plus(query)}"


def build_verification_links(wine: WineRecord, currency: str) -> VerificationLinks:
    """Build both verification links for a wine."""
    return VerificationLinks(
        price_source_url=build_price_url(wine, currency),
        community_source_url=build_community_url(wine),
    )
