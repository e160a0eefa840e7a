"""Prompt templates for wine list parsing and price/rating lookups."""

PROMPT_VERSION = "2.0"

CURRENCY_LABELS = {
    "USD": "US Dollars (USD/$)",
    "GBP": "British Pounds (GBP/£)",
    "EUR": "Euros (EUR/€)",
    "AUD": "Australian Dollars (AUD/A$)",
    "CAD": "Canadian Dollars (CAD/C$)",
    "CHF": "Swiss Francs (CHF)",
}

CONVERSION_NOTES = {
    "GBP": "If prices are in USD, convert to GBP (1 USD ≈ 0.79 GBP). If in EUR, convert (1 EUR ≈ 0.84 GBP).",
    "EUR": "If prices are in USD, convert to EUR (1 USD ≈ 0.92 EUR). If in GBP, convert (1 GBP ≈ 1.19 EUR).",
    "AUD": "If prices are in USD, convert to AUD (1 USD ≈ 1.52 AUD).",
    "CAD": "If prices are in USD, convert to CAD (1 USD ≈ 1.36 CAD).",
    "CHF": "If prices are in EUR, convert to CHF (1 EUR ≈ 0.95 CHF). If in USD, convert (1 USD ≈ 0.88 CHF).",
}

# Approximate requester location so search results come back in the session currency
USER_LOCATIONS = {
    "USD": {"country": "US", "region": "New York", "city": "New York"},
    "GBP": {"country": "GB", "region": "England", "city": "London"},
    "EUR": {"country": "FR", "region": "Ile-de-France", "city": "Paris"},
    "AUD": {"country": "AU", "region": "New South Wales", "city": "Sydney"},
    "CAD": {"country": "CA", "region": "Ontario", "city": "Toronto"},
    "CHF": {"country": "CH", "region": "Zurich", "city": "Zurich"},
}

PRICE_CONTINUE_PROMPT = "Please continue and provide the final JSON result now."
COMMUNITY_CONTINUE_PROMPT = "Please provide the JSON result now."


def currency_label(currency: str) -> str:
    """Human-readable currency label, defaulting to US Dollars."""
    return CURRENCY_LABELS.get(currency.upper(), CURRENCY_LABELS["USD"])


def user_location_for(currency: str) -> dict[str, str]:
    """Approximate requester location matching a currency."""
    return USER_LOCATIONS.get(currency.upper(), USER_LOCATIONS["USD"])


PRICE_SEARCH_PROMPT_TEMPLATE = """Find retail price and critic ratings for this wine using web search.

Wine: "{wine_name}" {vintage}
Producer: "{producer}"

VINTAGE VERIFICATION (CRITICAL):
- You MUST verify that any data you extract is for vintage {vintage} specifically.
- Wine-Searcher pages show data for MULTIPLE vintages. Make sure you're looking at the correct one.
- If you cannot confirm the vintage matches, return null for that field. Never substitute another vintage.

Search Strategy:
1. Search for: {search_name} {vintage} wine-searcher.com price
   - Look for "Avg Price (ex-tax)": this is the retailPriceAvg
   - Look for the lowest retail price: this is retailPriceMin
   - ONLY use the "Avg Price (ex-tax)" value, NOT auction or restaurant prices
   - Look for the aggregated critic score shown as "XX / 100"
   - Make sure it's the AGGREGATED critic score, not a single reviewer's score
{fetch_section}
2. Search for: {search_name} {vintage} cellartracker community score
   - CellarTracker scores appear as "CT XX" out of 100

3. If the above don't return results, try: "{search_name} {vintage} wine price critic score"

BEFORE returning JSON, verify:
- Is the vintage correct? (must be {vintage})
- Is the price the AVERAGE retail price ex-tax, not auction or restaurant?
- Is the critic score the aggregated score, not a single review?

{conversion_note}
Prices should be in {currency_label}. Round to the nearest whole number.

Return ONLY a JSON object, no explanation:
{{"retailPriceAvg": <number or null>, "retailPriceMin": <number or null>, "criticScore": <number 0-100 or null>, "communityScore": <number 0-100 or null>, "communityReviewCount": <number or null>}}"""


FETCH_SECTION = """   - You may fetch the Wine-Searcher page directly: {price_url}
   - In the page, the JSON-LD structured data lists "CriticReview" entries and a CellarTracker review
"""


COMMUNITY_PROMPT_TEMPLATE = """Find the {site_name} community score for this wine.

Wine: "{search_name}" {vintage}

INSTRUCTIONS:
1. Search for: site:{site} "{search_name}" {vintage}
2. Look ONLY at {site_name} results.
3. The community score appears as "CT XX" (a number out of 100) on {site_name} pages.
4. The review count appears as "X reviews" or "X community tasting notes".

CRITICAL RULES:
- ONLY return data from {site} results.
- The vintage MUST match exactly: {vintage}. If you only see scores for a different vintage, return null.
- Do NOT look at Wine-Searcher, Vivino, or any other site.
- Do NOT return any price data or critic scores.

Return ONLY a JSON object, no explanation:
{{"communityScore": <number 0-100 or null>, "communityReviewCount": <number or null>}}"""


DOCUMENT_PARSE_PROMPT = """You are a wine expert analyzing a restaurant wine list.

First, determine the currency used on this menu (USD $, GBP £, EUR €, etc.).

Then extract every wine from this menu image/PDF. For each wine, extract:
- name: the full wine name as it would be searched on wine-searcher.com (e.g., "Chateau Margaux Premier Grand Cru Classe"). Include the producer name as part of the search-friendly name.
- producer: the winery or producer name
- vintage: the year as a number, or null if non-vintage (NV)
- region: the wine region if listed or inferable
- grapeVariety: the grape variety if listed or inferable
- restaurantPrice: the price as a number (no currency symbol). If by-the-glass and by-the-bottle are both listed, use the bottle price.
- rawText: the exact text as printed on the menu for this wine
- confidence: your confidence in the extraction accuracy (0.0 to 1.0)

Be thorough -- extract ALL wines on the list. If a section header indicates a category (e.g., "Red Wines - Bordeaux"), use that context to fill in region/grape fields.

Return ONLY a JSON object with:
- "currency": the currency code (e.g., "GBP", "USD", "EUR")
- "wines": array of wine objects

No other text."""


def build_price_search_prompt(
    wine_name: str,
    producer: str,
    search_name: str,
    vintage: int | None,
    currency: str,
    price_url: str | None = None,
) -> str:
    """
    Build the price and rating search prompt.

    Args:
        wine_name: Wine name as printed on the list.
        producer: Expanded producer name.
        search_name: Normalized search name.
        vintage: Vintage year, or None for non-vintage.
        currency: Session currency code.
        price_url: Wine-Searcher page to fetch directly (enables fetch hints).

    Returns:
        The formatted prompt string.
    """
    return PRICE_SEARCH_PROMPT_TEMPLATE.format(
        wine_name=wine_name,
        producer=producer,
        search_name=search_name,
        vintage=vintage if vintage is not None else "NV",
        fetch_section=FETCH_SECTION.format(price_url=price_url) if price_url else "",
        conversion_note=CONVERSION_NOTES.get(currency.upper(), ""),
        currency_label=currency_label(currency),
    )


def build_community_prompt(
    search_name: str,
    vintage: int | None,
    site: str = "cellartracker.com",
) -> str:
    """
    Build the community score prompt, restricted to one site.

    Args:
        search_name: Normalized search name.
        vintage: Vintage year, or None for non-vintage.
        site: The ratings site domain.

    Returns:
        The formatted prompt string.
    """
    site_name = "CellarTracker" if site == "cellartracker.com" else site
    return COMMUNITY_PROMPT_TEMPLATE.format(
        search_name=search_name,
        vintage=vintage if vintage is not None else "NV",
        site=site,
        site_name=site_name,
    )
