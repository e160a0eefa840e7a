"""Price and rating lookup strategies."""

from wine_value.enrichment.sources.base import EnrichmentSource, payload_from_answer
from wine_value.enrichment.sources.community import CommunityScoreSource
from wine_value.enrichment.sources.price_api import (
    PriceApiResult,
    PriceApiSource,
    parse_api_response,
)
from wine_value.enrichment.sources.web_search import WebSearchSource

__all__ = [
    "CommunityScoreSource",
    "EnrichmentSource",
    "PriceApiResult",
    "PriceApiSource",
    "WebSearchSource",
    "parse_api_response",
    "payload_from_answer",
]
