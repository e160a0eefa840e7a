"""
Lookup Orchestrator
===================

Per-wine lookup strategy: the structured price API and the community
agent run concurrently, the search agent fills in when the API has no
price or critic score, and the merged result is cached.
"""

from __future__ import annotations

import asyncio
import logging

from wine_value.core.enums import DataProvenance
from wine_value.core.schema import EnrichmentPayload, WineRecord
from wine_value.enrichment.cache import ResultCache
from wine_value.enrichment.links import build_verification_links
from wine_value.enrichment.sources.base import EnrichmentSource

logger = logging.getLogger(__name__)


async def _contained(source: EnrichmentSource | None, wine: WineRecord, currency: str) -> EnrichmentPayload:
    """Run a source, turning any failure into an empty payload."""
    if source is None:
        return EnrichmentPayload()
    try:
        return await source.lookup(wine, currency)
    except Exception as e:
        logger.warning(f"{source.name} lookup raised for '{wine.name}': {e}")
        return EnrichmentPayload()


def combine_payloads(
    primary: EnrichmentPayload,
    community: EnrichmentPayload,
    primary_is_structured: bool,
) -> EnrichmentPayload:
    """
    Merge the price/critic result with the community result.

    Args:
        primary: Payload from the structured source or the search agent
        community: Payload from the community agent
        primary_is_structured: True when ``primary`` came from the price API

    Returns:
        The merged payload with provenance set
    """
    use_community = community.has_community
    values = {
        "retail_price_avg": primary.retail_price_avg,
        "retail_price_min": primary.retail_price_min,
        "critic_score": primary.critic_score,
        "community_score": community.community_score if use_community else primary.community_score,
        "community_review_count": (
            community.community_review_count if use_community else primary.community_review_count
        ),
    }
    merged = EnrichmentPayload.model_validate(values)

    if merged.is_empty:
        provenance = DataProvenance.NONE
    elif primary_is_structured:
        provenance = DataProvenance.MIXED if use_community else DataProvenance.API
    else:
        provenance = DataProvenance.WEB_SEARCH
    return merged.model_copy(update={"data_provenance": provenance})


class LookupOrchestrator:
    """
    Enrich one wine from every configured source.

    ``enrich`` never raises: each source's failure is contained and the
    worst case is an empty payload with provenance ``none``.
    """

    def __init__(
        self,
        price_source: EnrichmentSource | None,
        search_source: EnrichmentSource | None,
        community_source: EnrichmentSource | None,
        cache: ResultCache,
    ) -> None:
        self.price_source = price_source
        self.search_source = search_source
        self.community_source = community_source
        self.cache = cache

    async def enrich(self, wine: WineRecord, currency: str) -> EnrichmentPayload:
        """
        Look up price and ratings for one wine.

        Args:
            wine: The wine to enrich
            currency: Session currency code

        Returns:
            The merged payload, with verification links
        """
        cached = self.cache.get(wine, currency)
        if cached is not None:
            logger.info(f"Cache hit for '{wine.name}' ({wine.vintage or 'NV'})")
            return cached

        structured, community = await asyncio.gather(
            _contained(self.price_source, wine, currency),
            _contained(self.community_source, wine, currency),
        )

        if structured.has_price_or_critic:
            primary = structured
            primary_is_structured = True
        else:
            logger.info(f"Falling back to web search for '{wine.name}'")
            primary = await _contained(self.search_source, wine, currency)
            primary_is_structured = False

        payload = combine_payloads(primary, community, primary_is_structured)
        payload = payload.model_copy(
            update={"verification_links": build_verification_links(wine, currency)}
        )

        if payload.is_empty:
            logger.warning(f"No price or rating data found for '{wine.name}'")

        self.cache.set(wine, currency, payload)
        return payload
