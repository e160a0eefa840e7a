"""
Community Score Source
======================

Single-site variant of the search agent that only fills the community
score and review count.
"""

from __future__ import annotations

import logging

from wine_value.config import CommunityConfig
from wine_value.core.enums import DataProvenance
from wine_value.core.schema import EnrichmentPayload, WineRecord
from wine_value.enrichment.normalizer import build_search_name
from wine_value.enrichment.sources.base import EnrichmentSource, payload_from_answer
from wine_value.services.ai.client import AgentClient
from wine_value.services.ai.prompts import COMMUNITY_CONTINUE_PROMPT, build_community_prompt

logger = logging.getLogger(__name__)

COMMUNITY_FIELDS = ("community_score", "community_review_count")


class CommunityScoreSource(EnrichmentSource):
    """
    Community score lookups restricted to one ratings site.

    Not throttled by the search gate; it runs alongside the price lookups.
    """

    name = "community"

    def __init__(self, agent: AgentClient, config: CommunityConfig) -> None:
        self.agent = agent
        self.config = config

    async def lookup_score(
        self,
        name: str,
        producer: str,
        vintage: int | None,
    ) -> EnrichmentPayload:
        """
        Find the community score for a wine.

        Args:
            name: Wine name
            producer: Producer name
            vintage: Vintage year, or None for non-vintage

        Returns:
            Payload with at most community_score and community_review_count set
        """
        search_name = build_search_name(name, producer)
        try:
            result = await self.agent.run(
                build_community_prompt(search_name, vintage, self.config.site),
                max_searches=self.config.max_searches,
                allowed_domains=[self.config.site],
                max_tokens=self.config.max_tokens,
                timeout=self.config.timeout,
                max_continuations=self.config.max_continuations,
                continuation_prompt=COMMUNITY_CONTINUE_PROMPT,
            )
        except Exception as e:
            logger.warning(f"Community lookup failed for '{name}': {e}")
            return EnrichmentPayload()

        if result.error_message:
            logger.warning(f"Community lookup failed for '{name}': {result.error_message}")
            return EnrichmentPayload()

        return payload_from_answer(result.json_answer(), DataProvenance.WEB_SEARCH, COMMUNITY_FIELDS)

    async def lookup(self, wine: WineRecord, currency: str) -> EnrichmentPayload:
        return await self.lookup_score(wine.name, wine.producer, wine.vintage)
