"""
Unstructured Search Source
==========================

Asks a tool-using language model to find retail price and ratings on the
web and salvages its JSON answer.
"""

from __future__ import annotations

import logging

from wine_value.config import SearchAgentConfig
from wine_value.core.enums import DataProvenance
from wine_value.core.schema import EnrichmentPayload, WineRecord
from wine_value.enrichment.links import build_price_url
from wine_value.enrichment.normalizer import build_search_name, normalize_wine_name
from wine_value.enrichment.rate_limit import IntervalGate
from wine_value.enrichment.sources.base import EnrichmentSource, payload_from_answer
from wine_value.services.ai.client import AgentClient
from wine_value.services.ai.prompts import (
    PRICE_CONTINUE_PROMPT,
    build_price_search_prompt,
    user_location_for,
)

logger = logging.getLogger(__name__)


class WebSearchSource(EnrichmentSource):
    """Price, critic and community lookups through the search agent."""

    name = "web_search"

    def __init__(
        self,
        agent: AgentClient,
        config: SearchAgentConfig,
        gate: IntervalGate | None = None,
    ) -> None:
        self.agent = agent
        self.config = config
        self.gate = gate or IntervalGate(config.requests_per_second)

    def build_prompt(self, wine: WineRecord, currency: str) -> str:
        """Build the search prompt for a wine."""
        price_url = build_price_url(wine, currency) if self.config.enable_fetch else None
        return build_price_search_prompt(
            wine_name=wine.name,
            producer=normalize_wine_name(wine.producer),
            search_name=build_search_name(wine.name, wine.producer),
            vintage=wine.vintage,
            currency=currency,
            price_url=price_url,
        )

    async def lookup(self, wine: WineRecord, currency: str) -> EnrichmentPayload:
        try:
            await self.gate.wait_for_slot()
            result = await self.agent.run(
                self.build_prompt(wine, currency),
                max_searches=self.config.max_searches,
                max_fetches=self.config.max_fetches if self.config.enable_fetch else 0,
                allowed_domains=self.config.allowed_domains if self.config.enable_fetch else None,
                user_location=user_location_for(currency),
                max_tokens=self.config.max_tokens,
                timeout=self.config.timeout,
                max_continuations=self.config.max_continuations,
                continuation_prompt=PRICE_CONTINUE_PROMPT,
            )
        except Exception as e:
            logger.warning(f"Web search failed for '{wine.name}': {e}")
            return EnrichmentPayload()

        if result.error_message:
            logger.warning(f"Web search failed for '{wine.name}': {result.error_message}")
            return EnrichmentPayload()

        answer = result.json_answer()
        if answer is None:
            state = "finished" if result.completed else f"still {result.stop_reason}"
            logger.warning(
                f"No JSON answer from web search for '{wine.name}' "
                f"({state} after {result.continuations} continuations): {result.final_text[:200]!r}"
            )
            return EnrichmentPayload()

        return payload_from_answer(answer, DataProvenance.WEB_SEARCH)
