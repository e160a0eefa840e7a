"""Tests for the per-wine lookup orchestrator."""

import pytest

from wine_value.core.enums import DataProvenance
from wine_value.core.schema import EnrichmentPayload, WineRecord
from wine_value.enrichment.cache import ResultCache
from wine_value.enrichment.orchestrator import LookupOrchestrator, combine_payloads
from wine_value.enrichment.sources.base import EnrichmentSource


class FakeSource(EnrichmentSource):
    """Source returning a fixed payload (or raising) and counting calls."""

    def __init__(self, name: str, payload: EnrichmentPayload | Exception) -> None:
        self.name = name
        self.payload = payload
        self.calls = 0

    async def lookup(self, wine: WineRecord, currency: str) -> EnrichmentPayload:
        self.calls += 1
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


API_HIT = EnrichmentPayload(
    retail_price_avg=300, retail_price_min=250, critic_score=96, data_provenance=DataProvenance.API
)
SEARCH_HIT = EnrichmentPayload(
    retail_price_avg=310,
    critic_score=95,
    community_score=90,
    community_review_count=50,
    data_provenance=DataProvenance.WEB_SEARCH,
)
COMMUNITY_HIT = EnrichmentPayload(
    community_score=92, community_review_count=140, data_provenance=DataProvenance.WEB_SEARCH
)
EMPTY = EnrichmentPayload()

MARGAUX = WineRecord(name="Chateau Margaux", vintage=2015, menu_price=450)


def make_orchestrator(
    price: EnrichmentPayload | Exception,
    search: EnrichmentPayload | Exception,
    community: EnrichmentPayload | Exception,
) -> tuple[LookupOrchestrator, FakeSource, FakeSource, FakeSource]:
    price_source = FakeSource("price_api", price)
    search_source = FakeSource("web_search", search)
    community_source = FakeSource("community", community)
    orchestrator = LookupOrchestrator(price_source, search_source, community_source, ResultCache())
    return orchestrator, price_source, search_source, community_source


class TestLookupOrchestrator:
    """Tests for LookupOrchestrator.enrich."""

    @pytest.mark.asyncio
    async def test_api_with_community_is_mixed(self) -> None:
        """Test API price/critic plus agent community score."""
        orchestrator, _, search, _ = make_orchestrator(API_HIT, SEARCH_HIT, COMMUNITY_HIT)

        payload = await orchestrator.enrich(MARGAUX, "GBP")

        assert payload.retail_price_avg == 300
        assert payload.critic_score == 96
        assert payload.community_score == 92
        assert payload.data_provenance == DataProvenance.MIXED
        assert search.calls == 0

    @pytest.mark.asyncio
    async def test_api_only(self) -> None:
        """Test API data without a community score is api provenance."""
        orchestrator, _, search, _ = make_orchestrator(API_HIT, SEARCH_HIT, EMPTY)

        payload = await orchestrator.enrich(MARGAUX, "GBP")

        assert payload.data_provenance == DataProvenance.API
        assert payload.community_score is None
        assert search.calls == 0

    @pytest.mark.asyncio
    async def test_no_match_falls_back_to_search(self) -> None:
        """Test the search agent is used when the API finds nothing."""
        orchestrator, _, search, _ = make_orchestrator(EMPTY, SEARCH_HIT, COMMUNITY_HIT)

        payload = await orchestrator.enrich(MARGAUX, "GBP")

        assert search.calls == 1
        assert payload.retail_price_avg == 310
        assert payload.critic_score == 95
        # The dedicated community lookup wins over the search agent's
        assert payload.community_score == 92
        assert payload.community_review_count == 140
        assert payload.data_provenance == DataProvenance.WEB_SEARCH

    @pytest.mark.asyncio
    async def test_search_community_used_when_community_agent_empty(self) -> None:
        """Test the search agent's community fields fill the gap."""
        orchestrator, *_ = make_orchestrator(EMPTY, SEARCH_HIT, EMPTY)

        payload = await orchestrator.enrich(MARGAUX, "GBP")

        assert payload.community_score == 90
        assert payload.community_review_count == 50

    @pytest.mark.asyncio
    async def test_source_failures_are_contained(self) -> None:
        """Test raising sources degrade to empty results."""
        orchestrator, *_ = make_orchestrator(RuntimeError("api down"), SEARCH_HIT, RuntimeError("boom"))

        payload = await orchestrator.enrich(MARGAUX, "GBP")

        assert payload.retail_price_avg == 310
        assert payload.community_score == 90
        assert payload.data_provenance == DataProvenance.WEB_SEARCH

    @pytest.mark.asyncio
    async def test_nothing_found(self) -> None:
        """Test all-empty sources give provenance none with links."""
        orchestrator, *_ = make_orchestrator(EMPTY, EMPTY, EMPTY)

        payload = await orchestrator.enrich(MARGAUX, "GBP")

        assert payload.is_empty
        assert payload.data_provenance == DataProvenance.NONE
        assert payload.verification_links.price_source_url == (
            "https://www.wine-searcher.com/find/chateau+margaux/2015/uk"
        )
        assert payload.verification_links.community_source_url == (
            "https://www.cellartracker.com/list.html?szSearch=Chateau+Margaux+2015"
        )

    @pytest.mark.asyncio
    async def test_cache_hit_skips_sources(self) -> None:
        """Test a second lookup of the same wine is served from the cache."""
        orchestrator, price, search, community = make_orchestrator(API_HIT, SEARCH_HIT, COMMUNITY_HIT)

        first = await orchestrator.enrich(MARGAUX, "GBP")
        second = await orchestrator.enrich(MARGAUX, "GBP")

        assert first == second
        assert price.calls == 1
        assert community.calls == 1

    @pytest.mark.asyncio
    async def test_missing_sources(self) -> None:
        """Test an orchestrator without agent sources still works."""
        price = FakeSource("price_api", API_HIT)
        orchestrator = LookupOrchestrator(price, None, None, ResultCache())

        payload = await orchestrator.enrich(MARGAUX, "USD")

        assert payload.retail_price_avg == 300
        assert payload.data_provenance == DataProvenance.API


class TestCombinePayloads:
    """Tests for combine_payloads."""

    def test_community_only_from_agent(self) -> None:
        """Test a community score alone is web_search provenance."""
        payload = combine_payloads(EMPTY, COMMUNITY_HIT, primary_is_structured=False)
        assert payload.community_score == 92
        assert payload.data_provenance == DataProvenance.WEB_SEARCH
