"""Tests for the wave scheduler."""

import asyncio
from collections import defaultdict
from typing import Any

import pytest

from wine_value.config import SearchAgentConfig
from wine_value.core.enums import DataProvenance, LookupStatus, SessionStatus
from wine_value.core.schema import (
    EnrichmentPayload,
    Session,
    VerificationLinks,
    WineRecord,
    WineValueResult,
)
from wine_value.enrichment.cache import ResultCache
from wine_value.enrichment.orchestrator import LookupOrchestrator
from wine_value.enrichment.scheduler import (
    WaveScheduler,
    merge_payload,
    merge_provenance,
    partition,
)
from wine_value.enrichment.sources.web_search import WebSearchSource
from wine_value.services.ai.client import AgentClient, AgentResult, AIProvider

FOUND = EnrichmentPayload(
    retail_price_avg=300, critic_score=96, data_provenance=DataProvenance.API
)
EMPTY = EnrichmentPayload()


class FakeOrchestrator:
    """Returns scripted payloads per wine name, one per call."""

    def __init__(self, script: dict[str, list[EnrichmentPayload]], default: EnrichmentPayload = FOUND):
        self.script = script
        self.default = default
        self.calls: dict[str, int] = defaultdict(int)
        self.in_flight = 0
        self.max_in_flight = 0
        self.fail_on: str | None = None

    async def enrich(self, wine: WineRecord, currency: str) -> EnrichmentPayload:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if wine.name == self.fail_on:
                raise RuntimeError(f"lookup exploded for {wine.name}")
            attempt = self.calls[wine.name]
            self.calls[wine.name] += 1
            payloads = self.script.get(wine.name)
            if payloads is None:
                return self.default
            return payloads[min(attempt, len(payloads) - 1)]
        finally:
            self.in_flight -= 1


class SpyCache(ResultCache):
    """Cache recording invalidated wine names."""

    def __init__(self) -> None:
        super().__init__()
        self.invalidated: list[str] = []

    def invalidate(self, wine: WineRecord, currency: str) -> bool:
        self.invalidated.append(wine.name)
        return super().invalidate(wine, currency)


def make_session(*names: str) -> Session:
    wines = [WineValueResult(name=name, menu_price=450) for name in names]
    return Session(currency="GBP", status=SessionStatus.LOOKING_UP, wines=wines)


class TestPartition:
    """Tests for partition."""

    def test_waves(self) -> None:
        """Test indices are split into consecutive waves."""
        assert partition([0, 1, 2, 3, 4, 5, 6], 3) == [[0, 1, 2], [3, 4, 5], [6]]
        assert partition([], 5) == []


class TestMerge:
    """Tests for merge_payload and merge_provenance."""

    def test_fills_nulls_and_recomputes(self) -> None:
        """Test merging computes markup, value score and status."""
        wine = WineValueResult(name="Chateau Margaux", menu_price=450)
        payload = EnrichmentPayload(
            retail_price_avg=300,
            critic_score=96,
            community_score=92,
            verification_links=VerificationLinks(price_source_url="https://ws.test"),
            data_provenance=DataProvenance.MIXED,
        )

        merged = merge_payload(wine, payload)

        assert merged.markup_percent == 50
        assert merged.value_score == 62
        assert merged.lookup_status == LookupStatus.FOUND
        assert merged.data_provenance == DataProvenance.MIXED
        assert merged.verification_links.price_source_url == "https://ws.test"

    def test_existing_values_kept(self) -> None:
        """Test populated fields are never overwritten."""
        wine = merge_payload(
            WineValueResult(name="Opus One", menu_price=600),
            EnrichmentPayload(retail_price_avg=400, data_provenance=DataProvenance.API),
        )
        merged = merge_payload(
            wine,
            EnrichmentPayload(
                retail_price_avg=999, critic_score=95, data_provenance=DataProvenance.WEB_SEARCH
            ),
        )
        assert merged.retail_price_avg == 400
        assert merged.critic_score == 95
        assert merged.data_provenance == DataProvenance.MIXED

    def test_empty_payload_is_not_found(self) -> None:
        """Test merging nothing classifies the wine as not_found."""
        merged = merge_payload(WineValueResult(name="Mystery", menu_price=50), EMPTY)
        assert merged.lookup_status == LookupStatus.NOT_FOUND
        assert merged.data_provenance == DataProvenance.NONE

    def test_merge_provenance(self) -> None:
        """Test provenance combination rules."""
        assert merge_provenance(DataProvenance.NONE, DataProvenance.API) == DataProvenance.API
        assert merge_provenance(DataProvenance.API, DataProvenance.NONE) == DataProvenance.API
        assert merge_provenance(DataProvenance.API, DataProvenance.API) == DataProvenance.API
        assert merge_provenance(DataProvenance.API, DataProvenance.WEB_SEARCH) == DataProvenance.MIXED


class TestWaveScheduler:
    """Tests for WaveScheduler.run."""

    def test_rejects_zero_wave_size(self) -> None:
        """Test wave size must be positive."""
        with pytest.raises(ValueError):
            WaveScheduler(FakeOrchestrator({}), ResultCache(), wave_size=0)

    @pytest.mark.asyncio
    async def test_publishes_after_each_wave(self) -> None:
        """Test one snapshot per wave plus the final one."""
        orchestrator = FakeOrchestrator({})
        scheduler = WaveScheduler(orchestrator, ResultCache(), wave_size=3)
        published: list[Session] = []

        report = await scheduler.run(make_session(*"ABCDEFG"), published.append)

        assert len(published) == 4
        assert [s.status for s in published[:3]] == [SessionStatus.LOOKING_UP] * 3
        assert published[-1].status == SessionStatus.COMPLETE
        assert [len([w for w in s.wines if w.value_score is not None]) for s in published] == [3, 6, 7, 7]
        assert report.waves == 3
        assert report.counts == {"found": 7}
        assert report.retried == 0
        assert report.status == SessionStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_concurrency_bounded_by_wave_size(self) -> None:
        """Test lookups in a wave run concurrently, never more than the wave size."""
        orchestrator = FakeOrchestrator({})
        scheduler = WaveScheduler(orchestrator, ResultCache(), wave_size=4)

        await scheduler.run(make_session(*"ABCDEFGHIJ"), lambda s: None)

        assert orchestrator.max_in_flight == 4

    @pytest.mark.asyncio
    async def test_retry_pass(self) -> None:
        """Test wines without a value score are retried exactly once."""
        orchestrator = FakeOrchestrator(
            {
                "B": [EMPTY, FOUND],
                "C": [EMPTY, EMPTY, FOUND],
            }
        )
        cache = SpyCache()
        scheduler = WaveScheduler(orchestrator, cache, wave_size=5)
        published: list[Session] = []

        report = await scheduler.run(make_session("A", "B", "C"), published.append)

        assert dict(orchestrator.calls) == {"A": 1, "B": 2, "C": 2}
        assert cache.invalidated == ["B", "C"]
        assert report.retried == 2
        assert report.waves == 2

        final = published[-1]
        assert final.status == SessionStatus.COMPLETE
        assert [w.lookup_status for w in final.wines] == [
            LookupStatus.FOUND,
            LookupStatus.FOUND,
            LookupStatus.NOT_FOUND,
        ]
        assert report.counts == {"found": 2, "not_found": 1}

    @pytest.mark.asyncio
    async def test_retry_merges_fill_null_only(self) -> None:
        """Test the retry pass does not overwrite first-pass data."""
        partial = EnrichmentPayload(retail_price_avg=300, data_provenance=DataProvenance.API)
        second = EnrichmentPayload(
            retail_price_avg=500, critic_score=90, data_provenance=DataProvenance.WEB_SEARCH
        )
        orchestrator = FakeOrchestrator({"A": [partial, second]})
        published: list[Session] = []

        await WaveScheduler(orchestrator, ResultCache()).run(make_session("A"), published.append)

        wine = published[-1].wines[0]
        assert wine.retail_price_avg == 300
        assert wine.critic_score == 90
        assert wine.value_score == 60
        assert wine.data_provenance == DataProvenance.MIXED

    @pytest.mark.asyncio
    async def test_retry_disabled(self) -> None:
        """Test no retry pass when switched off."""
        orchestrator = FakeOrchestrator({"A": [EMPTY, FOUND]})
        scheduler = WaveScheduler(orchestrator, ResultCache(), retry_pass=False)

        report = await scheduler.run(make_session("A"), lambda s: None)

        assert orchestrator.calls["A"] == 1
        assert report.counts == {"not_found": 1}

    @pytest.mark.asyncio
    async def test_only_pending_wines(self) -> None:
        """Test wines that were already enriched are left alone."""
        session = make_session("A", "B")
        done = merge_payload(session.wines[0], FOUND)
        session = session.evolve(wines=[done, session.wines[1]])
        orchestrator = FakeOrchestrator({})
        published: list[Session] = []

        report = await WaveScheduler(orchestrator, ResultCache()).run(session, published.append)

        assert dict(orchestrator.calls) == {"B": 1}
        assert published[-1].wines[0] == done
        assert report.total == 1

    @pytest.mark.asyncio
    async def test_error_aborts_run(self) -> None:
        """Test an unexpected exception ends in error with earlier waves kept."""
        orchestrator = FakeOrchestrator({})
        orchestrator.fail_on = "C"
        published: list[Session] = []

        report = await WaveScheduler(orchestrator, ResultCache(), wave_size=2).run(
            make_session("A", "B", "C", "D"), published.append
        )

        final = published[-1]
        assert final.status == SessionStatus.ERROR
        assert final.error == "lookup exploded for C"
        assert [w.lookup_status for w in final.wines] == [
            LookupStatus.FOUND,
            LookupStatus.FOUND,
            LookupStatus.PENDING,
            LookupStatus.PENDING,
        ]
        assert report.status == SessionStatus.ERROR
        assert report.error == "lookup exploded for C"

    @pytest.mark.asyncio
    async def test_snapshots_are_consistent(self) -> None:
        """Test no published wine claims found without the data for it."""
        orchestrator = FakeOrchestrator(
            {
                "B": [EnrichmentPayload(community_score=88)],
                "C": [EnrichmentPayload(retail_price_avg=100)],
            }
        )
        published: list[Session] = []

        await WaveScheduler(orchestrator, ResultCache(), wave_size=1).run(
            make_session("A", "B", "C"), published.append
        )

        for snapshot in published:
            for wine in snapshot.wines:
                if wine.lookup_status == LookupStatus.FOUND:
                    assert wine.retail_price_avg is not None
                    assert wine.value_score is not None
                if wine.value_score is not None:
                    assert wine.lookup_status == LookupStatus.FOUND


class FixedAnswerAgent(AgentClient):
    """Agent always answering with the same text."""

    provider = AIProvider.ANTHROPIC
    model = "fake"

    def __init__(self, text: str) -> None:
        self.text = text

    async def run(self, prompt: str, **kwargs: Any) -> AgentResult:
        return AgentResult(text_blocks=[self.text], stop_reason="end_turn")


class TestNonFiniteAgentValues:
    """Tests that malformed agent numbers cannot abort a lookup run."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "answer",
        [
            '{"retailPriceAvg": NaN, "criticScore": 92}',
            '{"retailPriceAvg": 1e999, "criticScore": 92}',
            '{"retailPriceAvg": -Infinity, "criticScore": Infinity}',
        ],
    )
    async def test_session_completes(self, answer: str) -> None:
        """Test NaN and infinite values are dropped and the session completes."""
        cache = ResultCache()
        search = WebSearchSource(
            FixedAnswerAgent(answer), SearchAgentConfig(requests_per_second=1000.0)
        )
        orchestrator = LookupOrchestrator(None, search, None, cache)
        published: list[Session] = []

        report = await WaveScheduler(orchestrator, cache).run(
            make_session("Chateau Margaux", "Opus One"), published.append
        )

        final = published[-1]
        assert final.status == SessionStatus.COMPLETE
        assert report.error is None
        for wine in final.wines:
            assert wine.retail_price_avg is None
            assert wine.markup_percent is None
            assert wine.value_score is None
