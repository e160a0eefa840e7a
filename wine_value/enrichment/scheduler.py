"""
Wave Scheduler
==============

Runs the lookups of a session in sequential waves of concurrent lookups,
publishing a new session snapshot after every wave, followed by one retry
pass over the wines that still have no value score.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable

from wine_value.core.enums import DataProvenance, LookupStatus, SessionStatus
from wine_value.core.schema import EnrichmentPayload, Session, WineValueResult
from wine_value.enrichment.cache import ResultCache
from wine_value.enrichment.orchestrator import LookupOrchestrator

logger = logging.getLogger(__name__)

PAYLOAD_FIELDS = (
    "retail_price_avg",
    "retail_price_min",
    "critic_score",
    "community_score",
    "community_review_count",
)

Publisher = Callable[[Session], None]


@dataclass
class LookupReport:
    """Summary of one lookup run."""

    session_id: str
    status: SessionStatus = SessionStatus.COMPLETE
    counts: dict[str, int] = field(default_factory=dict)
    waves: int = 0
    retried: int = 0
    duration_seconds: float = 0.0
    error: str | None = None

    @property
    def total(self) -> int:
        """Number of wines counted."""
        return sum(self.counts.values())


def merge_provenance(current: DataProvenance, new: DataProvenance) -> DataProvenance:
    """Combine the provenance of existing data with that of newly merged data."""
    if current == DataProvenance.NONE:
        return new
    if new == DataProvenance.NONE or new == current:
        return current
    return DataProvenance.MIXED


def merge_payload(wine: WineValueResult, payload: EnrichmentPayload) -> WineValueResult:
    """
    Merge a payload into a wine, filling only fields that are still null.

    Derived fields (markup, value score, lookup status) are recomputed by
    validation of the new record.

    Args:
        wine: The current wine result
        payload: Newly looked-up data

    Returns:
        A new WineValueResult
    """
    data = wine.model_dump()
    filled = False
    for name in PAYLOAD_FIELDS:
        new_value = getattr(payload, name)
        if data[name] is None and new_value is not None:
            data[name] = new_value
            filled = True

    links = data["verification_links"]
    new_links = payload.verification_links
    links["price_source_url"] = links["price_source_url"] or new_links.price_source_url
    links["community_source_url"] = links["community_source_url"] or new_links.community_source_url

    if filled:
        data["data_provenance"] = merge_provenance(wine.data_provenance, payload.data_provenance)
    # Any non-pending status makes validation classify from the data fields
    data["lookup_status"] = LookupStatus.NOT_FOUND
    return WineValueResult.model_validate(data)


def partition(indices: list[int], wave_size: int) -> list[list[int]]:
    """Split wine indices into consecutive waves of at most ``wave_size``."""
    return [indices[i:i + wave_size] for i in range(0, len(indices), wave_size)]


class WaveScheduler:
    """
    Drive the lookups of one session.

    The scheduler is the single writer of the session while it runs: every
    change is published as a whole new snapshot through ``publish``.
    """

    def __init__(
        self,
        orchestrator: LookupOrchestrator,
        cache: ResultCache,
        wave_size: int = 5,
        retry_pass: bool = True,
    ) -> None:
        if wave_size < 1:
            raise ValueError(f"wave_size must be at least 1, got {wave_size}")
        self.orchestrator = orchestrator
        self.cache = cache
        self.wave_size = wave_size
        self.retry_pass = retry_pass

    async def _run_waves(
        self,
        session: Session,
        indices: list[int],
        publish: Publisher,
        report: LookupReport,
        label: str,
    ) -> Session:
        waves = partition(indices, self.wave_size)
        for number, wave in enumerate(waves, start=1):
            logger.info(
                f"Session {session.id}: {label} wave {number}/{len(waves)} ({len(wave)} wines)"
            )
            payloads = await asyncio.gather(
                *(self.orchestrator.enrich(session.wines[i].to_record(), session.currency) for i in wave)
            )
            wines = list(session.wines)
            for index, payload in zip(wave, payloads):
                wines[index] = merge_payload(wines[index], payload)
            session = session.evolve(wines=wines)
            publish(session)
            report.waves += 1
        return session

    async def run(self, session: Session, publish: Publisher) -> LookupReport:
        """
        Enrich every pending wine of a session.

        Args:
            session: Snapshot in status ``looking_up``
            publish: Callback storing each new snapshot

        Returns:
            LookupReport for the run; an aborted run has status ``error``
        """
        started = time.monotonic()
        report = LookupReport(session_id=session.id)
        indices = session.pending_indices()
        logger.info(f"Session {session.id}: looking up {len(indices)} wines")

        try:
            session = await self._run_waves(session, indices, publish, report, "lookup")

            missing = [i for i in indices if session.wines[i].value_score is None]
            if self.retry_pass and missing:
                logger.info(f"Session {session.id}: retrying {len(missing)} wines without a value score")
                for i in missing:
                    self.cache.invalidate(session.wines[i].to_record(), session.currency)
                session = await self._run_waves(session, missing, publish, report, "retry")
                report.retried = len(missing)

            session = session.evolve(status=SessionStatus.COMPLETE, error=None)
            publish(session)
        except Exception as e:
            logger.error(f"Lookup aborted for session {session.id}: {e}")
            session = session.evolve(status=SessionStatus.ERROR, error=str(e))
            publish(session)
            report.status = SessionStatus.ERROR
            report.error = str(e)

        counts = Counter(session.wines[i].lookup_status.value for i in indices)
        report.counts = dict(counts)
        report.duration_seconds = time.monotonic() - started
        logger.info(
            f"Session {session.id}: lookup {report.status.value} in {report.duration_seconds:.1f}s "
            f"({report.waves} waves, {report.retried} retried, {report.counts})"
        )
        return report
