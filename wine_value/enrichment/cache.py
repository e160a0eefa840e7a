"""
Result Cache Module
===================

Time-boxed, in-memory memoization of enrichment results, shared by every
lookup strategy.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from wine_value.core.schema import EnrichmentPayload, WineRecord
from wine_value.enrichment.normalizer import build_search_name

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60


@dataclass
class CacheEntry:
    """A cached payload and the time it was stored."""

    payload: EnrichmentPayload
    inserted_at: float


class ResultCache:
    """
    In-memory lookup cache keyed by (normalized name, vintage, currency).

    Expired entries are treated as absent and evicted when read. All access
    comes from tasks on one event loop, so plain dict operations are enough.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, str, str], CacheEntry] = {}

    @staticmethod
    def make_key(wine: WineRecord, currency: str) -> tuple[str, str, str]:
        """
        Build the cache key for a wine.

        Args:
            wine: The wine record
            currency: Session currency code

        Returns:
            Case-folded (name, vintage or "nv", currency) tuple
        """
        name = build_search_name(wine.name, wine.producer).casefold()
        vintage = str(wine.vintage) if wine.vintage is not None else "nv"
        return (name, vintage, currency.strip().casefold())

    def get(self, wine: WineRecord, currency: str) -> EnrichmentPayload | None:
        """Return the cached payload, or None if absent or expired."""
        key = self.make_key(wine, currency)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.inserted_at >= self.ttl_seconds:
            logger.debug(f"Cache entry expired for {key}")
            self._entries.pop(key, None)
            return None
        return entry.payload

    def set(self, wine: WineRecord, currency: str, payload: EnrichmentPayload) -> None:
        """Store a payload for a wine."""
        self._entries[self.make_key(wine, currency)] = CacheEntry(
            payload=payload, inserted_at=self._clock()
        )

    def invalidate(self, wine: WineRecord, currency: str) -> bool:
        """
        Remove the entry for a wine.

        Returns:
            True if an entry was removed
        """
        return self._entries.pop(self.make_key(wine, currency), None) is not None

    def clear(self) -> None:
        """Remove every entry."""
        self._entries.clear()

    def stats(self) -> dict[str, int]:
        """Return the number of stored entries (expired ones included until read)."""
        return {"size": len(self._entries)}

    def __len__(self) -> int:
        return len(self._entries)
