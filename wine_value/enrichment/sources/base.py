"""
Enrichment Source Interface
===========================

Every lookup strategy implements ``EnrichmentSource``: given a wine and the
session currency it returns an ``EnrichmentPayload`` and never raises for
source-local failures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from wine_value.core.enums import DataProvenance
from wine_value.core.schema import EnrichmentPayload, WineRecord

# Answer keys accepted from agents, camelCase first
ANSWER_FIELDS = {
    "retail_price_avg": ("retailPriceAvg", "retail_price_avg"),
    "retail_price_min": ("retailPriceMin", "retail_price_min"),
    "critic_score": ("criticScore", "critic_score"),
    "community_score": ("communityScore", "community_score"),
    "community_review_count": ("communityReviewCount", "community_review_count"),
}


def payload_from_answer(
    answer: dict[str, Any] | None,
    provenance: DataProvenance,
    fields: tuple[str, ...] | None = None,
) -> EnrichmentPayload:
    """
    Convert an agent's JSON answer into a sanitized payload.

    Args:
        answer: The parsed JSON object, or None
        provenance: Provenance to record when any field is populated
        fields: Restrict the payload to these fields (default: all five)

    Returns:
        The payload; empty payloads carry provenance ``none``
    """
    if not answer:
        return EnrichmentPayload()

    values: dict[str, Any] = {}
    for field_name, keys in ANSWER_FIELDS.items():
        if fields is not None and field_name not in fields:
            continue
        for key in keys:
            if answer.get(key) is not None:
                values[field_name] = answer[key]
                break

    payload = EnrichmentPayload.model_validate(values)
    if payload.is_empty:
        return payload
    return payload.model_copy(update={"data_provenance": provenance})


class EnrichmentSource(ABC):
    """Abstract base class for price and rating lookup strategies."""

    name: str = "source"

    @abstractmethod
    async def lookup(self, wine: WineRecord, currency: str) -> EnrichmentPayload:
        """
        Look up price and rating data for one wine.

        Args:
            wine: The wine to look up
            currency: Session currency code

        Returns:
            EnrichmentPayload; an empty payload when nothing was found or
            the source failed
        """
        pass
