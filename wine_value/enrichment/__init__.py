"""
Wine Value Enrichment Pipeline
==============================

Looks up retail price, critic score and community score for parsed wines.

Pipeline Stages:
1. Normalize - Expand abbreviations and shorthand vintages in names
2. Cache - Return results looked up in the last 24 hours
3. Lookup - Structured price API and community agent in parallel,
   search agent as fallback for price and critic score
4. Merge - Fill null fields, recompute markup and value score
5. Publish - Store a new session snapshot after every wave
6. Retry - One more pass over wines still lacking a value score
"""

from wine_value.enrichment.cache import CacheEntry, ResultCache
from wine_value.enrichment.links import build_verification_links
from wine_value.enrichment.normalizer import (
    NameNormalizer,
    build_api_wine_name,
    build_search_name,
    normalize_wine_name,
)
from wine_value.enrichment.orchestrator import LookupOrchestrator
from wine_value.enrichment.rate_limit import DailyQuotaGate, IntervalGate
from wine_value.enrichment.scheduler import LookupReport, WaveScheduler, merge_payload

__all__ = [
    # Cache
    "CacheEntry",
    "ResultCache",
    # Normalizer
    "NameNormalizer",
    "build_api_wine_name",
    "build_search_name",
    "normalize_wine_name",
    "build_verification_links",
    # Rate gates
    "DailyQuotaGate",
    "IntervalGate",
    # Orchestration
    "LookupOrchestrator",
    "LookupReport",
    "WaveScheduler",
    "merge_payload",
]
