"""Enums for wine list sessions and enrichment results."""

from enum import Enum


class SessionStatus(str, Enum):
    """Lifecycle status of an uploaded wine list."""

    PARSING = "parsing"
    PARSED = "parsed"
    LOOKING_UP = "looking_up"
    COMPLETE = "complete"
    ERROR = "error"


class LookupStatus(str, Enum):
    """Enrichment status of a single wine."""

    PENDING = "pending"
    FOUND = "found"
    PARTIAL = "partial"
    NOT_FOUND = "not_found"
    ERROR = "error"


class DataProvenance(str, Enum):
    """Which sources contributed a wine's enrichment data."""

    API = "api"
    WEB_SEARCH = "web_search"
    MIXED = "mixed"
    NONE = "none"


class PriceApiStatus(str, Enum):
    """Outcome of a structured price API lookup."""

    SUCCESS = "success"
    NO_MATCH = "no_match"
    AMBIGUOUS = "ambiguous"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"
