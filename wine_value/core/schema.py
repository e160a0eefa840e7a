"""Canonical Pydantic v2 models for wine list sessions."""

import math
import re
from datetime import UTC, datetime
from typing import Annotated, Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from wine_value.core.enums import DataProvenance, LookupStatus, SessionStatus
from wine_value.core.scoring import (
    calculate_markup,
    calculate_value_score,
    classify_lookup_status,
)


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")


def coerce_number(value: Any) -> float | None:
    """
    Coerce a loosely-typed value into a float.

    External sources return numbers as ints, floats, or strings such as
    "£1,250" or "94 pts". Booleans, anything without digits and non-finite
    values (NaN, infinity, overflowing literals) become None.

    Args:
        value: The raw value.

    Returns:
        The numeric value, or None.
    """
    if value is None or isinstance(value, bool):
        return None
    number: float | None = None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        match = _NUMBER_PATTERN.search(value.replace(",", ""))
        if match:
            number = float(match.group())
    if number is None or not math.isfinite(number):
        return None
    return number


def _positive_or_none(value: Any) -> float | None:
    number = coerce_number(value)
    if number is None or number <= 0:
        return None
    return number


def _score_or_none(value: Any) -> float | None:
    number = coerce_number(value)
    if number is None or not 0 <= number <= 100:
        return None
    return number


def _count_or_none(value: Any) -> int | None:
    number = coerce_number(value)
    if number is None or number < 0:
        return None
    return int(number)


class VerificationLinks(BaseModel):
    """Links a user can follow to check the enrichment data."""

    price_source_url: str | None = None
    community_source_url: str | None = None


class EnrichmentPayload(BaseModel):
    """
    Price and rating data for one wine, as produced by the enrichment sources.

    Every numeric field is nullable. Out-of-range values are dropped on
    construction so downstream code never sees a zero price or a 140-point score.
    """

    retail_price_avg: float | None = None
    retail_price_min: float | None = None
    critic_score: float | None = None
    community_score: float | None = None
    community_review_count: int | None = None
    verification_links: VerificationLinks = Field(default_factory=VerificationLinks)
    data_provenance: DataProvenance = DataProvenance.NONE

    @field_validator("retail_price_avg", "retail_price_min", mode="before")
    @classmethod
    def _sanitize_price(cls, v: Any) -> float | None:
        return _positive_or_none(v)

    @field_validator("critic_score", "community_score", mode="before")
    @classmethod
    def _sanitize_score(cls, v: Any) -> float | None:
        return _score_or_none(v)

    @field_validator("community_review_count", mode="before")
    @classmethod
    def _sanitize_count(cls, v: Any) -> int | None:
        return _count_or_none(v)

    @property
    def has_price_or_critic(self) -> bool:
        """True when the payload carries a retail price or a critic score."""
        return self.retail_price_avg is not None or self.critic_score is not None

    @property
    def has_community(self) -> bool:
        """True when the payload carries a community score."""
        return self.community_score is not None

    @property
    def is_empty(self) -> bool:
        """True when no price or rating field is populated."""
        return not (
            self.has_price_or_critic
            or self.has_community
            or self.retail_price_min is not None
            or self.community_review_count is not None
        )


class WineRecord(BaseModel):
    """A wine as extracted from the restaurant wine list."""

    name: str
    producer: str = ""
    vintage: int | None = None
    region: str = ""
    grape_variety: str = ""
    menu_price: Annotated[float, Field(gt=0, allow_inf_nan=False)]
    raw_text: str = ""
    extraction_confidence: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()

    @field_validator("producer", "region", "grape_variety", "raw_text", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("menu_price", mode="before")
    @classmethod
    def parse_menu_price(cls, v: Any) -> Any:
        """Accept prices written with currency symbols or separators."""
        if isinstance(v, str):
            return coerce_number(v)
        return v

    @field_validator("extraction_confidence", mode="before")
    @classmethod
    def parse_confidence(cls, v: Any) -> float:
        """Rescale percentages to 0-1; unusable values count as no confidence."""
        number = coerce_number(v)
        if number is None or number < 0 or number > 100:
            return 0.0
        if number > 1:
            return number / 100
        return number

    @field_validator("vintage", mode="before")
    @classmethod
    def parse_vintage(cls, v: Any) -> int | None:
        """Accept ints, numeric strings and NV markers."""
        if v is None or v == "":
            return None
        if isinstance(v, str):
            if v.strip().upper() in ("NV", "N/V", "NON-VINTAGE"):
                return None
            match = re.search(r"\b(1[89]|20)\d{2}\b", v)
            if match is None:
                return None
            v = match.group()
        year = int(v)
        if not 1800 <= year <= 2100:
            return None
        return year


class WineValueResult(WineRecord):
    """
    A wine record together with its enrichment result.

    Markup, value score and lookup status are derived from the populated
    fields on every validation, so a result can never claim ``found``
    without the data to back it up.
    """

    retail_price_avg: float | None = None
    retail_price_min: float | None = None
    critic_score: float | None = None
    community_score: float | None = None
    community_review_count: int | None = None
    lookup_status: LookupStatus = LookupStatus.PENDING
    verification_links: VerificationLinks = Field(default_factory=VerificationLinks)
    markup_percent: int | None = None
    value_score: int | None = None
    data_provenance: DataProvenance = DataProvenance.NONE

    @model_validator(mode="after")
    def compute_derived_fields(self) -> "WineValueResult":
        """Compute markup, value score and lookup status from the data fields."""
        self.markup_percent = calculate_markup(self.menu_price, self.retail_price_avg)
        self.value_score = calculate_value_score(
            self.menu_price,
            self.retail_price_avg,
            self.critic_score,
            self.community_score,
        )
        if self.lookup_status not in (LookupStatus.PENDING, LookupStatus.ERROR):
            self.lookup_status = classify_lookup_status(
                self.value_score,
                self.retail_price_avg,
                self.critic_score,
                self.community_score,
            )
        return self

    @classmethod
    def from_record(cls, record: WineRecord) -> "WineValueResult":
        """Create an unenriched result for a freshly parsed wine."""
        return cls.model_validate(record.model_dump())

    def to_record(self) -> WineRecord:
        """Return only the parsed wine fields."""
        return WineRecord.model_validate(self.model_dump(include=set(WineRecord.model_fields)))

    def reset_enrichment(self) -> "WineValueResult":
        """Return a copy with every enrichment field back in its initial state."""
        return WineValueResult.from_record(self.to_record())


class WineEdit(BaseModel):
    """
    A user edit to a parsed wine.

    Only the fields present in the request are applied; sending
    ``"vintage": null`` explicitly marks the wine as non-vintage.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    producer: str | None = None
    vintage: int | None = None
    menu_price: Annotated[float, Field(gt=0)] | None = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("name cannot be empty")
        return v

    @field_validator("vintage")
    @classmethod
    def vintage_in_range(cls, v: int | None) -> int | None:
        if v is not None and not 1800 <= v <= 2100:
            raise ValueError(f"vintage must be between 1800 and 2100, got {v}")
        return v

    def changes(self) -> dict[str, Any]:
        """Return the explicitly supplied fields (null only counts for vintage)."""
        return {
            field: getattr(self, field)
            for field in self.model_fields_set
            if field == "vintage" or getattr(self, field) is not None
        }


class ParseResult(BaseModel):
    """Output of the document parsing step."""

    currency: str = "USD"
    wines: list[WineRecord] = Field(default_factory=list)
    truncated: bool = False

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v: Any) -> str:
        if not v:
            return "USD"
        return str(v).strip().upper()


class Session(BaseModel):
    """
    One uploaded wine list and its lifecycle.

    Sessions are treated as immutable snapshots: writers build a new
    instance and replace the stored one instead of mutating fields.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    currency: str = "USD"
    status: SessionStatus = SessionStatus.PARSING
    wines: list[WineValueResult] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
    error: str | None = None

    def evolve(self, **changes: Any) -> "Session":
        """Return a new snapshot with the given changes and a fresh updated_at."""
        changes.setdefault("updated_at", _utc_now())
        if "wines" in changes:
            changes["wines"] = list(changes["wines"])
        return self.model_copy(update=changes)

    def pending_indices(self) -> list[int]:
        """Indices of wines that have not been enriched yet."""
        return [
            i for i, wine in enumerate(self.wines)
            if wine.lookup_status == LookupStatus.PENDING
        ]
