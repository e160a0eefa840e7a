"""
Structured Price Source
=======================

Client for the Wine-Searcher wine price API. The API is quota-limited and
its response shape varies, so parsing tries several field names and every
failure is reported as a typed status instead of an exception.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from pydantic import BaseModel

from wine_value.config import PriceApiConfig
from wine_value.core.enums import DataProvenance, PriceApiStatus
from wine_value.core.schema import EnrichmentPayload, WineRecord, coerce_number
from wine_value.core.scoring import round_half_up
from wine_value.enrichment.normalizer import build_api_wine_name
from wine_value.enrichment.rate_limit import DailyQuotaGate
from wine_value.enrichment.sources.base import EnrichmentSource

logger = logging.getLogger(__name__)

SUPPORTED_CURRENCIES = ("USD", "GBP", "EUR", "AUD", "CAD", "CHF")

NO_MATCH_CODES = (1, 9)
AMBIGUOUS_CODES = (8,)
RATE_LIMITED_CODES = (5, 6, 7)

PRICE_AVG_KEYS = ("price-average", "Price-Average", "priceAverage", "average_price")
PRICE_MIN_KEYS = ("price-min", "Price-Min", "priceMin", "min_price")
PRICE_MAX_KEYS = ("price-max", "Price-Max", "priceMax", "max_price")
SCORE_KEYS = ("score", "Score", "critic-score", "criticScore")
REGION_KEYS = ("region", "Region")
GRAPE_KEYS = ("grape", "Grape")
NAME_KEYS = ("name", "Name", "wine-name")


class PriceApiResult(BaseModel):
    """Typed result of one price API query."""

    status: PriceApiStatus
    retail_price_avg: float | None = None
    retail_price_min: float | None = None
    retail_price_max: float | None = None
    critic_score: float | None = None
    region: str | None = None
    grape: str | None = None
    matched_name: str | None = None

    @property
    def has_price_or_critic(self) -> bool:
        """True for a successful match carrying a price or critic score."""
        return self.status == PriceApiStatus.SUCCESS and (
            self.retail_price_avg is not None or self.critic_score is not None
        )

    def to_payload(self) -> EnrichmentPayload:
        """Convert to an enrichment payload (empty unless the query succeeded)."""
        if self.status != PriceApiStatus.SUCCESS:
            return EnrichmentPayload()
        payload = EnrichmentPayload(
            retail_price_avg=self.retail_price_avg,
            retail_price_min=self.retail_price_min,
            critic_score=self.critic_score,
        )
        if payload.is_empty:
            return payload
        return payload.model_copy(update={"data_provenance": DataProvenance.API})


def _first(wine: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if wine.get(key) is not None:
            return wine[key]
    return None


def _rounded(wine: dict[str, Any], keys: tuple[str, ...]) -> float | None:
    number = coerce_number(_first(wine, keys))
    if number is None:
        return None
    return float(round_half_up(number))


def _text(wine: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    value = _first(wine, keys)
    return str(value) if value else None


def _status_code(data: dict[str, Any]) -> int | None:
    for key in ("status", "status-code", "statusCode"):
        if data.get(key) is not None:
            code = coerce_number(data[key])
            return int(code) if code is not None else -1
    return None


def parse_api_response(data: Any) -> PriceApiResult:
    """
    Parse a price API response body.

    Args:
        data: The decoded JSON body

    Returns:
        PriceApiResult; unknown shapes become ``error``
    """
    if not isinstance(data, dict):
        return PriceApiResult(status=PriceApiStatus.ERROR)

    code = _status_code(data)
    if code in NO_MATCH_CODES:
        return PriceApiResult(status=PriceApiStatus.NO_MATCH)
    if code in AMBIGUOUS_CODES:
        return PriceApiResult(status=PriceApiStatus.AMBIGUOUS)
    if code in RATE_LIMITED_CODES:
        return PriceApiResult(status=PriceApiStatus.RATE_LIMITED)
    if code is not None and code != 0:
        return PriceApiResult(status=PriceApiStatus.ERROR)

    wines = _first(data, ("wines", "wine", "List"))
    if wines is None:
        wines = [data]
    wine = (wines[0] if wines else None) if isinstance(wines, list) else wines

    if wine is None:
        return PriceApiResult(status=PriceApiStatus.NO_MATCH)
    if not isinstance(wine, dict):
        return PriceApiResult(status=PriceApiStatus.ERROR)

    return PriceApiResult(
        status=PriceApiStatus.SUCCESS,
        retail_price_avg=_rounded(wine, PRICE_AVG_KEYS),
        retail_price_min=_rounded(wine, PRICE_MIN_KEYS),
        retail_price_max=_rounded(wine, PRICE_MAX_KEYS),
        critic_score=_rounded(wine, SCORE_KEYS),
        region=_text(wine, REGION_KEYS),
        grape=_text(wine, GRAPE_KEYS),
        matched_name=_text(wine, NAME_KEYS),
    )


class PriceApiSource(EnrichmentSource):
    """
    Structured lookups against the wine price API.

    Every call consumes one unit of the daily quota; once exhausted the
    source reports ``rate_limited`` without touching the network. Calls are
    never retried.
    """

    name = "price_api"

    def __init__(
        self,
        config: PriceApiConfig,
        quota: DailyQuotaGate | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.quota = quota or DailyQuotaGate(config.daily_limit)
        self._transport = transport

    def remaining_calls(self) -> int:
        """Calls left in today's quota."""
        return self.quota.remaining()

    async def search(
        self,
        name: str,
        producer: str,
        vintage: int | None,
        currency: str,
    ) -> PriceApiResult:
        """
        Query the API for one wine.

        Args:
            name: Wine name
            producer: Producer name
            vintage: Vintage year, or None for non-vintage
            currency: Session currency code

        Returns:
            PriceApiResult with a typed status
        """
        if not self.config.enabled:
            return PriceApiResult(status=PriceApiStatus.ERROR)

        if not self.quota.try_acquire():
            logger.info("Price API daily limit reached")
            return PriceApiResult(status=PriceApiStatus.RATE_LIMITED)

        currency_code = currency.upper() if currency.upper() in SUPPORTED_CURRENCIES else "USD"
        params = {
            "api_key": self.config.api_key,
            "winename": build_api_wine_name(name, producer),
            "currencycode": currency_code,
        }
        if vintage is not None:
            params["vintage"] = str(vintage)

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout, transport=self._transport
            ) as client:
                response = await client.get(
                    self.config.base_url,
                    params=params,
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException:
            logger.warning(f"Price API timeout after {self.config.timeout}s for '{name}'")
            return PriceApiResult(status=PriceApiStatus.ERROR)
        except httpx.HTTPError as e:
            logger.warning(f"Price API HTTP error for '{name}': {e}")
            return PriceApiResult(status=PriceApiStatus.ERROR)

        if response.status_code == 429:
            logger.warning(f"Price API throttled the request for '{name}'")
            return PriceApiResult(status=PriceApiStatus.RATE_LIMITED)
        if not response.is_success:
            logger.warning(f"Price API returned HTTP {response.status_code} for '{name}'")
            return PriceApiResult(status=PriceApiStatus.ERROR)

        # Some deployments send JSON without a JSON content type
        try:
            data = json.loads(response.text)
        except ValueError:
            content_type = response.headers.get("content-type", "")
            logger.warning(f"Price API sent unparseable {content_type or 'content'} for '{name}'")
            return PriceApiResult(status=PriceApiStatus.ERROR)

        result = parse_api_response(data)
        logger.debug(f"Price API status for '{name}': {result.status.value}")
        return result

    async def lookup(self, wine: WineRecord, currency: str) -> EnrichmentPayload:
        result = await self.search(wine.name, wine.producer, wine.vintage, currency)
        return result.to_payload()
