"""Markup and value score calculation for restaurant wines."""

from __future__ import annotations

import math

from wine_value.core.enums import LookupStatus

CRITIC_WEIGHT = 0.4
COMMUNITY_WEIGHT = 0.6

MIN_VALUE_SCORE = 0
MAX_VALUE_SCORE = 100


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 rounding towards +infinity."""
    return int(math.floor(value + 0.5))


def calculate_markup(menu_price: float, retail_price_avg: float | None) -> int | None:
    """
    Calculate the restaurant markup over retail, in percent.

    Args:
        menu_price: Price on the wine list.
        retail_price_avg: Average retail price, if known.

    Returns:
        Rounded markup percentage, or None when retail is unknown or not positive.
    """
    if retail_price_avg is None or retail_price_avg <= 0:
        return None
    return round_half_up(100 * (menu_price - retail_price_avg) / retail_price_avg)


def calculate_quality_score(
    critic_score: float | None,
    community_score: float | None,
) -> float | None:
    """
    Combine critic and community ratings into a single quality score.

    Both present: 40% critic, 60% community. One present: that score.

    Args:
        critic_score: Aggregated critic score (0-100).
        community_score: Community score (0-100).

    Returns:
        The quality score, or None when neither rating is known.
    """
    if critic_score is not None and community_score is not None:
        return CRITIC_WEIGHT * critic_score + COMMUNITY_WEIGHT * community_score
    if critic_score is not None:
        return critic_score
    if community_score is not None:
        return community_score
    return None


def calculate_value_score(
    menu_price: float,
    retail_price_avg: float | None,
    critic_score: float | None,
    community_score: float | None,
) -> int | None:
    """
    Calculate the value score of a wine on a restaurant list.

    The score is quality divided by the markup ratio (menu / retail),
    clamped to 0-100. A 90-point wine at 2x retail scores 45, at 1.5x
    it scores 60, at 3x it scores 30.

    Args:
        menu_price: Price on the wine list.
        retail_price_avg: Average retail price.
        critic_score: Aggregated critic score.
        community_score: Community score.

    Returns:
        The value score, or None when retail price or both ratings are missing.
    """
    if retail_price_avg is None or retail_price_avg <= 0 or menu_price <= 0:
        return None

    quality = calculate_quality_score(critic_score, community_score)
    if quality is None:
        return None

    markup_ratio = menu_price / retail_price_avg
    score = round_half_up(quality / markup_ratio)
    return min(MAX_VALUE_SCORE, max(MIN_VALUE_SCORE, score))


def classify_lookup_status(
    value_score: int | None,
    retail_price_avg: float | None,
    critic_score: float | None,
    community_score: float | None,
) -> LookupStatus:
    """
    Classify a wine after enrichment.

    - found: a value score could be computed
    - partial: at least one of retail price, critic or community score
    - not_found: nothing usable
    """
    if value_score is not None:
        return LookupStatus.FOUND
    if retail_price_avg is not None or critic_score is not None or community_score is not None:
        return LookupStatus.PARTIAL
    return LookupStatus.NOT_FOUND
