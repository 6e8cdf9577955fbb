"""Per-category rewards derived from one feedback event.

Every value is clamped to [0, 1]. The search filters are the raw JSON object
submitted with the feedback, so only genuinely numeric / boolean / string
values are considered for each check.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ranking.engine.feature_scorer import commute_minutes
from ranking.engine.models import FeedbackKind, ListingProfile, RewardCategory

DEFAULT_MEDIA_SCORE = 0.6
DEFAULT_COMPLETENESS_SCORE = 0.6


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _number(filters: Mapping[str, Any], key: str) -> Optional[float]:
    value = filters.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _commute_decay(minutes: float, max_minutes: float) -> float:
    limit = max(max_minutes, 1)
    return clamp01(1 - max(minutes - limit, 0) / limit)


def constraint_fit(listing: ListingProfile, filters: Mapping[str, Any]) -> float:
    checks = 0
    matches = 0.0
    price = listing.price or 0.0

    price_min = _number(filters, "priceMin")
    if price_min is not None:
        checks += 1
        if price >= price_min:
            matches += 1

    price_max = _number(filters, "priceMax")
    if price_max is not None:
        checks += 1
        if price <= price_max:
            matches += 1

    bedrooms = _number(filters, "bedrooms")
    if bedrooms is not None:
        checks += 1
        if (listing.bedrooms or 0) >= bedrooms:
            matches += 1

    furnished = filters.get("furnished")
    if isinstance(furnished, bool):
        checks += 1
        if listing.furnished == furnished:
            matches += 1

    university = filters.get("university")
    if isinstance(university, str):
        checks += 1
        minutes = commute_minutes(listing.commute_cache, [university])
        max_commute = _number(filters, "maxCommuteMinutes")
        if minutes is not None and max_commute is not None:
            matches += _commute_decay(minutes, max_commute)
        else:
            matches += 0.5

    amenities = filters.get("amenities")
    if isinstance(amenities, list) and amenities:
        checks += 1
        # Amenity joins are not available here; count as partially satisfied.
        matches += 0.5

    if not checks:
        return 0.5
    return clamp01(matches / checks)


def _accessibility(listing: ListingProfile, filters: Mapping[str, Any]) -> float:
    elevator_term = 0.8 if listing.elevator else 0.4
    if listing.floor is None:
        floor_term = 0.5
    else:
        floor_term = clamp01(1 - min(max(listing.floor, 0), 10) / 10)

    commute_term = 0.5
    max_commute = _number(filters, "maxCommuteMinutes")
    if max_commute is not None:
        university = filters.get("university")
        targets = [university] if isinstance(university, str) else None
        minutes = commute_minutes(listing.commute_cache, targets)
        if minutes is not None:
            commute_term = _commute_decay(minutes, max_commute)

    return clamp01(elevator_term * 0.4 + floor_term * 0.3 + commute_term * 0.3)


def _trust_quality(listing: ListingProfile) -> float:
    verified_term = 0.85 if listing.verified_owner else 0.5
    media = listing.media_quality_score
    completeness = listing.completeness_score
    media_term = clamp01(DEFAULT_MEDIA_SCORE if media is None else media)
    completeness_term = clamp01(DEFAULT_COMPLETENESS_SCORE if completeness is None else completeness)
    return clamp01(verified_term * 0.4 + media_term * 0.3 + completeness_term * 0.3)


def _market_value(listing: ListingProfile, filters: Mapping[str, Any], normalized_feedback: float) -> float:
    price_min = _number(filters, "priceMin")
    price_max = _number(filters, "priceMax")
    if price_min is not None and price_max is not None and price_max > price_min:
        midpoint = (price_min + price_max) / 2
        delta = abs((listing.price or 0.0) - midpoint) / max(midpoint, 1)
        return clamp01(1 - delta)
    if listing.market_value_score is not None:
        return clamp01(listing.market_value_score)
    return clamp01(0.4 + normalized_feedback * 0.4)


def compute_rewards(
    listing: ListingProfile,
    filters: Optional[Mapping[str, Any]],
    kind: FeedbackKind,
) -> Dict[RewardCategory, float]:
    """Compute the six normalized category rewards for one feedback event."""
    filters = filters or {}
    feedback_score = kind.score
    normalized_feedback = clamp01((feedback_score + 1) / 2)

    fit = constraint_fit(listing, filters)
    return {
        RewardCategory.CONSTRAINT_FIT: fit,
        RewardCategory.PERSONAL_FIT: clamp01(0.4 * fit + 0.6 * normalized_feedback),
        RewardCategory.ACCESSIBILITY: _accessibility(listing, filters),
        RewardCategory.TRUST_QUALITY: _trust_quality(listing),
        RewardCategory.MARKET_VALUE: _market_value(listing, filters, normalized_feedback),
        RewardCategory.ENGAGEMENT: clamp01(0.5 + 0.25 * feedback_score),
    }


__all__ = ["clamp01", "compute_rewards", "constraint_fit"]
