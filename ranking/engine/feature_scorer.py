"""Multi-factor feature scorer for rental listings.

Each listing is scored against a search/profile query across six categories.
A category score is the weighted mean of its feature entries; the total is the
weighted mean of the categories that produced entries. Categories that do not
apply to the query read 100 in the breakdown but stay out of the total.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional

from ranking.engine.models import (
    AMENITY_LABELS,
    CATEGORY_WEIGHTS,
    FeatureScore,
    ListingProfile,
    MatchResult,
    QueryContext,
    ScoreCategory,
)

MAX_PROS = 5
MAX_CONS = 5
PRO_THRESHOLD = 90.0
CON_THRESHOLD = 30.0
COMMUTE_FALLBACK_SCORE = 75.0

_ALLOWED_POLICIES = {"allowed", "yes", "permitted", "negotiable", "true"}


def _score_price(listing: ListingProfile, query: QueryContext) -> FeatureScore:
    price = listing.price or 0.0
    max_price = query.price_max if query.price_max and query.price_max > 0 else math.inf
    min_price = query.price_min or 0.0

    score = 100.0
    reason = "Within budget"
    if price > max_price:
        overage = (price - max_price) / max_price * 100
        score = max(0.0, min(100.0, 100 - overage))
        reason = f"{round(overage)}% over budget"
    elif price < min_price:
        score = 80.0
        reason = "Below minimum budget (might have drawbacks)"
    elif price / max_price * 100 < 80:
        reason = "Excellent value - well within budget"

    return FeatureScore(ScoreCategory.BASIC, "price", score, 10, reason)


def _score_rooms(listing: ListingProfile, query: QueryContext) -> FeatureScore:
    bedrooms = listing.bedrooms or 0
    desired = query.bedrooms or 1

    score = 100.0
    reason = "Perfect bedroom count"
    if bedrooms < desired:
        score = float(max(0, 100 - (desired - bedrooms) * 30))
        reason = f"{desired - bedrooms} fewer bedroom(s) than requested"
    elif bedrooms > desired:
        score = 90.0
        reason = f"{bedrooms - desired} extra bedroom(s)"

    return FeatureScore(ScoreCategory.BASIC, "bedrooms", score, 10, reason)


def _score_location(listing: ListingProfile, query: QueryContext) -> FeatureScore:
    desired = [str(d).strip().lower() for d in query.districts if str(d).strip()]
    district = (listing.district or "").strip().lower()

    score = 70.0
    reason = "Location acceptable"
    if desired:
        if district and district in desired:
            score = 100.0
            reason = "In preferred district"
        else:
            score = 50.0
            reason = "Not in preferred districts"

    # Commute destinations stand in for "near campus" until distances are wired in.
    if query.commute_destinations:
        score = min(100.0, score + 10)
        reason += " (near university)"

    return FeatureScore(ScoreCategory.BASIC, "location", score, 10, reason)


def _amenity_importance(key: str, query: QueryContext) -> str:
    priorities = query.amenity_priorities or {}
    if key in (priorities.get("essential") or []):
        return "essential"
    if key == "wifi" and query.work_from_home:
        return "essential"
    if key == "elevator" and query.elevator_required:
        return "essential"
    if key in (priorities.get("important") or []):
        return "important"
    if key == "wifi":
        return "important"
    if key == "balcony" and query.smoking_habits != "non-smoker":
        return "important"
    return "nice"


def _score_amenities(listing: ListingProfile, query: QueryContext) -> List[FeatureScore]:
    scores: List[FeatureScore] = []
    for key, name in AMENITY_LABELS.items():
        has = listing.has_amenity(key)
        importance = _amenity_importance(key, query)
        if importance == "essential":
            if has:
                scores.append(FeatureScore(ScoreCategory.AMENITIES, name, 100, 3, f"Has essential amenity: {name}"))
            else:
                scores.append(FeatureScore(ScoreCategory.AMENITIES, name, 0, 3, f"Missing essential: {name}"))
        elif importance == "important":
            if has:
                scores.append(FeatureScore(ScoreCategory.AMENITIES, name, 100, 2, f"Has important amenity: {name}"))
            else:
                scores.append(FeatureScore(ScoreCategory.AMENITIES, name, 50, 2, f"Missing important: {name}"))
        elif has:
            scores.append(FeatureScore(ScoreCategory.AMENITIES, name, 100, 1, f"Nice bonus: {name}"))
    return scores


def _has_workspace(listing: ListingProfile) -> bool:
    return any("workspace" in t or "desk" in t for t in listing.lifestyle_tags)


def _score_lifestyle_match(listing: ListingProfile, query: QueryContext) -> FeatureScore:
    score = 80.0
    reasons: List[str] = []

    wanted = {t.strip().lower() for t in query.lifestyle_tags if t.strip()}
    if wanted:
        overlap = wanted & set(listing.lifestyle_tags)
        if overlap:
            score += 20 * len(overlap) / len(wanted)
            reasons.append(f"Lifestyle match: {', '.join(sorted(overlap))}")

    if query.work_from_home and _has_workspace(listing):
        score += 10
        reasons.append("Has workspace for remote work")

    return FeatureScore(
        ScoreCategory.LIFESTYLE,
        "lifestyle_match",
        min(100.0, score),
        7,
        ", ".join(reasons) or "Moderate lifestyle match",
    )


def _policy_allows(policy: Optional[str]) -> bool:
    if not policy:
        return False
    value = str(policy).strip().lower().replace("-", "_").replace(" ", "_")
    return value in _ALLOWED_POLICIES or value.startswith("allowed")


def _score_pet_policy(listing: ListingProfile, query: QueryContext) -> FeatureScore:
    if not query.has_pets:
        return FeatureScore(ScoreCategory.LIFESTYLE, "pet_policy", 100, 7, "Pet policy not relevant")
    if _policy_allows(listing.pet_policy):
        return FeatureScore(ScoreCategory.LIFESTYLE, "pet_policy", 100, 7, "Pets allowed")
    return FeatureScore(ScoreCategory.LIFESTYLE, "pet_policy", 0, 7, "Pets not allowed (dealbreaker)")


def _score_smoking_policy(listing: ListingProfile, query: QueryContext) -> FeatureScore:
    smoking_allowed = _policy_allows(listing.smoking_policy)

    if query.smoking_habits == "non-smoker":
        if not smoking_allowed:
            return FeatureScore(ScoreCategory.LIFESTYLE, "smoking_policy", 100, 6, "Non-smoking environment")
        return FeatureScore(ScoreCategory.LIFESTYLE, "smoking_policy", 70, 6, "Smoking allowed (may be concern)")

    if smoking_allowed or listing.balcony:
        return FeatureScore(ScoreCategory.LIFESTYLE, "smoking_policy", 100, 6, "Smoking allowed")
    return FeatureScore(ScoreCategory.LIFESTYLE, "smoking_policy", 30, 6, "No smoking allowed")


def _score_accessibility(listing: ListingProfile, query: QueryContext) -> FeatureScore:
    score = 100.0
    issues: List[str] = []

    if query.wheelchair_required and not listing.wheelchair_accessible:
        score = 0.0
        issues.append("Not wheelchair accessible")
    if query.elevator_required and not listing.elevator:
        score = min(score, 20.0)
        issues.append("No elevator")
    if query.step_free_required and not listing.step_free_entrance:
        score = min(score, 50.0)
        issues.append("Has steps at entrance")

    return FeatureScore(
        ScoreCategory.ACCESSIBILITY,
        "accessibility",
        score,
        10,
        ", ".join(issues) if issues else "Fully accessible",
    )


def commute_minutes(cache: Dict[str, Dict], destinations: Optional[Iterable[str]] = None) -> Optional[float]:
    """Fastest known travel time across modes for the given destinations.

    With no destinations every cached destination is considered.
    """
    if not cache:
        return None
    targets = list(destinations) if destinations else list(cache.keys())
    best: Optional[float] = None
    for target in targets:
        entry = cache.get(target)
        if not isinstance(entry, dict):
            continue
        for mode_values in entry.values():
            if isinstance(mode_values, dict):
                raw = mode_values.get("minutes")
                if raw is None:
                    raw = mode_values.get("travelMinutes", mode_values.get("travel_minutes"))
            else:
                raw = mode_values
            if raw is None or isinstance(raw, bool):
                continue
            try:
                minutes = float(raw)
            except (TypeError, ValueError):
                continue
            if math.isnan(minutes) or math.isinf(minutes):
                continue
            if best is None or minutes < best:
                best = minutes
    return best


def _score_commute(listing: ListingProfile, query: QueryContext) -> FeatureScore:
    minutes = commute_minutes(listing.commute_cache, query.commute_destinations)
    if minutes is None:
        return FeatureScore(
            ScoreCategory.COMMUTE, "commute_time", COMMUTE_FALLBACK_SCORE, 10, "Reasonable commute distance"
        )

    limit = query.max_commute_minutes
    if not limit or minutes <= limit:
        return FeatureScore(ScoreCategory.COMMUTE, "commute_time", 100, 10, f"Commute around {round(minutes)} minutes")

    limit = max(limit, 1)
    score = max(0.0, 100 * (1 - (minutes - limit) / limit))
    return FeatureScore(ScoreCategory.COMMUTE, "commute_time", score, 10, f"Commute about {round(minutes)} minutes")


def _score_legal(listing: ListingProfile, query: QueryContext) -> FeatureScore:
    if query.needs_registration and not listing.registration_possible:
        return FeatureScore(
            ScoreCategory.LEGAL, "registration", 0, 5, "Registration not possible (dealbreaker for visa)"
        )
    return FeatureScore(ScoreCategory.LEGAL, "registration", 100, 5, "Registration possible")


def weighted_mean(scores: Iterable[FeatureScore]) -> float:
    scores = list(scores)
    total_weight = sum(s.weight for s in scores)
    if total_weight <= 0:
        return 0.0
    return sum(s.score * s.weight for s in scores) / total_weight


def _category_scores(feature_scores: List[FeatureScore]) -> Dict[ScoreCategory, float]:
    """Weighted mean per category, only for categories that have entries."""
    out: Dict[ScoreCategory, float] = {}
    for category in ScoreCategory:
        entries = [s for s in feature_scores if s.category == category]
        if entries:
            out[category] = weighted_mean(entries)
    return out


def _total_score(category_scores: Dict[ScoreCategory, float]) -> float:
    total_weight = sum(CATEGORY_WEIGHTS[c] for c in category_scores)
    if total_weight <= 0:
        return 0.0
    return sum(v * CATEGORY_WEIGHTS[c] for c, v in category_scores.items()) / total_weight


def _match_reason(total: float) -> str:
    if total >= 90:
        return "Excellent match! This listing meets almost all of your requirements."
    if total >= 75:
        return "Good match. This listing fits most of your needs with a few minor compromises."
    if total >= 60:
        return "Moderate match. Consider if you're flexible on some requirements."
    return "Limited match. Several important requirements not met."


def score_listing(listing: ListingProfile, query: QueryContext) -> MatchResult:
    """Score a listing against a query and explain the result."""
    feature_scores: List[FeatureScore] = [
        _score_price(listing, query),
        _score_rooms(listing, query),
        _score_location(listing, query),
    ]
    feature_scores.extend(_score_amenities(listing, query))
    feature_scores.append(_score_lifestyle_match(listing, query))
    feature_scores.append(_score_pet_policy(listing, query))
    feature_scores.append(_score_smoking_policy(listing, query))

    if query.accessibility_required:
        feature_scores.append(_score_accessibility(listing, query))
    if query.commute_destinations:
        feature_scores.append(_score_commute(listing, query))
    if query.needs_registration:
        feature_scores.append(_score_legal(listing, query))

    category_scores = _category_scores(feature_scores)
    total = _total_score(category_scores)
    breakdown = {c: round(category_scores[c]) if c in category_scores else 100 for c in ScoreCategory}

    return MatchResult(
        listing_id=listing.id,
        total_score=round(total),
        category_breakdown=breakdown,
        feature_scores=feature_scores,
        pros=[s.reason for s in feature_scores if s.score >= PRO_THRESHOLD][:MAX_PROS],
        cons=[s.reason for s in feature_scores if s.score <= CON_THRESHOLD][:MAX_CONS],
        match_reason=_match_reason(total),
    )


def rank_listings(listings: Iterable[ListingProfile], query: QueryContext, top_k: Optional[int] = None) -> List[MatchResult]:
    """Score and sort listings by total score, best first."""
    results = [score_listing(listing, query) for listing in listings]
    results.sort(key=lambda r: r.total_score, reverse=True)
    return results[:top_k] if top_k else results


__all__ = ["commute_minutes", "rank_listings", "score_listing", "weighted_mean"]
