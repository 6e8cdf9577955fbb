"""Data types shared by the scorer, reward calculator and bandit learner."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class FeedbackKind(str, Enum):
    GOOD = "good"
    BAD = "bad"
    NEUTRAL = "neutral"
    SAVED = "saved"
    CONTACTED = "contacted"

    @property
    def score(self) -> float:
        return FEEDBACK_SCORES[self]


FEEDBACK_SCORES: Dict[FeedbackKind, float] = {
    FeedbackKind.GOOD: 1.0,
    FeedbackKind.CONTACTED: 1.0,
    FeedbackKind.SAVED: 0.5,
    FeedbackKind.NEUTRAL: 0.0,
    FeedbackKind.BAD: -1.0,
}


class RewardCategory(str, Enum):
    """The six bandit arms."""

    CONSTRAINT_FIT = "constraintFit"
    PERSONAL_FIT = "personalFit"
    ACCESSIBILITY = "accessibility"
    TRUST_QUALITY = "trustQuality"
    MARKET_VALUE = "marketValue"
    ENGAGEMENT = "engagement"


# Column names used by the feedback audit records.
REWARD_COLUMNS: Dict[RewardCategory, str] = {
    RewardCategory.CONSTRAINT_FIT: "constraint_weight",
    RewardCategory.PERSONAL_FIT: "personal_weight",
    RewardCategory.ACCESSIBILITY: "accessibility_weight",
    RewardCategory.TRUST_QUALITY: "trust_weight",
    RewardCategory.MARKET_VALUE: "market_weight",
    RewardCategory.ENGAGEMENT: "engagement_weight",
}

DEFAULT_WEIGHTS: Dict[RewardCategory, float] = {
    RewardCategory.CONSTRAINT_FIT: 0.30,
    RewardCategory.PERSONAL_FIT: 0.20,
    RewardCategory.ACCESSIBILITY: 0.10,
    RewardCategory.TRUST_QUALITY: 0.15,
    RewardCategory.MARKET_VALUE: 0.15,
    RewardCategory.ENGAGEMENT: 0.10,
}


class ScoreCategory(str, Enum):
    BASIC = "basic"
    AMENITIES = "amenities"
    LIFESTYLE = "lifestyle"
    ACCESSIBILITY = "accessibility"
    COMMUTE = "commute"
    LEGAL = "legal"


CATEGORY_WEIGHTS: Dict[ScoreCategory, float] = {
    ScoreCategory.BASIC: 30.0,
    ScoreCategory.AMENITIES: 25.0,
    ScoreCategory.LIFESTYLE: 20.0,
    ScoreCategory.ACCESSIBILITY: 10.0,
    ScoreCategory.COMMUTE: 10.0,
    ScoreCategory.LEGAL: 5.0,
}


def _to_float(val: Any, default: Optional[float] = None) -> Optional[float]:
    if val is None or isinstance(val, bool):
        return default
    if isinstance(val, (int, float)):
        return float(val)
    try:
        s = str(val).strip()
    except Exception:
        return default
    if s in ("", "None", "null"):
        return default
    try:
        return float(s)
    except ValueError:
        return default


def _to_int(val: Any) -> Optional[int]:
    f = _to_float(val)
    return int(f) if f is not None else None


def _to_tags(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip().lower() for v in value if str(v).strip()]
    return [v.strip().lower() for v in str(value).split(",") if v.strip()]


def _parse_commute_cache(value: Any) -> Dict[str, Dict[str, Any]]:
    if not value:
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return {}
    if not isinstance(value, dict):
        return {}
    return {str(k): v for k, v in value.items() if isinstance(v, dict)}


# Amenity key -> label; labels also match free-form amenity lists on stored listings.
AMENITY_LABELS: Dict[str, str] = {
    "air_conditioning": "Air Conditioning",
    "washing_machine": "Washing Machine",
    "dishwasher": "Dishwasher",
    "wifi": "WiFi",
    "elevator": "Elevator",
    "balcony": "Balcony",
    "parking": "Parking",
    "security_system": "Security System",
}


@dataclass(frozen=True)
class ListingProfile:
    id: str
    price: float = 0.0
    bedrooms: int = 0
    bathrooms: int = 0
    district: Optional[str] = None
    floor: Optional[int] = None
    elevator: bool = False
    furnished: bool = False
    verified_owner: bool = False
    media_quality_score: Optional[float] = None
    completeness_score: Optional[float] = None
    air_conditioning: bool = False
    washing_machine: bool = False
    dishwasher: bool = False
    wifi: bool = False
    balcony: bool = False
    parking: bool = False
    security_system: bool = False
    lifestyle_tags: tuple = ()
    pet_policy: Optional[str] = None
    smoking_policy: Optional[str] = None
    wheelchair_accessible: bool = False
    step_free_entrance: bool = False
    commute_cache: Dict[str, Dict[str, Any]] = field(default_factory=dict, hash=False, compare=False)
    registration_possible: bool = True
    market_value_score: Optional[float] = None

    def has_amenity(self, key: str) -> bool:
        return bool(getattr(self, key, False))

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ListingProfile":
        """Build a profile from a stored listing document.

        Accepts both explicit boolean amenity fields and a free-form
        ``amenities`` list such as ``["WiFi", "Balcony"]``.
        """
        amenities = {a.lower() for a in _to_tags(doc.get("amenities"))}

        def flag(key: str) -> bool:
            if key in doc and doc[key] is not None:
                return bool(doc[key])
            return AMENITY_LABELS[key].lower() in amenities or key in amenities

        district = doc.get("district")
        registration = doc.get("registration_possible")
        return cls(
            id=str(doc.get("id") or doc.get("_id") or ""),
            price=_to_float(doc.get("price", doc.get("monthly_rent_huf")), 0.0),
            bedrooms=_to_int(doc.get("bedrooms", doc.get("room_count"))) or 0,
            bathrooms=_to_int(doc.get("bathrooms")) or 0,
            district=str(district) if district is not None else None,
            floor=_to_int(doc.get("floor")),
            elevator=flag("elevator"),
            furnished=bool(doc.get("furnished")),
            verified_owner=bool(doc.get("verified_owner") or doc.get("verified_owner_id")),
            media_quality_score=_to_float(doc.get("media_quality_score")),
            completeness_score=_to_float(doc.get("completeness_score")),
            air_conditioning=flag("air_conditioning"),
            washing_machine=flag("washing_machine"),
            dishwasher=flag("dishwasher"),
            wifi=flag("wifi"),
            balcony=flag("balcony"),
            parking=flag("parking"),
            security_system=flag("security_system"),
            lifestyle_tags=tuple(_to_tags(doc.get("lifestyle_tags"))),
            pet_policy=doc.get("pet_policy"),
            smoking_policy=doc.get("smoking_policy"),
            wheelchair_accessible=bool(doc.get("wheelchair_accessible"))
            or any("wheelchair" in a for a in amenities),
            step_free_entrance=bool(doc.get("step_free_entrance"))
            or any("step free" in a for a in amenities),
            commute_cache=_parse_commute_cache(doc.get("commute_cache")),
            registration_possible=True if registration is None else bool(registration),
            market_value_score=_to_float(doc.get("market_value_score")),
        )


@dataclass
class QueryContext:
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    districts: List[str] = field(default_factory=list)
    amenity_priorities: Dict[str, List[str]] = field(default_factory=dict)
    lifestyle_tags: List[str] = field(default_factory=list)
    work_from_home: bool = False
    has_pets: bool = False
    smoking_habits: str = "non-smoker"
    wheelchair_required: bool = False
    elevator_required: bool = False
    step_free_required: bool = False
    commute_destinations: List[str] = field(default_factory=list)
    max_commute_minutes: Optional[float] = None
    needs_registration: bool = False

    @property
    def accessibility_required(self) -> bool:
        return self.wheelchair_required or self.elevator_required or self.step_free_required


@dataclass(frozen=True)
class FeatureScore:
    category: ScoreCategory
    feature: str
    score: float
    weight: float
    reason: str


@dataclass
class MatchResult:
    listing_id: str
    total_score: int
    category_breakdown: Dict[ScoreCategory, int]
    feature_scores: List[FeatureScore]
    pros: List[str]
    cons: List[str]
    match_reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "listingId": self.listing_id,
            "totalScore": self.total_score,
            "categoryBreakdown": {c.value: v for c, v in self.category_breakdown.items()},
            "featureScores": [
                {
                    "category": f.category.value,
                    "feature": f.feature,
                    "score": round(f.score, 2),
                    "weight": f.weight,
                    "reason": f.reason,
                }
                for f in self.feature_scores
            ],
            "pros": list(self.pros),
            "cons": list(self.cons),
            "matchReason": self.match_reason,
        }


@dataclass(frozen=True)
class FeedbackEvent:
    listing_id: str
    user_id: str
    kind: FeedbackKind
    rewards: Dict[RewardCategory, float] = field(hash=False)
    search_session_id: Optional[str] = None
    search_query: Optional[str] = None
    search_filters: Dict[str, Any] = field(default_factory=dict, hash=False)
    listing_position: Optional[float] = None
    listing_score: Optional[float] = None
    response_time_ms: Optional[float] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def feedback_score(self) -> float:
        return self.kind.score

    def to_record(self) -> Dict[str, Any]:
        row = {
            "user_id": self.user_id,
            "apartment_id": self.listing_id,
            "search_session_id": self.search_session_id,
            "feedback_type": self.kind.value,
            "feedback_score": self.feedback_score,
            "search_query": self.search_query,
            "search_filters": dict(self.search_filters or {}),
            "apartment_position": self.listing_position,
            "apartment_score": self.listing_score,
            "response_time_ms": self.response_time_ms,
            "user_agent": self.user_agent,
            "ip_address": self.ip_address,
            "created_at": self.created_at,
        }
        for category, column in REWARD_COLUMNS.items():
            row[column] = self.rewards.get(category, 0.0)
        return row


@dataclass
class BanditState:
    trials: Dict[RewardCategory, float] = field(default_factory=dict)
    successes: Dict[RewardCategory, float] = field(default_factory=dict)
    weights: Dict[RewardCategory, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    last_updated: Optional[datetime] = None
    version: int = 0

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> "BanditState":
        if not doc:
            return cls()

        def read(values: Any) -> Dict[RewardCategory, float]:
            values = values or {}
            out: Dict[RewardCategory, float] = {}
            for category in RewardCategory:
                v = _to_float(values.get(category.value))
                if v is not None:
                    out[category] = v
            return out

        weights = read(doc.get("weights"))
        return cls(
            trials=read(doc.get("trials")),
            successes=read(doc.get("successes")),
            weights=weights if len(weights) == len(RewardCategory) else dict(DEFAULT_WEIGHTS),
            last_updated=doc.get("last_updated"),
            version=int(doc.get("version") or 0),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "weights": {c.value: v for c, v in self.weights.items()},
            "trials": {c.value: v for c, v in self.trials.items()},
            "successes": {c.value: v for c, v in self.successes.items()},
            "last_updated": self.last_updated,
        }


__all__ = [
    "AMENITY_LABELS",
    "BanditState",
    "CATEGORY_WEIGHTS",
    "DEFAULT_WEIGHTS",
    "FEEDBACK_SCORES",
    "FeatureScore",
    "FeedbackEvent",
    "FeedbackKind",
    "ListingProfile",
    "MatchResult",
    "QueryContext",
    "REWARD_COLUMNS",
    "RewardCategory",
    "ScoreCategory",
]
