"""Feedback ingestion: validate -> authorize -> lookup -> reward -> persist -> learn.

The bandit state is only touched after the feedback record has been durably
stored, so weights never drift from events that were not recorded.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional
from uuid import UUID

from ranking.engine.bandit import apply_feedback, expected_weights, learn
from ranking.engine.models import (
    REWARD_COLUMNS,
    BanditState,
    FeedbackEvent,
    FeedbackKind,
    RewardCategory,
)
from ranking.engine.rewards import compute_rewards

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Feedback recorded and ranking weights updated"


class FeedbackError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FeedbackUnauthorized(FeedbackError):
    status_code = 401


class FeedbackForbidden(FeedbackError):
    status_code = 403


class ListingNotFound(FeedbackError):
    status_code = 404


class FeedbackStoreError(FeedbackError):
    """The audit record could not be written; nothing was learned."""


class BanditUpdateError(FeedbackError):
    """The audit record is stored but the bandit update failed."""


@dataclass
class FeedbackSubmission:
    listing_id: str
    user_id: str
    kind: FeedbackKind
    search_session_id: Optional[str] = None
    search_query: Optional[str] = None
    search_filters: Dict[str, Any] = field(default_factory=dict)
    listing_position: Optional[float] = None
    listing_score: Optional[float] = None
    response_time_ms: Optional[float] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


@dataclass
class FeedbackOutcome:
    rewards: Dict[RewardCategory, float]
    state: BanditState
    message: str = SUCCESS_MESSAGE

    def component_scores(self) -> Dict[str, float]:
        return {c.value: v for c, v in self.rewards.items()}


def _normalize_user_id(value: Any) -> str:
    text = str(value).strip()
    try:
        return str(UUID(text))
    except ValueError:
        return text


def submit_feedback(
    submission: FeedbackSubmission,
    session_user_id: Optional[str],
    listings: Any,
    feedback_log: Any,
    bandit_store: Any,
    weight_cache: Any = None,
    rng: Optional[random.Random] = None,
) -> FeedbackOutcome:
    """Record one feedback event and fold it into the global bandit."""
    if not session_user_id:
        raise FeedbackUnauthorized("Unauthorized")
    if _normalize_user_id(session_user_id) != _normalize_user_id(submission.user_id):
        raise FeedbackForbidden("Cannot provide feedback for another user")

    listing = listings.get(submission.listing_id)
    if listing is None:
        raise ListingNotFound("Apartment not found")

    rewards = compute_rewards(listing, submission.search_filters, submission.kind)
    event = FeedbackEvent(
        listing_id=str(submission.listing_id),
        user_id=str(submission.user_id),
        kind=submission.kind,
        rewards=rewards,
        search_session_id=submission.search_session_id,
        search_query=submission.search_query,
        search_filters=dict(submission.search_filters or {}),
        listing_position=submission.listing_position,
        listing_score=submission.listing_score,
        response_time_ms=submission.response_time_ms,
        user_agent=submission.user_agent,
        ip_address=submission.ip_address,
    )

    try:
        feedback_log.insert(event)
    except Exception as exc:
        logger.error("Feedback insert error for listing %s: %s", submission.listing_id, exc)
        raise FeedbackStoreError("Failed to store feedback") from exc

    feedback_score = submission.kind.score
    try:
        state = bandit_store.update(lambda current: learn(current, rewards, feedback_score, rng))
    except Exception as exc:
        logger.error("Bandit update failed after feedback for listing %s: %s", submission.listing_id, exc)
        raise BanditUpdateError("Feedback stored but ranking weights were not updated") from exc

    if weight_cache is not None:
        weight_cache.invalidate()

    logger.info(
        "Feedback %s on %s applied; bandit version %s",
        submission.kind.value,
        submission.listing_id,
        state.version,
    )
    return FeedbackOutcome(rewards=rewards, state=state)


def _finite(value: Any, default: float = 0.0) -> float:
    try:
        f = float(value)
    except (TypeError, ValueError):
        return default
    return f if math.isfinite(f) else default


def _record_rewards(record: Mapping[str, Any]) -> Dict[RewardCategory, float]:
    return {category: abs(_finite(record.get(column))) for category, column in REWARD_COLUMNS.items()}


def _record_score(record: Mapping[str, Any]) -> float:
    kind = record.get("feedback_type")
    try:
        return FeedbackKind(kind).score
    except ValueError:
        return _finite(record.get("feedback_score"))


def replay_feedback(records: Iterable[Mapping[str, Any]]) -> BanditState:
    """Rebuild bandit accumulators from stored feedback records.

    Weights are the normalized posterior means, so a replay is deterministic.
    """
    state = BanditState()
    count = 0
    for record in records:
        trials, successes = apply_feedback(state, _record_rewards(record), _record_score(record))
        state = BanditState(trials=trials, successes=successes, version=state.version)
        count += 1
    if count:
        state.weights = expected_weights(state.trials, state.successes)
    return state


__all__ = [
    "BanditUpdateError",
    "FeedbackError",
    "FeedbackForbidden",
    "FeedbackOutcome",
    "FeedbackStoreError",
    "FeedbackSubmission",
    "FeedbackUnauthorized",
    "ListingNotFound",
    "replay_feedback",
    "submit_feedback",
]
