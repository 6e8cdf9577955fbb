"""Thompson-sampling weight learner over the six reward categories.

Each category is an independent Beta-Bernoulli arm with real-valued trial and
success accumulators. Feedback events grow the accumulators in proportion to
the category reward and the strength of the feedback; after every update a
fresh weight vector is drawn from the arm posteriors and normalized.

The model is a single global one shared by every user.
"""

from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Callable, Dict, Mapping, Optional, Tuple

from ranking.engine.models import DEFAULT_WEIGHTS, BanditState, RewardCategory
from ranking.engine.rewards import clamp01
from ranking.engine.sampling import sample_beta

MIN_TRIAL_INCREMENT = 0.05
MIN_SIGNAL_STRENGTH = 0.1
WEIGHT_PRECISION = 4

_rng = random.Random()

Sampler = Callable[[float, float, random.Random], float]


def success_ratio(feedback_score: float) -> float:
    if feedback_score > 0:
        return 1.0
    if feedback_score == 0:
        return 0.5
    return 0.1


def apply_feedback(
    state: BanditState,
    rewards: Mapping[RewardCategory, float],
    feedback_score: float,
) -> Tuple[Dict[RewardCategory, float], Dict[RewardCategory, float]]:
    """Return updated (trials, successes) after one feedback event.

    ``successes[c] <= trials[c]`` holds on the returned accumulators.
    """
    trials = dict(state.trials)
    successes = dict(state.successes)
    signal_strength = max(abs(feedback_score), MIN_SIGNAL_STRENGTH)
    ratio = success_ratio(feedback_score)

    for category in RewardCategory:
        contribution = clamp01(rewards.get(category, 0.5))
        trial_increment = max(contribution * signal_strength, MIN_TRIAL_INCREMENT)
        trials[category] = trials.get(category, 0.0) + trial_increment
        successes[category] = min(
            trials[category],
            successes.get(category, 0.0) + trial_increment * ratio,
        )
    return trials, successes


def normalize_samples(samples: Mapping[RewardCategory, float]) -> Dict[RewardCategory, float]:
    total = sum(samples.values())
    if total <= 0:
        return dict(DEFAULT_WEIGHTS)
    return {c: round(samples[c] / total, WEIGHT_PRECISION) for c in RewardCategory}


def resample_weights(
    trials: Mapping[RewardCategory, float],
    successes: Mapping[RewardCategory, float],
    rng: Optional[random.Random] = None,
    sampler: Sampler = sample_beta,
) -> Dict[RewardCategory, float]:
    """Draw one Beta posterior sample per arm and normalize them into weights."""
    rng = rng or _rng
    samples: Dict[RewardCategory, float] = {}
    for category in RewardCategory:
        success_count = max(0.0, successes.get(category, 0.0))
        trial_count = max(success_count, trials.get(category, 0.0))
        alpha = success_count + 1
        beta = max(trial_count - success_count, 0.0) + 1
        samples[category] = sampler(alpha, beta, rng)
    return normalize_samples(samples)


def learn(
    state: BanditState,
    rewards: Mapping[RewardCategory, float],
    feedback_score: float,
    rng: Optional[random.Random] = None,
) -> BanditState:
    """Apply one feedback event and resample; returns a new state."""
    trials, successes = apply_feedback(state, rewards, feedback_score)
    return BanditState(
        trials=trials,
        successes=successes,
        weights=resample_weights(trials, successes, rng),
        last_updated=datetime.now(timezone.utc),
        version=state.version,
    )


def expected_weights(
    trials: Mapping[RewardCategory, float],
    successes: Mapping[RewardCategory, float],
) -> Dict[RewardCategory, float]:
    """Posterior-mean weights, used when replaying history offline."""
    means: Dict[RewardCategory, float] = {}
    for category in RewardCategory:
        alpha = successes.get(category, 0.0) + 1
        beta = max(trials.get(category, 0.0) - successes.get(category, 0.0), 0.0) + 1
        means[category] = alpha / (alpha + beta)
    return normalize_samples(means)


__all__ = [
    "MIN_TRIAL_INCREMENT",
    "apply_feedback",
    "expected_weights",
    "learn",
    "normalize_samples",
    "resample_weights",
    "success_ratio",
]
