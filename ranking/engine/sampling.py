"""Random variate generators used by Thompson sampling.

All functions take the random source as an argument so callers can seed it;
none of them touch shared state.
"""

from __future__ import annotations

import math
import random

MIN_SHAPE = 1e-3


def random_normal(rng: random.Random) -> float:
    """Standard normal draw via the Box-Muller transform."""
    u = 0.0
    v = 0.0
    while u == 0.0:
        u = rng.random()
    while v == 0.0:
        v = rng.random()
    return math.sqrt(-2 * math.log(u)) * math.cos(2 * math.pi * v)


def sample_gamma(shape: float, rng: random.Random) -> float:
    """Gamma(shape, 1) draw using Marsaglia-Tsang.

    Shapes below one are boosted to ``shape + 1`` and scaled by ``U ** (1 / shape)``.
    """
    k = max(shape, MIN_SHAPE)
    if k < 1:
        u = rng.random()
        return sample_gamma(k + 1, rng) * u ** (1 / k)

    d = k - 1 / 3
    c = 1 / math.sqrt(9 * d)
    while True:
        x = random_normal(rng)
        v = 1 + c * x
        if v <= 0:
            continue
        v = v * v * v
        u = rng.random()
        # squeeze
        if u < 1 - 0.0331 * x ** 4:
            return d * v
        if u > 0 and math.log(u) < 0.5 * x * x + d * (1 - v + math.log(v)):
            return d * v


def sample_beta(alpha: float, beta: float, rng: random.Random) -> float:
    """Beta(alpha, beta) draw as the ratio X / (X + Y) of two gamma draws."""
    x = sample_gamma(alpha, rng)
    y = sample_gamma(beta, rng)
    if x + y == 0:
        return 0.0
    return x / (x + y)


__all__ = ["random_normal", "sample_beta", "sample_gamma"]
