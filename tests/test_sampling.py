"""Distributional checks for the random variate generators."""

import random
import statistics

import pytest

from ranking.engine.sampling import random_normal, sample_beta, sample_gamma

N = 20000


def test_normal_moments():
    rng = random.Random(7)
    draws = [random_normal(rng) for _ in range(N)]
    assert statistics.fmean(draws) == pytest.approx(0.0, abs=0.05)
    assert statistics.pvariance(draws) == pytest.approx(1.0, abs=0.05)


@pytest.mark.parametrize("shape", [0.5, 1.0, 3.0, 12.5])
def test_gamma_mean_and_variance(shape):
    rng = random.Random(11)
    draws = [sample_gamma(shape, rng) for _ in range(N)]
    assert all(d > 0 for d in draws)
    assert statistics.fmean(draws) == pytest.approx(shape, rel=0.05)
    assert statistics.pvariance(draws) == pytest.approx(shape, rel=0.1)


def test_beta_mean_and_support():
    rng = random.Random(3)
    draws = [sample_beta(2.0, 5.0, rng) for _ in range(N)]
    assert all(0.0 <= d <= 1.0 for d in draws)
    assert statistics.fmean(draws) == pytest.approx(2 / 7, abs=0.01)


def test_same_seed_same_draws():
    a = random.Random(99)
    b = random.Random(99)
    assert [sample_beta(3.0, 1.5, a) for _ in range(50)] == [sample_beta(3.0, 1.5, b) for _ in range(50)]


def test_tiny_shape_is_clamped():
    rng = random.Random(5)
    assert sample_gamma(0.0, rng) >= 0.0
