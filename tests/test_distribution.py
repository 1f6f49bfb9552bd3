import os
import sys

import numpy as np
import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from wfsynth.errors import ConfigurationError
from wfsynth.sampling.distribution import Constant, TruncatedNormal, Uniform, constant, truncated_normal, uniform
from wfsynth.sampling.misc import close_non_zero_randoms, random_int, random_toss


def test_constant_always_returns_its_value():
    rng = np.random.default_rng(0)
    dist = constant(24000)
    assert all(dist.sample(rng) == 24000.0 for _ in range(100))


def test_uniform_stays_in_half_open_interval():
    rng = np.random.default_rng(1)
    dist = uniform(0, 10000)
    values = np.array([dist.sample(rng) for _ in range(5000)])
    assert np.all(values >= 0)
    assert np.all(values < 10000)


def test_degenerate_uniform_returns_bound():
    assert Uniform(3.0, 3.0).sample(np.random.default_rng(2)) == 3.0


def test_invalid_parameters_rejected_at_construction():
    with pytest.raises(ConfigurationError):
        Uniform(5, 1)
    with pytest.raises(ConfigurationError):
        TruncatedNormal(1.0, -0.5)


def test_truncated_normal_is_never_negative():
    rng = np.random.default_rng(3)
    # mean close to zero: about half of the raw draws are negative
    dist = truncated_normal(0.04, 0.0384)
    values = np.array([dist.sample(rng) for _ in range(5000)])
    assert np.all(values > 0)


def test_truncated_normal_rejects_hopeless_parameters():
    rng = np.random.default_rng(4)
    with pytest.raises(ConfigurationError, match="mean=-1000000000.0"):
        TruncatedNormal(-1e9, 1.0).sample(rng)
    with pytest.raises(ConfigurationError):
        TruncatedNormal(-2.0, 0.0).sample(rng)
    assert TruncatedNormal(5.0, 0.0).sample(rng) == 5.0


def test_same_seed_same_draws():
    dist = truncated_normal(43.40, 31.0 ** 2)
    a = [dist.sample(np.random.default_rng(7)) for _ in range(3)]
    b = [dist.sample(np.random.default_rng(7)) for _ in range(3)]
    assert a == b


def test_distributions_are_immutable_values():
    assert Constant(1.0) == constant(1.0)
    with pytest.raises(Exception):
        Constant(1.0).value = 2.0


def test_close_non_zero_randoms_sums_exactly():
    rng = np.random.default_rng(5)
    for n, total in [(1, 1), (3, 3), (8, 55), (20, 500)]:
        parts = close_non_zero_randoms(n, total, 0.25, rng)
        assert len(parts) == n
        assert sum(parts) == total
        assert min(parts) >= 1


def test_close_non_zero_randoms_rejects_impossible_split():
    rng = np.random.default_rng(6)
    with pytest.raises(ConfigurationError):
        close_non_zero_randoms(5, 4, 0.25, rng)
    with pytest.raises(ConfigurationError):
        close_non_zero_randoms(0, 4, 0.25, rng)


def test_random_helpers():
    rng = np.random.default_rng(8)
    assert random_int(0, 0.5, rng) == 0
    values = [random_int(100, 0.25, rng) for _ in range(500)]
    assert min(values) >= 75 and max(values) <= 125
    assert not any(random_toss(0.0, rng) for _ in range(100))
    assert all(random_toss(1.0, rng) for _ in range(100))
