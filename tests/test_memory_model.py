import os
import sys

import numpy as np

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from wfsynth.sampling.memory_model import (
    MIN_SAMPLED_MEMORY,
    RANDOM_MODEL_MIN_VALUE,
    LinearMemoryModel,
    random_memory_model,
)

MIN_FILE_SIZE = 10e3
MAX_MEM = 1.5e12


def test_generate_never_below_min_value():
    rng = np.random.default_rng(0)
    for min_value, slope, intercept in [(0.0, 0.0, 0.0), (30e6, 0.5, -1e9), (10e6, 2.0, 5e6)]:
        model = LinearMemoryModel(slope, intercept, error_std=1e8, min_value=min_value)
        for input_size in (0, 1e3, 1e6, 1e9):
            values = [model.generate(input_size, rng) for _ in range(2500)]
            assert min(values) >= min_value


def test_zero_noise_model_is_exact():
    rng = np.random.default_rng(1)
    model = LinearMemoryModel(slope=2, intercept=10, error_std=0, min_value=0)
    for i in range(10001):
        assert model.generate(i, rng) == max(0, 2 * i + 10)


def test_noise_differs_between_calls():
    rng = np.random.default_rng(2)
    model = LinearMemoryModel.constant(225751040, 0.64e6, 10e6)
    values = {model.generate(1e6, rng) for _ in range(50)}
    assert len(values) > 1
    assert not model.is_linear


def test_zero_linear_chance_gives_flat_model():
    for seed in range(25):
        rng = np.random.default_rng(seed)
        model, samples = random_memory_model(300, MIN_FILE_SIZE, MAX_MEM, 0.0, 1.0, 1.0, rng)
        assert model.slope == 0
        assert model.min_value == RANDOM_MODEL_MIN_VALUE
        assert len(samples.peak_memory) == 300
        assert np.all(samples.peak_memory >= MIN_SAMPLED_MEMORY)
        assert np.all(samples.peak_memory <= MAX_MEM)
        assert np.all(samples.input_sizes >= MIN_FILE_SIZE)


def test_full_linear_chance_keeps_slope_in_bounds():
    for seed in range(25):
        rng = np.random.default_rng(seed)
        model, samples = random_memory_model(200, MIN_FILE_SIZE, MAX_MEM, 1.0, 0.2, 2.0, rng)
        assert 0.2 <= model.slope <= 2.0
        assert model.is_linear
        assert model.intercept == 0
        assert np.all(samples.input_sizes >= MIN_FILE_SIZE)


def test_small_memory_cap_clips_samples():
    rng = np.random.default_rng(3)
    cap = 2e9
    _, samples = random_memory_model(1000, MIN_FILE_SIZE, cap, 0.5, 0.2, 2.0, rng)
    assert samples.peak_memory.max() <= cap
    assert samples.peak_memory.min() >= MIN_SAMPLED_MEMORY


def test_linear_samples_follow_the_model():
    rng = np.random.default_rng(4)
    model, samples = random_memory_model(5000, MIN_FILE_SIZE, MAX_MEM, 1.0, 1.0, 1.0, rng)
    corr = np.corrcoef(samples.input_sizes, samples.peak_memory)[0, 1]
    # linearity in [0.25, 0.75] explains a visible share of the variance
    assert corr > 0.3
    assert "slope=1.00" in model.describe(samples)
