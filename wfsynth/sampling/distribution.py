"""Parametric distributions used to sample file sizes and task runtimes.

A distribution is an immutable value; the random source is passed to every
`sample` call so that one `numpy.random.Generator` per generation run drives
all draws.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Union

import numpy as np

from wfsynth.errors import ConfigurationError

# redraws before a truncated normal gives up
MAX_REDRAWS = 1000


@dataclass(frozen=True)
class Constant:
    value: float

    def sample(self, rng: np.random.Generator) -> float:
        return float(self.value)


@dataclass(frozen=True)
class Uniform:
    """Uniform on [low, high)."""
    low: float
    high: float

    def __post_init__(self):
        if self.low > self.high:
            raise ConfigurationError(f"Uniform distribution requires low <= high, got [{self.low}, {self.high})")

    def sample(self, rng: np.random.Generator) -> float:
        if self.low == self.high:
            return float(self.low)
        return float(rng.uniform(self.low, self.high))


@dataclass(frozen=True)
class TruncatedNormal:
    """Normal(mean, variance) restricted to positive values by redrawing."""
    mean: float
    variance: float

    def __post_init__(self):
        if self.variance < 0:
            raise ConfigurationError(f"Variance must be >= 0, got {self.variance}")

    @property
    def std(self) -> float:
        return math.sqrt(self.variance)

    def sample(self, rng: np.random.Generator) -> float:
        if self.variance == 0:
            if self.mean <= 0:
                raise ConfigurationError(f"TruncatedNormal(mean={self.mean}, variance=0) has no positive values")
            return float(self.mean)
        for _ in range(MAX_REDRAWS):
            value = float(rng.normal(self.mean, self.std))
            if value > 0:
                return value
        raise ConfigurationError(
            f"TruncatedNormal(mean={self.mean}, variance={self.variance}) drew no positive value "
            f"in {MAX_REDRAWS} attempts")


Distribution = Union[Constant, Uniform, TruncatedNormal]


def constant(value: float) -> Constant:
    return Constant(value)


def uniform(low: float, high: float) -> Uniform:
    return Uniform(low, high)


def truncated_normal(mean: float, variance: float) -> TruncatedNormal:
    return TruncatedNormal(mean, variance)


__all__ = [
    "Constant",
    "Uniform",
    "TruncatedNormal",
    "Distribution",
    "constant",
    "uniform",
    "truncated_normal",
    "MAX_REDRAWS",
]
