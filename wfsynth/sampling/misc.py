"""Randomized integer helpers used by the topology builders to derive stage counts."""
from __future__ import annotations

from typing import List

import numpy as np

from wfsynth.errors import ConfigurationError


def random_int(value: int, variation: float, rng: np.random.Generator) -> int:
    """Uniform integer within value * (1 +/- variation)."""
    if value <= 0:
        return 0
    low = value * (1.0 - variation)
    high = value * (1.0 + variation)
    return int(round(rng.uniform(low, high)))


def random_long(value: float, variation: float, rng: np.random.Generator) -> int:
    if value <= 0:
        return 0
    return int(rng.uniform(value * (1.0 - variation), value * (1.0 + variation)))


def random_toss(bias: float, rng: np.random.Generator) -> bool:
    """Biased coin: True with probability `bias`."""
    return bool(rng.random() < bias)


def close_non_zero_randoms(n: int, total: int, variation: float, rng: np.random.Generator) -> List[int]:
    """Split `total` into `n` positive integers that each stay close to total / n.

    Every part starts at the mean perturbed by +/- variation, then parts are
    nudged one unit at a time until they sum to `total` exactly.
    """
    if n <= 0:
        raise ConfigurationError(f"Cannot split {total} into {n} parts")
    if total < n:
        raise ConfigurationError(f"Cannot split {total} into {n} non-zero parts")
    mean = total / n
    parts = [max(1, int(round(rng.uniform(mean * (1 - variation), mean * (1 + variation))))) for _ in range(n)]
    diff = total - sum(parts)
    while diff != 0:
        i = int(rng.integers(n))
        if diff > 0:
            parts[i] += 1
            diff -= 1
        elif parts[i] > 1:
            parts[i] -= 1
            diff += 1
    return parts


__all__ = ["random_int", "random_long", "random_toss", "close_non_zero_randoms"]
