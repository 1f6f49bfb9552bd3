"""Linear models relating a task's total input size to its peak memory.

peak mem = max(min value, slope * input size + intercept + Normal(0, error_std^2))

`random_memory_model` draws a random model for one task type together with a
batch of (input size, peak memory) samples that are jointly consistent with
it, so that a builder can give the i-th task of a type the i-th sample.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NamedTuple, Tuple

import numpy as np

# floor for memory samples drawn in bulk
MIN_SAMPLED_MEMORY = 10e6
# smallest value a randomly drawn model ever returns from generate()
RANDOM_MODEL_MIN_VALUE = 30e6
# slopes below this count as "no dependency on input size"
ZERO_SLOPE = 1e-6


class MemorySamples(NamedTuple):
    """Paired samples; index i of both arrays belongs to the same task."""
    input_sizes: np.ndarray
    peak_memory: np.ndarray


@dataclass(frozen=True)
class LinearMemoryModel:
    slope: float
    intercept: float
    error_std: float
    min_value: float = 0.0

    def generate(self, input_size: float, rng: np.random.Generator) -> int:
        """Return a random peak memory (bytes) >= min_value for the given input size.

        Every call draws fresh noise, so equal inputs give different results.
        """
        noise = rng.normal(0.0, self.error_std) if self.error_std > 0 else 0.0
        return int(max(self.min_value, input_size * self.slope + self.intercept + noise))

    @property
    def is_linear(self) -> bool:
        return self.slope >= ZERO_SLOPE

    @classmethod
    def constant(cls, value: float, error_std: float, min_value: float) -> "LinearMemoryModel":
        return cls(0.0, value, error_std, min_value)

    def describe(self, samples: MemorySamples | None = None) -> str:
        text = f"slope={self.slope:.2f}, err sd={self.error_std / 1e6:.2f}"
        if samples is not None and len(samples.peak_memory):
            text += (f", mem min={samples.peak_memory.min() / 1e6:.2f}, "
                     f"mem max={samples.peak_memory.max() / 1e6:.2f} in MEGA")
        return text


def random_memory_model(
    num_samples: int,
    min_file_size: float,
    max_mem_consumption: float,
    linear_task_chance: float,
    min_slope: float,
    max_slope: float,
    rng: np.random.Generator,
    min_memory: float = MIN_SAMPLED_MEMORY,
) -> Tuple[LinearMemoryModel, MemorySamples]:
    """Draw a random memory model for one task type plus `num_samples` paired samples.

    The target memory distribution (mean in [1 GB, 500 GB], standard deviation
    10-50% of the mean) is chosen first.  Without a slope, input sizes are
    independent of memory.  With a slope, the input size distribution is
    derived from the target so that a `linearity` share in [0.25, 0.75] of the
    memory variance is explained by input size:

        E[X] = (E[Y] - intercept) / slope,   Var[X] = linearity * Var[Y] / slope^2

    and the remaining variance becomes the model's error term.
    """
    mean_y = rng.uniform(1e9, 500e9)
    var_y = (mean_y * rng.uniform(0.1, 0.5)) ** 2

    slope = 0.0 if rng.random() >= linear_task_chance else rng.uniform(min_slope, max_slope)

    if slope < ZERO_SLOPE:
        slope = 0.0
        # orientation range only, samples spread beyond it
        min_input, max_input = 100e6, 200e6
        intercept = mean_y
        error_std = math.sqrt(var_y)
        input_sizes = rng.normal((min_input + max_input) / 2.0, (max_input - min_input) / 3.0, size=num_samples)
    else:
        intercept = 0.0
        linearity = rng.uniform(0.25, 0.75)
        mean_x = (mean_y - intercept) / slope
        var_x = linearity * var_y / slope ** 2
        error_std = math.sqrt((1.0 - linearity) * var_y)
        input_sizes = rng.normal(mean_x, math.sqrt(var_x), size=num_samples)

    model = LinearMemoryModel(slope, intercept, error_std, RANDOM_MODEL_MIN_VALUE)

    # reflect negative draws, then clip
    input_sizes = np.maximum(min_file_size, np.abs(input_sizes))
    noise = rng.normal(0.0, error_std, size=num_samples)
    peak_memory = np.clip(noise + slope * input_sizes + intercept, min_memory, max_mem_consumption)

    return model, MemorySamples(input_sizes, peak_memory)


__all__ = [
    "LinearMemoryModel",
    "MemorySamples",
    "random_memory_model",
    "MIN_SAMPLED_MEMORY",
    "RANDOM_MODEL_MIN_VALUE",
]
