"""Sampling layer: distributions, memory models and randomized count helpers."""
from .distribution import Constant, Distribution, TruncatedNormal, Uniform, constant, truncated_normal, uniform
from .memory_model import LinearMemoryModel, MemorySamples, random_memory_model

__all__ = [
    "Constant",
    "Uniform",
    "TruncatedNormal",
    "Distribution",
    "constant",
    "uniform",
    "truncated_normal",
    "LinearMemoryModel",
    "MemorySamples",
    "random_memory_model",
]
