"""Synthetic scientific-workflow corpus generator.

Subpackages:
 - sampling: parametric distributions and linear peak-memory models
 - workflows: task graph model and per-family topology builders
 - eval: workflow statistics and the corpus statistics registry
 - corpus: corpus generation, runtime normalization and acceptance sampling
 - utils: logging, configuration and family-name helpers
"""

__all__ = [
    "sampling",
    "workflows",
    "eval",
    "corpus",
    "utils",
]

__version__ = "0.1.0"
