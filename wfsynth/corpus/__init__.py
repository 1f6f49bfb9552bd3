"""Corpus generation loop, runtime normalization and acceptance sampling."""
from .generator import CorpusGenerator, apply_random_memory_models, normalize_runtimes, rescale_runtimes

__all__ = ["CorpusGenerator", "apply_random_memory_models", "normalize_runtimes", "rescale_runtimes"]
