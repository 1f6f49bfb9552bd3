"""Loading and validation of corpus generation configuration files.

- `include` lists in a YAML file pull in other files relative to it
- merge strategy: nested dicts merge recursively, later keys override;
  lists are replaced, so an including file can narrow `families` or `sizes`
"""
from __future__ import annotations
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from wfsynth.errors import ConfigurationError
from wfsynth.utils.workflow_family import infer_workflow_family

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "configs" / "corpus.yaml"


def load_yaml(path: Path) -> Dict[str, Any]:
    return yaml.safe_load(Path(path).read_text(encoding='utf-8')) or {}


def merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """Nested dicts merge recursively; any other value in `b`, lists included, replaces `a`'s."""
    out = dict(a)
    for k, v in b.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = merge(out[k], v)
        else:
            out[k] = v
    return out


def load_config_tree(path: str | Path) -> Dict[str, Any]:
    """Load a YAML file and merge every file listed under its `include` key."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    main_cfg = load_yaml(path)
    merged: Dict[str, Any] = {}
    for inc in main_cfg.pop('include', []) or []:
        merged = merge(merged, load_config_tree(path.parent / inc))
    return merge(merged, main_cfg)


@dataclass(frozen=True)
class MemoryModelConfig:
    """Parameter bundle for `random_memory_model`, shared by all task types of a run."""
    min_file_size: float = 10e3
    max_mem_consumption: float = 1.5e12
    linear_task_chance: float = 0.5
    min_slope: float = 0.2
    max_slope: float = 2.0

    def __post_init__(self):
        if self.min_file_size < 0:
            raise ConfigurationError(f"min_file_size must be >= 0, got {self.min_file_size}")
        if self.max_mem_consumption <= 10e6:
            raise ConfigurationError(f"max_mem_consumption must exceed 10 MB, got {self.max_mem_consumption}")
        if not 0.0 <= self.linear_task_chance <= 1.0:
            raise ConfigurationError(f"linear_task_chance must be in [0, 1], got {self.linear_task_chance}")
        if self.min_slope <= 0 or self.max_slope < self.min_slope:
            raise ConfigurationError(
                f"Invalid slope bounds; ensure 0 < min_slope <= max_slope, got {self.min_slope}, {self.max_slope}")


@dataclass(frozen=True)
class AcceptanceCriteria:
    """Predicate deciding whether a generated instance enters the corpus.

    mode "either": reject only instances that are homogeneous-ish AND
    memory bound, i.e. accept when heterogeneity < max_memory_heterogeneity
    OR cpu_to_mem_ratio >= min_cpu_to_mem_ratio.
    mode "both": accept only when both conditions hold.
    """
    enabled: bool = False
    max_memory_heterogeneity: float = 0.3
    min_cpu_to_mem_ratio: float = 0.5
    mode: str = "either"

    def __post_init__(self):
        if self.mode not in ("either", "both"):
            raise ConfigurationError(f"Unknown acceptance mode: {self.mode}. Available: ['either', 'both']")

    def accepts(self, statistics) -> bool:
        if not self.enabled:
            return True
        heterogeneous = statistics.memory_heterogeneity < self.max_memory_heterogeneity
        cpu_bound = statistics.cpu_to_mem_ratio >= self.min_cpu_to_mem_ratio
        if self.mode == "both":
            return heterogeneous and cpu_bound
        return heterogeneous or cpu_bound


@dataclass
class CorpusConfig:
    families: List[str] = field(default_factory=lambda: ["cybershake", "genome", "ligo", "montage", "sipht"])
    sizes: List[int] = field(default_factory=lambda: [1000])
    num_instances: int = 1
    seed: int = 1
    max_attempts: int = 100
    output_dir: Optional[Path] = None
    target_tib_weeks: Optional[float] = None
    random_memory_models: bool = True
    memory_model: MemoryModelConfig = field(default_factory=MemoryModelConfig)
    acceptance: AcceptanceCriteria = field(default_factory=AcceptanceCriteria)

    def __post_init__(self):
        if not self.families:
            raise ConfigurationError("At least one workflow family is required.")
        if not self.sizes or any(int(s) <= 0 for s in self.sizes):
            raise ConfigurationError(f"Workflow sizes must be positive integers, got {self.sizes}")
        if len({int(s) for s in self.sizes}) != len(self.sizes):
            raise ConfigurationError(f"Workflow sizes must not repeat, got {self.sizes}")
        canonical = [infer_workflow_family(f) for f in self.families]
        if len(set(canonical)) != len(canonical):
            raise ConfigurationError(f"Workflow families must not repeat, got {self.families}")
        if self.num_instances < 1:
            raise ConfigurationError(f"num_instances must be >= 1, got {self.num_instances}")
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.target_tib_weeks is not None and self.target_tib_weeks <= 0:
            raise ConfigurationError(f"target_tib_weeks must be > 0, got {self.target_tib_weeks}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CorpusConfig":
        data = dict(data)
        try:
            memory_model = MemoryModelConfig(**(data.pop('memory_model', None) or {}))
            acceptance = AcceptanceCriteria(**(data.pop('acceptance', None) or {}))
            output_dir = data.pop('output_dir', None)
            return cls(
                memory_model=memory_model,
                acceptance=acceptance,
                output_dir=Path(output_dir) if output_dir else None,
                **data,
            )
        except TypeError as exc:
            raise ConfigurationError(f"Invalid corpus configuration: {exc}") from exc


@lru_cache(maxsize=None)
def load_corpus_config(path: str | Path = DEFAULT_CONFIG_PATH) -> CorpusConfig:
    """Return the parsed corpus configuration."""
    return CorpusConfig.from_dict(load_config_tree(path).get('corpus', {}))
