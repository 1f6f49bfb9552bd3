import os
import sys

import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from wfsynth.errors import ConfigurationError
from wfsynth.utils.config import (
    AcceptanceCriteria,
    CorpusConfig,
    MemoryModelConfig,
    load_config_tree,
    load_corpus_config,
    merge,
)


class _Stats:
    def __init__(self, heterogeneity, ratio):
        self.memory_heterogeneity = heterogeneity
        self.cpu_to_mem_ratio = ratio


def test_default_config_merges_includes():
    config = load_corpus_config()
    assert config.families == ["cybershake", "genome", "ligo", "montage", "sipht"]
    assert config.memory_model.min_file_size == 10e3
    assert config.memory_model.max_mem_consumption == 1.5e12
    assert config.target_tib_weeks == 1.0
    assert not config.acceptance.enabled


def test_include_is_resolved_relative_to_file(tmp_path):
    (tmp_path / "base.yaml").write_text("corpus:\n  sizes: [100, 1000]\n  families: [ligo, montage]\n  seed: 5\n")
    main = tmp_path / "main.yaml"
    main.write_text("include:\n  - base.yaml\ncorpus:\n  sizes: [200]\n  families: [ligo]\n")
    tree = load_config_tree(main)
    assert tree["corpus"]["sizes"] == [200]
    assert tree["corpus"]["seed"] == 5
    config = CorpusConfig.from_dict(tree["corpus"])
    assert config.families == ["ligo"]


def test_merge_overrides_scalars_and_recurses():
    out = merge({"a": 1, "b": {"x": 1, "y": 2}}, {"a": 2, "b": {"y": 3}})
    assert out == {"a": 2, "b": {"x": 1, "y": 3}}
    assert merge({"sizes": [100, 1000]}, {"sizes": [50]}) == {"sizes": [50]}


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config_tree(tmp_path / "nope.yaml")


@pytest.mark.parametrize("data", [
    {"families": []},
    {"sizes": [0]},
    {"sizes": [100, 200, 100]},
    {"families": ["genome", "Epigenomics"]},
    {"num_instances": 0},
    {"max_attempts": 0},
    {"target_tib_weeks": -1.0},
    {"no_such_key": 1},
    {"memory_model": {"linear_task_chance": 1.5}},
    {"memory_model": {"min_slope": 2.0, "max_slope": 1.0}},
    {"acceptance": {"mode": "sometimes"}},
])
def test_invalid_values_rejected(data):
    with pytest.raises(ConfigurationError):
        CorpusConfig.from_dict(data)


def test_memory_model_bounds():
    with pytest.raises(ConfigurationError):
        MemoryModelConfig(max_mem_consumption=1e6)
    with pytest.raises(ConfigurationError):
        MemoryModelConfig(min_file_size=-1)


def test_acceptance_modes():
    homogeneous_memory_bound = _Stats(0.9, 0.1)
    heterogeneous_only = _Stats(0.1, 0.1)
    both = _Stats(0.1, 0.9)

    assert AcceptanceCriteria().accepts(homogeneous_memory_bound)

    either = AcceptanceCriteria(enabled=True)
    assert not either.accepts(homogeneous_memory_bound)
    assert either.accepts(heterogeneous_only)
    assert either.accepts(both)

    strict = AcceptanceCriteria(enabled=True, mode="both")
    assert not strict.accepts(heterogeneous_only)
    assert strict.accepts(both)
