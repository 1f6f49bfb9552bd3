import json
import logging
import os
import sys

import numpy as np
import pandas as pd
import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import wfsynth.corpus.generator as generator_module
from wfsynth.corpus import CorpusGenerator
from wfsynth.corpus.generator import apply_random_memory_models, normalize_runtimes, rescale_runtimes
from wfsynth.errors import AcceptanceExhaustedError, ConfigurationError
from wfsynth.sampling.memory_model import MIN_SAMPLED_MEMORY, random_memory_model
from wfsynth.utils.config import AcceptanceCriteria, CorpusConfig, MemoryModelConfig
from wfsynth.workflows.export import JsonWorkflowSink
from wfsynth.workflows.registry import create_application


def _app(family="montage", num_jobs=50, seed=0):
    app = create_application(family, np.random.default_rng(seed))
    app.generate_workflow("-n", str(num_jobs))
    return app


def test_rescale_divides_runtime_and_spacetime():
    app = _app()
    before = app.get_statistics()
    rescale_runtimes(app.graph, 4.0)
    after = app.get_statistics()
    assert after.total_runtime_seconds == pytest.approx(before.total_runtime_seconds / 4.0)
    assert after.total_spacetime_megabyte_seconds == pytest.approx(before.total_spacetime_megabyte_seconds / 4.0)
    assert after.memory_heterogeneity == pytest.approx(before.memory_heterogeneity)
    with pytest.raises(ConfigurationError):
        rescale_runtimes(app.graph, 0.0)


def test_normalize_hits_target_tib_weeks():
    app = _app("ligo", 80)
    stats = normalize_runtimes(app, 1.0)
    assert stats.tib_weeks == pytest.approx(1.0)
    assert app.get_statistics().tib_weeks == pytest.approx(1.0)


def test_random_memory_models_are_imposed_on_tasks():
    app = _app("genome", 100, seed=4)
    config = MemoryModelConfig(max_mem_consumption=5e9)
    apply_random_memory_models(app, config)
    for task in app.graph:
        assert MIN_SAMPLED_MEMORY <= task.metrics.peak_mem_bytes <= 5e9
        assert task.metrics.peak_mem_relative_time == 0.5
        assert task.metrics.input_total_bytes == task.input_total_bytes
    assert set(app.memory_models) >= set(app.graph.task_types())


def test_task_without_inputs_is_skipped_with_warning(caplog):
    app = _app("sipht", 40, seed=2)
    root = app.graph.roots()[0]
    root.inputs.clear()
    with caplog.at_level(logging.WARNING):
        apply_random_memory_models(app, MemoryModelConfig())
    assert root.id in caplog.text
    assert root.metrics.input_total_bytes == 0
    assert root.metrics.peak_mem_bytes >= MIN_SAMPLED_MEMORY


def test_unsatisfiable_acceptance_gives_up():
    config = CorpusConfig(
        families=["montage"], sizes=[20], max_attempts=2, random_memory_models=False,
        acceptance=AcceptanceCriteria(enabled=True, max_memory_heterogeneity=0.0, mode="both"),
    )
    with pytest.raises(AcceptanceExhaustedError, match="2 attempts"):
        CorpusGenerator(config).run()


def test_unknown_family_rejected_up_front():
    with pytest.raises(ConfigurationError):
        CorpusGenerator(CorpusConfig(families=["montage", "blast"]))


def test_corpus_run_writes_instances(tmp_path):
    config = CorpusConfig(families=["montage", "ligo"], sizes=[30], num_instances=2, seed=3,
                          target_tib_weeks=1.0)
    statistics = CorpusGenerator(config, sink=JsonWorkflowSink(tmp_path)).run()
    assert len(statistics) == 4

    df = statistics.to_dataframe()
    assert df["identifier"].str.match(r"^(Montage|Ligo)\.n\.\d+\.[01]$").all()
    for identifier in df["identifier"]:
        payload = json.loads((tmp_path / f"{identifier}.json").read_text())
        assert payload["name"] == identifier
        tasks = payload["workflow"]["specification"]["tasks"]
        assert len(tasks) == len(payload["workflow"]["execution"]["tasks"])
    for s in statistics.entries.values():
        assert s.tib_weeks == pytest.approx(1.0)

    path = statistics.write_csv(tmp_path / "workflowStatistics.csv")
    assert len(pd.read_csv(path)) == 4


def test_corpus_is_reproducible():
    config = CorpusConfig(families=["sipht"], sizes=[40], num_instances=2, seed=9)
    first = CorpusGenerator(config).run().to_dataframe()
    second = CorpusGenerator(config).run().to_dataframe()
    pd.testing.assert_frame_equal(first, second)


def test_each_task_keeps_its_sampled_input_size(monkeypatch):
    batches = []

    def recording_model(*args, **kwargs):
        model, samples = random_memory_model(*args, **kwargs)
        batches.append(samples)
        return model, samples

    monkeypatch.setattr(generator_module, "random_memory_model", recording_model)
    app = _app("cybershake", 100, seed=5)
    produced = {(t.id, name): f.size for t in app.graph for name, f in t.outputs.items()}
    apply_random_memory_models(app, MemoryModelConfig(linear_task_chance=1.0))

    types = [t for t in app.task_types if app.get_tasks(t)]
    assert len(batches) == len(types)
    for task_type, samples in zip(types, batches):
        for i, task in enumerate(app.get_tasks(task_type)):
            assert task.metrics.peak_mem_bytes == int(samples.peak_memory[i])
            assert task.metrics.input_total_bytes == task.input_total_bytes
            if task.inputs:
                assert task.input_total_bytes == int(samples.input_sizes[i])
    # consumers resize their own records only
    assert produced == {(t.id, name): f.size for t in app.graph for name, f in t.outputs.items()}


@pytest.mark.parametrize("family", ["genome", "ligo", "variant_calling"])
def test_nearby_sizes_get_distinct_identifiers(family, tmp_path):
    sizes = [100, 101, 102, 103, 104]
    generator = CorpusGenerator(CorpusConfig(families=[family], sizes=sizes), sink=JsonWorkflowSink(tmp_path))
    statistics = generator.run()
    assert len(statistics) == 5
    assert len(list(tmp_path.glob("*.json"))) == 5
    for identifier in statistics.entries:
        if ".r" in identifier:
            assert int(identifier.rsplit(".r", 1)[1]) in sizes
    if family == "variant_calling":
        # six tasks per path: five consecutive sizes span at most two task counts
        assert sum(".r" in i for i in statistics.entries) >= 3


def test_rejected_candidates_are_regenerated_from_a_fresh_seed(monkeypatch):
    seen = []

    def accept_third(self, statistics):
        seen.append(statistics)
        return len(seen) == 3

    monkeypatch.setattr(AcceptanceCriteria, "accepts", accept_third)
    generator = CorpusGenerator(CorpusConfig(families=["montage"], sizes=[30], seed=7))
    app, statistics = generator.generate_instance(0, "montage", 30, 0)
    assert len(seen) == 3
    assert statistics is seen[-1]

    third = generator.generate_candidate("montage", 30, np.random.default_rng([7, 0, 30, 0, 2]))
    first = generator.generate_candidate("montage", 30, np.random.default_rng([7, 0, 30, 0, 0]))
    assert [t.metrics for t in app.graph] == [t.metrics for t in third.graph]
    assert [t.metrics for t in app.graph] != [t.metrics for t in first.graph]
