import logging
import os
import sys

import networkx as nx
import numpy as np
import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from wfsynth.errors import ConfigurationError, InvariantViolation
from wfsynth.sampling.memory_model import LinearMemoryModel
from wfsynth.workflows.cybershake import Cybershake
from wfsynth.workflows.registry import APPLICATIONS, available_families, create_application
from wfsynth.workflows.variant_calling import VariantCalling

FAMILIES = available_families()


def _generate(family, num_jobs, seed=0, *extra):
    app = create_application(family, np.random.default_rng(seed))
    graph = app.generate_workflow("-n", str(num_jobs), *extra)
    return app, graph


def _assert_well_formed(graph):
    assert nx.is_directed_acyclic_graph(graph.to_networkx())
    for task in graph:
        assert task.is_finished
        assert task.metrics.runtime > 0
        assert task.metrics.peak_mem_bytes > 0
        if not task.is_root:
            assert task.inputs, f"{task.id} ({task.task_type}) has parents but no inputs"
        for parent in task.parents.values():
            assert set(parent.outputs) & set(task.inputs)


@pytest.mark.parametrize("family", FAMILIES)
def test_every_family_builds_valid_dags(family):
    cls = APPLICATIONS[family]
    for num_jobs in [cls.MIN_TASKS, cls.MIN_TASKS + 1, cls.MIN_TASKS + 7, 60, 300, 1000]:
        for seed in range(3):
            app, graph = _generate(family, num_jobs, seed)
            _assert_well_formed(graph)
            assert abs(len(graph) - num_jobs) <= 5
            assert set(graph.task_types()) <= set(app.task_types)


@pytest.mark.parametrize("family", FAMILIES)
def test_below_minimum_size_is_a_configuration_error(family):
    cls = APPLICATIONS[family]
    with pytest.raises(ConfigurationError):
        _generate(family, cls.MIN_TASKS - 1)


@pytest.mark.parametrize("family", FAMILIES)
def test_bad_arguments_raise_instead_of_exiting(family):
    app = create_application(family, np.random.default_rng(0))
    with pytest.raises(ConfigurationError):
        app.generate_workflow("-n", "many")
    app = create_application(family, np.random.default_rng(0))
    with pytest.raises(ConfigurationError):
        app.generate_workflow("--no-such-flag", "1")


@pytest.mark.parametrize("family", FAMILIES)
def test_same_seed_reproduces_the_workflow(family):
    _, first = _generate(family, 120, seed=11)
    _, second = _generate(family, 120, seed=11)
    assert [t.task_type for t in first] == [t.task_type for t in second]
    assert [t.metrics for t in first] == [t.metrics for t in second]
    assert {n: f.size for n, f in first.files.items()} == {n: f.size for n, f in second.files.items()}


def test_registry_accepts_aliases():
    assert type(create_application("Epigenomics")).__name__ == "Genome"
    assert type(create_application("seismology")).__name__ == "Cybershake"
    assert type(create_application("Montage.n.1000.3.json")).__name__ == "Montage"
    with pytest.raises(ConfigurationError):
        create_application("blast")


def test_unknown_distribution_key():
    app = Cybershake(np.random.default_rng(0))
    app.populate_distributions()
    assert app.generate_long("GRM") == 24000
    with pytest.raises(ConfigurationError):
        app.generate_double("NOPE")


@pytest.mark.parametrize("num_jobs", [7, 8, 9, 10, 57, 1000])
def test_cybershake_hits_requested_size_exactly(num_jobs):
    app, graph = _generate("cybershake", num_jobs, seed=num_jobs)
    assert len(graph) == num_jobs
    assert len(app.get_tasks("ZipSeis")) == 1
    assert len(app.get_tasks("ZipPSA")) == 1
    synthesis = app.get_tasks("SeismogramSynthesis")
    assert len(app.get_tasks("PeakValCalcOkaya")) == len(synthesis)
    zip_seis = app.get_tasks("ZipSeis")[0]
    assert len(zip_seis.parents) == len(synthesis)
    assert "Cybershake_Seismograms.zip" in zip_seis.outputs


def test_cybershake_stages_variations_and_applies_factor_once():
    app, _ = _generate("cybershake", 200, 3, "--factor", "1")
    for extract in app.get_tasks("ExtractSGT"):
        assert any("variation" in name for name in extract.inputs)
        assert any(name.endswith("_fx.sgt") for name in extract.inputs)
    peaks = [t.metrics.runtime for t in app.get_tasks("PeakValCalcOkaya")]
    # factor 1 leaves the fitted mean of about one second
    assert np.mean(peaks) < 10


def test_cybershake_rupture_mode():
    app = Cybershake(np.random.default_rng(5))
    graph = app.generate_workflow("--ruptures", "2", "--variations", "3", "--site", "USC")
    assert len(app.get_tasks("ExtractSGT")) == 6
    assert all(name.startswith("USC_") for t in app.get_tasks("ExtractSGT") for name in t.inputs)
    _assert_well_formed(graph)


def test_cybershake_rejects_unknown_site():
    with pytest.raises(ConfigurationError):
        _generate("cybershake", 100, 0, "--site", "NOWHERE")


def test_variant_calling_paths_are_independent():
    app = VariantCalling(np.random.default_rng(2))
    graph = app.generate_workflow("--paths", "4", "--gunzips", "3")
    _assert_well_formed(graph)
    assert len(app.get_tasks("faidx")) == 4
    assert len(app.get_tasks("fastqc")) == 3
    annovar, = app.get_tasks("annovar")
    assert len(annovar.parents) == 4
    for align in app.get_tasks("align"):
        assert sum(1 for p in align.parents.values() if p.task_type == "gunzip") == 3
    chromosomes = {name for t in app.get_tasks("pileup") for name in t.inputs if name.endswith(".fa")}
    assert len(chromosomes) == 4
    for task in graph:
        assert 0.4 <= task.metrics.peak_mem_relative_time < 0.6


def test_custom_memory_models_replace_defaults(caplog):
    models = {t: LinearMemoryModel.constant(3e9, 0.0, 10e6) for t in APPLICATIONS["ligo"](None).task_types}
    app = create_application("ligo", np.random.default_rng(1))
    with caplog.at_level(logging.DEBUG, logger="wfsynth.workflows.base"):
        graph = app.generate_workflow_with_models(models, "-n", "40")
    assert {t.metrics.peak_mem_bytes for t in graph} == {3000000000}
    assert f"Ligo: generated {len(graph)} tasks" in caplog.text


def test_finish_runs_once():
    app, graph = _generate("montage", 20)
    task = next(iter(graph))
    with pytest.raises(InvariantViolation):
        app.finish(task)
