"""Corpus generation: many workflow instances per family and size.

For every (family, size, instance) the generator

1. builds a fresh application with its own seeded random generator,
2. optionally replaces the memory of every task type by a random linear
   memory model, imposing the model's input sizes on the tasks' input files,
3. rejects and regenerates instances that fail the acceptance criteria, at
   most `max_attempts` times,
4. optionally rescales all runtimes so the instance uses `target_tib_weeks`,
5. registers the statistics and hands the graph to the sink.
"""
from __future__ import annotations

import logging
from typing import Iterator, Optional, Tuple

import numpy as np

from wfsynth.errors import AcceptanceExhaustedError, ConfigurationError
from wfsynth.eval.statistics import CorpusStatistics, WorkflowStatistics
from wfsynth.interfaces import WorkflowSink
from wfsynth.sampling.memory_model import random_memory_model
from wfsynth.utils import get_logger
from wfsynth.utils.config import CorpusConfig, MemoryModelConfig
from wfsynth.workflows.base import Application
from wfsynth.workflows.dag import Task, TaskGraph
from wfsynth.workflows.registry import create_application, get_application_class

logger = get_logger(__name__, logging.INFO)


def instance_identifier(app: Application, num_tasks: int, instance: int,
                        requested_size: Optional[int] = None) -> str:
    """`{Family}.n.{num_tasks}.{instance}`, with `.r{requested_size}` appended when given."""
    identifier = f"{app.name}.n.{num_tasks}.{instance}"
    if requested_size is not None:
        identifier += f".r{requested_size}"
    return identifier


def apply_random_memory_models(app: Application, memory_config: MemoryModelConfig) -> None:
    """Give each task type a random memory model and impose its samples on the tasks.

    The i-th task of a type gets the i-th memory sample as its peak memory and
    the i-th input size sample spread evenly over its input files.  Input
    records are per task, so producers and other readers of a file keep
    their own sizes.
    """
    for task_type in app.task_types:
        tasks = app.get_tasks(task_type)
        if not tasks:
            continue
        model, samples = random_memory_model(
            len(tasks),
            memory_config.min_file_size,
            memory_config.max_mem_consumption,
            memory_config.linear_task_chance,
            memory_config.min_slope,
            memory_config.max_slope,
            app.rng,
        )
        app.memory_models[task_type] = model
        logger.debug("%s %s: %s", app.name, task_type, model.describe(samples))

        for i, task in enumerate(tasks):
            if task.inputs:
                spread_input_size(task, int(samples.input_sizes[i]))
            else:
                logger.warning("%s: %s task %s has zero input files to distribute input size to",
                               app.name, task_type, task.id)
            task.update_metrics(peak_mem_bytes=int(samples.peak_memory[i]),
                                input_total_bytes=task.input_total_bytes,
                                peak_mem_relative_time=0.5)


def spread_input_size(task: Task, total: int) -> None:
    """Split `total` bytes over the task's input files; the first files take the remainder."""
    share, remainder = divmod(total, len(task.inputs))
    for k, f in enumerate(task.inputs.values()):
        f.size = share + (1 if k < remainder else 0)


def rescale_runtimes(graph: TaskGraph, factor: float) -> None:
    """Divide every task runtime by `factor`."""
    if factor <= 0:
        raise ConfigurationError(f"Scale factor must be positive, got {factor}")
    for task in graph:
        task.update_metrics(runtime=task.metrics.runtime / factor)


def normalize_runtimes(app: Application, target_tib_weeks: float) -> WorkflowStatistics:
    """Scale runtimes so the workflow's spacetime equals `target_tib_weeks`; return the new statistics."""
    before = app.get_statistics()
    logger.info("TiB-weeks before normalization = %.6f", before.tib_weeks)
    rescale_runtimes(app.graph, before.tib_weeks / target_tib_weeks)
    after = app.get_statistics()
    logger.info("TiB-weeks after normalization = %.6f", after.tib_weeks)
    return after


class CorpusGenerator:
    """Drives generation of a whole corpus as described by a CorpusConfig."""

    def __init__(self, config: CorpusConfig, sink: Optional[WorkflowSink] = None):
        self.config = config
        self.sink = sink
        self.statistics = CorpusStatistics()
        # fail early on unknown families
        for family in config.families:
            get_application_class(family)

    def configurations(self) -> Iterator[Tuple[int, str, int, int]]:
        for family_index, family in enumerate(self.config.families):
            for size in self.config.sizes:
                for instance in range(self.config.num_instances):
                    yield family_index, family, int(size), instance

    def generate_candidate(self, family: str, size: int, rng: np.random.Generator) -> Application:
        app = create_application(family, rng)
        app.generate_workflow("-n", str(size))
        if self.config.random_memory_models:
            apply_random_memory_models(app, self.config.memory_model)
        return app

    def generate_instance(self, family_index: int, family: str, size: int,
                          instance: int) -> Tuple[Application, WorkflowStatistics]:
        """Generate one accepted instance, regenerating rejected candidates."""
        acceptance = self.config.acceptance
        for attempt in range(self.config.max_attempts):
            rng = np.random.default_rng([self.config.seed, family_index, size, instance, attempt])
            app = self.generate_candidate(family, size, rng)
            statistics = app.get_statistics()
            if acceptance.accepts(statistics):
                if attempt:
                    logger.info("%s n=%d instance %d accepted after %d attempts",
                                app.name, size, instance, attempt + 1)
                return app, statistics
            logger.debug("Rejected %s n=%d instance %d: heterogeneity=%.3f, cpu/mem=%.3f",
                         app.name, size, instance, statistics.memory_heterogeneity, statistics.cpu_to_mem_ratio)
        raise AcceptanceExhaustedError(
            f"No {family} workflow with n={size} (instance {instance}) met the acceptance criteria "
            f"within {self.config.max_attempts} attempts")

    def run(self) -> CorpusStatistics:
        for family_index, family, size, instance in self.configurations():
            app, statistics = self.generate_instance(family_index, family, size, instance)
            if self.config.target_tib_weeks is not None:
                statistics = normalize_runtimes(app, self.config.target_tib_weeks)

            identifier = instance_identifier(app, statistics.num_tasks, instance)
            if identifier in self.statistics:
                # nearby requested sizes can land on the same task count
                identifier = instance_identifier(app, statistics.num_tasks, instance, size)
                logger.info("%s n=%d instance %d has %d tasks like an earlier instance; naming it %s",
                            app.name, size, instance, statistics.num_tasks, identifier)
            self.statistics.add(identifier, statistics)
            if self.sink is not None:
                self.sink.emit(app.graph, identifier)
            logger.debug("%s\n%s", identifier, statistics.describe_memory())

        logger.info("Generated %d workflow instances", len(self.statistics))
        return self.statistics


__all__ = [
    "CorpusGenerator",
    "apply_random_memory_models",
    "normalize_runtimes",
    "rescale_runtimes",
    "instance_identifier",
    "spread_input_size",
]
