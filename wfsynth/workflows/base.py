"""Base class shared by all application-family topology builders."""
from __future__ import annotations

import argparse
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np

from wfsynth.errors import ConfigurationError, InvariantViolation
from wfsynth.eval.statistics import WorkflowStatistics, compute_statistics
from wfsynth.sampling.distribution import Distribution
from wfsynth.sampling.memory_model import LinearMemoryModel
from wfsynth.workflows.dag import Task, TaskGraph, TaskMetrics

logger = logging.getLogger(__name__)

FinishStrategy = Callable[[Task], None]

DEFAULT_PEAK_MEM_RELATIVE_TIME = 0.5


class ArgumentParser(argparse.ArgumentParser):
    """argparse parser that reports bad arguments as ConfigurationError instead of exiting."""

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("add_help", False)
        super().__init__(*args, **kwargs)

    def error(self, message):
        raise ConfigurationError(f"{self.prog}: {message}")


class Application(ABC):
    """Grows one workflow instance of an application family.

    Subclasses register their task types with a finish strategy, configure
    their distributions and memory models, derive stage counts from the
    arguments and wire the DAG.  Each instance owns one random generator; all
    sampling during `generate_workflow` goes through it.
    """

    NAMESPACE = ""
    MIN_TASKS = 1

    def __init__(self, rng: Optional[np.random.Generator] = None) -> None:
        self.rng = rng if rng is not None else np.random.default_rng()
        self.distributions: Dict[str, Distribution] = {}
        self.memory_models: Dict[str, LinearMemoryModel] = {}
        self.graph = TaskGraph(self.name)
        self.runtime_factor = 1.0
        self._finishers: Dict[str, FinishStrategy] = {}
        self._next_id = 0
        self.register_task_types()

    @property
    def name(self) -> str:
        return type(self).__name__

    # ---- task types ----
    @abstractmethod
    def register_task_types(self) -> None:
        """Call `register_task_type` once per task type, in workflow order."""

    def register_task_type(self, task_type: str, finish: Optional[FinishStrategy] = None) -> None:
        self._finishers[task_type] = finish or self.finish_default

    @property
    def task_types(self) -> List[str]:
        return list(self._finishers)

    # ---- sampling ----
    def generate_double(self, key: str) -> float:
        dist = self.distributions.get(key)
        if dist is None:
            raise ConfigurationError(f"No such distribution: {key}")
        return dist.sample(self.rng)

    def generate_long(self, key: str) -> int:
        return int(self.generate_double(key))

    def generate_int(self, key: str) -> int:
        return int(self.generate_double(key))

    def generate_memory(self, task_type: str, input_size: float) -> int:
        model = self.memory_models.get(task_type)
        if model is None:
            raise ConfigurationError(f"No memory model for task type: {task_type}")
        return model.generate(input_size, self.rng)

    def set_constant_memory(self, peaks: Mapping[str, float], error_std: float = 0.64e6,
                            min_value: float = 10e6) -> None:
        """Give each task type a memory model that ignores input size."""
        for task_type, value in peaks.items():
            self.memory_models[task_type] = LinearMemoryModel.constant(value, error_std, min_value)

    # ---- construction ----
    def new_job_id(self) -> str:
        job_id = f"ID{self._next_id:05d}"
        self._next_id += 1
        return job_id

    def new_task(self, task_type: str) -> Task:
        if task_type not in self._finishers:
            raise ConfigurationError(f"Unknown task type {task_type} for {self.name}")
        return self.graph.add_task(Task(self.new_job_id(), task_type, self.NAMESPACE))

    def finish(self, task: Task) -> None:
        """Run the task type's finish strategy once all of the task's links exist."""
        if task.is_finished:
            raise InvariantViolation(f"Task {task.id} ({task.task_type}) was finished twice")
        self._finishers[task.task_type](task)
        if not task.is_finished:
            raise InvariantViolation(f"Finish strategy for {task.task_type} did not complete task {task.id}")

    def complete(self, task: Task, runtime: float, memory_basis: Optional[float] = None) -> TaskMetrics:
        """Attach runtime and a peak memory drawn from the task type's memory model.

        The memory model is evaluated on the task's total input size unless a
        different `memory_basis` (bytes) is given.
        """
        input_size = task.input_total_bytes
        if memory_basis is None:
            memory_basis = input_size
        relative_key = f"{task.task_type}_peak_mem_relative_time"
        if relative_key in self.distributions:
            relative_time = self.generate_double(relative_key)
        else:
            relative_time = DEFAULT_PEAK_MEM_RELATIVE_TIME
        metrics = TaskMetrics(
            runtime=float(runtime),
            peak_mem_bytes=self.generate_memory(task.task_type, memory_basis),
            input_total_bytes=int(input_size),
            peak_mem_relative_time=relative_time,
        )
        task.complete(metrics)
        return metrics

    def finish_default(self, task: Task) -> None:
        """Runtime from the distribution named after the task type, memory from its input size."""
        self.complete(task, self.generate_double(task.task_type) * self.runtime_factor)

    def make_parser(self) -> ArgumentParser:
        parser = ArgumentParser(prog=self.name)
        parser.add_argument("-n", "--num-jobs", type=int, default=0, help="Number of jobs.")
        return parser

    def check_num_jobs(self, num_jobs: int) -> None:
        if num_jobs < self.MIN_TASKS:
            raise ConfigurationError(
                f"Cannot generate {self.name} workflow with numJobs={num_jobs}; minimum is {self.MIN_TASKS}")

    @abstractmethod
    def populate_distributions(self) -> None: ...

    @abstractmethod
    def process_args(self, args: Sequence[str]) -> None: ...

    @abstractmethod
    def construct_workflow(self) -> None: ...

    def generate_workflow(self, *args: str) -> TaskGraph:
        return self.generate_workflow_with_models({}, *args)

    def generate_workflow_with_models(self, memory_models: Mapping[str, LinearMemoryModel], *args: str) -> TaskGraph:
        """Same topology as `generate_workflow`, but with the given per-type memory models."""
        self.populate_distributions()
        self.memory_models.update(memory_models)
        self.process_args([str(a) for a in args])
        self.construct_workflow()
        self.graph.validate()
        logger.debug("%s: generated %d tasks, %d files", self.name, len(self.graph), len(self.graph.files))
        return self.graph

    # ---- inspection ----
    def get_tasks(self, task_type: str) -> List[Task]:
        return self.graph.tasks_of_type(task_type)

    def get_statistics(self) -> WorkflowStatistics:
        return compute_statistics(self.graph)


__all__ = ["Application", "ArgumentParser", "FinishStrategy"]
