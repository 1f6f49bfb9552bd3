"""Task graph model populated by the topology builders.

A `TaskGraph` owns its tasks and a table of files keyed by name.  The table
fixes a file's size when its name is first used.  Every task holds its own
`File` record per input and output, so the corpus loop can impose a sampled
input size on one consumer without touching the producer or other readers
of the same name.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Optional

import networkx as nx

from wfsynth.errors import InvariantViolation


@dataclass(eq=False)
class File:
    name: str
    size: int

    def __repr__(self) -> str:
        return f"File({self.name!r}, size={self.size})"


@dataclass(frozen=True)
class TaskMetrics:
    """Computed resource usage of a finished task."""
    runtime: float
    peak_mem_bytes: int
    input_total_bytes: int
    peak_mem_relative_time: float = 0.5


class Task:
    """A vertex of the workflow DAG.

    Parent-child links always go through `TaskGraph.add_link`, which keeps
    the file tables and both directions of the edge consistent.
    """

    __slots__ = (
        "id",
        "task_type",
        "namespace",
        "version",
        "inputs",
        "outputs",
        "children",
        "parents",
        "metrics",
    )

    def __init__(self, task_id: str, task_type: str, namespace: str = "", version: str = "1.0") -> None:
        self.id: str = task_id
        self.task_type: str = task_type
        self.namespace: str = namespace
        self.version: str = version
        self.inputs: Dict[str, File] = {}
        self.outputs: Dict[str, File] = {}
        self.children: Dict[str, Task] = {}
        self.parents: Dict[str, Task] = {}
        self.metrics: Optional[TaskMetrics] = None

    @property
    def input_total_bytes(self) -> int:
        return sum(f.size for f in self.inputs.values())

    @property
    def output_total_bytes(self) -> int:
        return sum(f.size for f in self.outputs.values())

    @property
    def is_root(self) -> bool:
        return not self.parents

    @property
    def is_finished(self) -> bool:
        return self.metrics is not None

    def complete(self, metrics: TaskMetrics) -> None:
        """Attach the computed metrics; allowed exactly once."""
        if self.metrics is not None:
            raise InvariantViolation(f"Task {self.id} ({self.task_type}) was finished twice")
        self.metrics = metrics

    def update_metrics(self, **changes) -> TaskMetrics:
        """Replace the metrics record with a copy carrying `changes`."""
        if self.metrics is None:
            raise InvariantViolation(f"Task {self.id} ({self.task_type}) has no metrics to update")
        self.metrics = replace(self.metrics, **changes)
        return self.metrics

    @property
    def annotations(self) -> Dict[str, str]:
        """Key-value bag handed to workflow serializers."""
        if self.metrics is None:
            raise InvariantViolation(f"Task {self.id} ({self.task_type}) is not finished")
        return {
            "runtime": f"{self.metrics.runtime:.2f}",
            "input_total_bytes": str(self.metrics.input_total_bytes),
            "peak_mem_bytes": str(self.metrics.peak_mem_bytes),
        }

    @property
    def argument(self) -> str:
        if self.metrics is None:
            raise InvariantViolation(f"Task {self.id} ({self.task_type}) is not finished")
        return (f"peak_mem_bytes={self.metrics.peak_mem_bytes},"
                f"peak_memory_relative_time={self.metrics.peak_mem_relative_time:.3f}")

    def __repr__(self) -> str:
        return (f"Task(id={self.id}, type={self.task_type}, inputs={len(self.inputs)}, "
                f"outputs={len(self.outputs)}, children={len(self.children)})")


class TaskGraph:
    """Insertion-ordered collection of tasks forming a DAG."""

    def __init__(self, name: str = "workflow") -> None:
        self.name = name
        self.tasks: Dict[str, Task] = {}
        self.files: Dict[str, File] = {}

    def __iter__(self) -> Iterator[Task]:
        return iter(self.tasks.values())

    def __len__(self) -> int:
        return len(self.tasks)

    def add_task(self, task: Task) -> Task:
        if task.id in self.tasks:
            raise InvariantViolation(f"Duplicate task id {task.id}")
        self.tasks[task.id] = task
        return task

    def file(self, name: str, size: int) -> File:
        """Return the file called `name`, creating it with `size` if unknown."""
        f = self.files.get(name)
        if f is None:
            f = File(name, int(size))
            self.files[name] = f
        return f

    def add_input(self, task: Task, name: str, size: int) -> File:
        f = self.file(name, size)
        task.inputs[f.name] = File(f.name, f.size)
        return task.inputs[f.name]

    def add_output(self, task: Task, name: str, size: int) -> File:
        f = self.file(name, size)
        task.outputs[f.name] = File(f.name, f.size)
        return task.outputs[f.name]

    def add_link(self, parent: Task, child: Task, name: str, size: int) -> File:
        """Make `name` an output of `parent`, an input of `child`, and add the edge.

        Returns the parent's output record.
        """
        if parent is child:
            raise InvariantViolation(f"Task {parent.id} cannot depend on itself")
        f = self.add_output(parent, name, size)
        child.inputs[f.name] = File(f.name, f.size)
        parent.children[child.id] = child
        child.parents[parent.id] = parent
        return f

    def tasks_of_type(self, task_type: str) -> List[Task]:
        return [t for t in self.tasks.values() if t.task_type == task_type]

    def task_types(self) -> List[str]:
        return list(dict.fromkeys(t.task_type for t in self.tasks.values()))

    def roots(self) -> List[Task]:
        return [t for t in self.tasks.values() if t.is_root]

    def to_networkx(self) -> nx.DiGraph:
        g = nx.DiGraph(name=self.name)
        for task in self.tasks.values():
            g.add_node(task.id, task_type=task.task_type)
        for task in self.tasks.values():
            for child_id in task.children:
                g.add_edge(task.id, child_id)
        return g

    def validate(self) -> None:
        """Check the contracts serializers and statistics rely on."""
        g = self.to_networkx()
        if not nx.is_directed_acyclic_graph(g):
            cycle = nx.find_cycle(g)
            raise InvariantViolation(f"Workflow {self.name} contains a cycle: {cycle}")
        for task in self.tasks.values():
            if not task.is_finished:
                raise InvariantViolation(f"Task {task.id} ({task.task_type}) was never finished")
            if not task.is_root and not task.inputs:
                raise InvariantViolation(f"Non-root task {task.id} ({task.task_type}) has no input files")


__all__ = ["File", "Task", "TaskMetrics", "TaskGraph"]
