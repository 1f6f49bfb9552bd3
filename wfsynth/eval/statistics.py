"""Aggregate resource statistics of a generated workflow and of a whole corpus.

Memory is reported in bytes per task and converted to megabytes (1e6 bytes)
for the spacetime integrals:

    spacetime      S = sum(runtime_i * peak_i)
    wastage        W = sum(runtime_i * (max_peak - peak_i))
    heterogeneity  S / (S + W), in (0, 1]; 1 when every task peaks equally
    cpu:mem ratio  total_runtime * 4000 / S, i.e. spacetime relative to 4 GB per core
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from wfsynth.errors import InvariantViolation
from wfsynth.workflows.dag import TaskGraph

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1e6
# reference machine shape: 4 GB per core, in MB
MEMORY_PER_CORE_MB = 4000.0

SUMMARY_COLUMNS = [
    "identifier",
    "num_tasks",
    "total_runtime_seconds",
    "total_spacetime_megabyte_seconds",
    "min_peak_memory_mb",
    "max_peak_memory_mb",
    "min_average_peak_memory_mb",
    "max_average_peak_memory_mb",
    "memory_heterogeneity",
    "cpu_to_mem_ratio",
]


@dataclass(frozen=True)
class SummaryStats:
    count: int
    min: float
    max: float
    mean: float
    std: float

    @classmethod
    def of(cls, values: Sequence[float]) -> "SummaryStats":
        arr = np.asarray(values, dtype=float)
        std = float(arr.std(ddof=1)) if arr.size > 1 else 0.0
        return cls(int(arr.size), float(arr.min()), float(arr.max()), float(arr.mean()), std)


def tib_weeks(spacetime_megabyte_seconds: float) -> float:
    """Convert MB·s into TiB·weeks, the unit corpus targets are expressed in."""
    return spacetime_megabyte_seconds / 1024 / 1024 / 3600 / 24 / 7


@dataclass(frozen=True)
class WorkflowStatistics:
    num_tasks: int
    tasks_per_type: Dict[str, int]
    total_runtime_seconds: float
    total_spacetime_megabyte_seconds: float
    memory_per_type: Dict[str, SummaryStats]
    input_sizes_per_type: Dict[str, SummaryStats]
    min_peak_memory_bytes: int
    max_peak_memory_bytes: int
    smallest_average_peak_memory_bytes: float
    largest_average_peak_memory_bytes: float
    memory_heterogeneity: float
    cpu_to_mem_ratio: float

    @property
    def tib_weeks(self) -> float:
        return tib_weeks(self.total_spacetime_megabyte_seconds)

    def summary_row(self, identifier: str) -> Dict[str, object]:
        """One row of the corpus summary table."""
        return {
            "identifier": identifier,
            "num_tasks": self.num_tasks,
            "total_runtime_seconds": self.total_runtime_seconds,
            "total_spacetime_megabyte_seconds": self.total_spacetime_megabyte_seconds,
            "min_peak_memory_mb": self.min_peak_memory_bytes / BYTES_PER_MB,
            "max_peak_memory_mb": self.max_peak_memory_bytes / BYTES_PER_MB,
            "min_average_peak_memory_mb": self.smallest_average_peak_memory_bytes / BYTES_PER_MB,
            "max_average_peak_memory_mb": self.largest_average_peak_memory_bytes / BYTES_PER_MB,
            "memory_heterogeneity": self.memory_heterogeneity,
            "cpu_to_mem_ratio": self.cpu_to_mem_ratio,
        }

    def describe_memory(self) -> str:
        lines = []
        for task_type, stats in self.memory_per_type.items():
            lines.append(f"{task_type}: n={stats.count}, mean={stats.mean / BYTES_PER_MB:.2f} MB, "
                         f"sd={stats.std / BYTES_PER_MB:.2f} MB")
        return "\n".join(lines)


def compute_statistics(graph: TaskGraph) -> WorkflowStatistics:
    """Reduce a finished task graph to its WorkflowStatistics.

    Every task must carry a positive runtime and peak memory.
    """
    if len(graph) == 0:
        raise InvariantViolation(f"Workflow {graph.name} has no tasks")

    tasks_per_type: Dict[str, int] = {}
    memory: Dict[str, List[float]] = {}
    inputs: Dict[str, List[float]] = {}
    total_runtime = 0.0
    spacetime = 0.0

    for task in graph:
        if task.metrics is None:
            raise InvariantViolation(f"Task {task.id} ({task.task_type}) is not finished")
        runtime = task.metrics.runtime
        peak = task.metrics.peak_mem_bytes
        if not runtime > 0:
            raise InvariantViolation(f"Task runtime must be > 0, is {runtime} for task {task.id} ({task.task_type})")
        if not peak > 0:
            raise InvariantViolation(
                f"Task peak memory consumption must be > 0, is {peak} for task {task.id} ({task.task_type})")

        tasks_per_type[task.task_type] = tasks_per_type.get(task.task_type, 0) + 1
        total_runtime += runtime
        spacetime += runtime * (peak / BYTES_PER_MB)
        memory.setdefault(task.task_type, []).append(peak)
        inputs.setdefault(task.task_type, []).append(task.input_total_bytes)

    memory_per_type = {t: SummaryStats.of(v) for t, v in memory.items()}
    input_sizes_per_type = {t: SummaryStats.of(v) for t, v in inputs.items()}
    max_peak = int(max(s.max for s in memory_per_type.values()))
    min_peak = int(min(s.min for s in memory_per_type.values()))
    averages = [s.mean for s in memory_per_type.values()]

    # second pass needs the global maximum
    wastage = 0.0
    for task in graph:
        wastage += task.metrics.runtime * ((max_peak - task.metrics.peak_mem_bytes) / BYTES_PER_MB)

    return WorkflowStatistics(
        num_tasks=len(graph),
        tasks_per_type=tasks_per_type,
        total_runtime_seconds=total_runtime,
        total_spacetime_megabyte_seconds=spacetime,
        memory_per_type=memory_per_type,
        input_sizes_per_type=input_sizes_per_type,
        min_peak_memory_bytes=min_peak,
        max_peak_memory_bytes=max_peak,
        smallest_average_peak_memory_bytes=min(averages),
        largest_average_peak_memory_bytes=max(averages),
        memory_heterogeneity=spacetime / (spacetime + wastage),
        cpu_to_mem_ratio=total_runtime * MEMORY_PER_CORE_MB / spacetime,
    )


@dataclass
class CorpusStatistics:
    """Append-only registry of per-instance statistics, keyed by output identifier."""
    entries: Dict[str, WorkflowStatistics] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, identifier: str) -> bool:
        return identifier in self.entries

    def add(self, identifier: str, statistics: WorkflowStatistics) -> None:
        if identifier in self.entries:
            raise InvariantViolation(f"Corpus already contains an instance named {identifier}")
        self.entries[identifier] = statistics

    def rows(self) -> List[Dict[str, object]]:
        return [s.summary_row(identifier) for identifier, s in self.entries.items()]

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows(), columns=SUMMARY_COLUMNS)

    def write_csv(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_dataframe().to_csv(path, index=False)
        logger.info("Wrote corpus summary with %d rows to %s", len(self), path)
        return path


__all__ = [
    "SummaryStats",
    "WorkflowStatistics",
    "CorpusStatistics",
    "compute_statistics",
    "tib_weeks",
    "SUMMARY_COLUMNS",
]
