"""
Interfaces for the collaborators of the corpus generator.
The generator only depends on these protocols; `JsonWorkflowSink` is the
implementation shipped with the package.
"""
from typing import Any, Protocol

from wfsynth.workflows.dag import TaskGraph


class WorkflowSink(Protocol):
    """Receives every accepted workflow instance."""
    def emit(self, graph: TaskGraph, identifier: str) -> Any: ...
