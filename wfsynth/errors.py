"""Exception types shared across the generator."""


class WorkflowGenerationError(Exception):
    """Base class for all generator errors."""


class ConfigurationError(WorkflowGenerationError, ValueError):
    """Unknown distribution key, invalid sizing argument or unknown family.

    Fatal for the current generation attempt; never retried.
    """


class InvariantViolation(WorkflowGenerationError, AssertionError):
    """A generated graph broke a contract the statistics rely on
    (non-positive runtime or memory, cycles, unfinished tasks)."""


class AcceptanceExhaustedError(WorkflowGenerationError, RuntimeError):
    """The accept/reject loop hit its attempt bound without an accepted instance."""
