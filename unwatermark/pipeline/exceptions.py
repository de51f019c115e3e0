class PipelineError(Exception):
    """Base exception for all pipeline-related errors."""


class InvalidStatusTransitionError(PipelineError):
    """Raised when an item is moved to a status it cannot reach from its current one."""


class UnknownReferenceError(PipelineError):
    """Raised when a reference is resolved after release or was never issued."""
