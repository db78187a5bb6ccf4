"""
Error taxonomy for task graphs.

Structural errors (bad references, cycles, malformed trees) derive from
TaskGraphError, itself a ValueError, and are raised before any task runs.
TaskExecutionError wraps a failing task action; the executor records it
on the task instead of raising it.
"""
from __future__ import annotations

from typing import List, Optional


class TaskGraphError(ValueError):
    """Base class for structural task graph errors."""


class UnknownTaskReference(TaskGraphError):
    """A dependency references a task id that is not in the graph."""

    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__(f"Unknown task reference: {task_id}")


class SelfDependency(TaskGraphError):
    """A task was declared dependent on itself."""

    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__(f"Task {task_id} cannot depend on itself")


class CycleDetected(TaskGraphError):
    """Linearization found a dependency cycle."""

    def __init__(self, task_id: Optional[int], remaining: List[int]):
        self.task_id = task_id
        self.remaining = remaining
        super().__init__(
            f"Graph contains a cycle through task {task_id} "
            f"({len(remaining)} task(s) could not be ordered)"
        )


class MalformedLevelSequence(TaskGraphError):
    """A level sequence is not a valid pre-order rooted tree encoding."""

    def __init__(self, message: str, index: Optional[int] = None, level: Optional[int] = None):
        self.index = index
        self.level = level
        super().__init__(message)


class NonTreeGraph(TaskGraphError):
    """A graph is not tree-shaped and cannot be encoded as a level sequence."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Graph is not a rooted tree: {reason}")


class TaskExecutionError(Exception):
    """
    A task action failed.

    Recorded on the TaskRecord and in the ExecutionSummary; never raised
    out of Executor.execute().
    """

    def __init__(self, task_id: int, task_name: str, cause: BaseException):
        self.task_id = task_id
        self.task_name = task_name
        self.cause = cause
        super().__init__(f"Task {task_id} ({task_name}) failed: {type(cause).__name__}: {cause}")
        self.__cause__ = cause
