"""
TaskGraph: Declarative DAG of callable tasks.

Provides task creation, dependency registration, status tracking and a
cached linearization (topological order plus parallel levels).
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Literal, Optional, Set, Tuple

from .errors import SelfDependency, TaskExecutionError, UnknownTaskReference
from .linearizer import Linearization, linearize


logger = logging.getLogger(__name__)

TaskStatus = Literal["pending", "running", "succeeded", "failed", "skipped"]
TASK_STATUSES: Tuple[str, ...] = ("pending", "running", "succeeded", "failed", "skipped")

# Status of a task whose (transitive) dependency failed
SKIPPED_DUE_TO_DEPENDENCY_FAILURE: TaskStatus = "skipped"

TaskAction = Callable[[], Any]


@dataclass
class TaskRecord:
    """A single unit of work in the graph."""

    id: int
    name: str
    action: TaskAction = field(repr=False)
    dependencies: Set[int] = field(default_factory=set)
    status: TaskStatus = "pending"
    result: Any = None
    error: Optional[TaskExecutionError] = None
    skipped_because: Optional[int] = None  # Failed/skipped dependency that caused a skip
    compute_time_s: float = 0.0

    @property
    def completed(self) -> bool:
        """True once the action has run, successfully or not."""
        return self.status in ("succeeded", "failed")

    def reset(self) -> None:
        """Clear run state, keeping identity and dependencies."""
        self.status = "pending"
        self.result = None
        self.error = None
        self.skipped_because = None
        self.compute_time_s = 0.0


class TaskGraph:
    """
    Directed Acyclic Graph (DAG) of tasks with dependency management.

    Tasks live in a dense list indexed by ``id - 1``; ids are assigned
    from 1 in creation order and never reused.

    Provides:
    - Create tasks and declare dependencies between them
    - Topological order and levels for parallel execution (cached)
    - Cycle detection (deferred to linearization)
    - Status tracking and statistics
    """

    def __init__(self):
        self._tasks: List[TaskRecord] = []
        self._linearization: Optional[Linearization] = None
        self._run_lock = threading.Lock()
        self._running = False

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def create_task(self, name: str, action: Optional[TaskAction] = None) -> int:
        """
        Add a task with no dependencies.

        Args:
            name: Display name
            action: Zero-argument callable run by the executor (default: no-op)

        Returns:
            The new task id
        """
        self._check_mutable()
        task_id = len(self._tasks) + 1
        self._tasks.append(TaskRecord(id=task_id, name=name, action=action or _noop))
        self._linearization = None
        logger.debug(f"Created task {task_id} ({name})")
        return task_id

    def add_dependency(self, from_id: int, to_id: int) -> None:
        """
        Declare that ``to_id`` depends on ``from_id`` (edge from_id -> to_id).

        Raises:
            UnknownTaskReference: If either id is not in the graph
            SelfDependency: If from_id == to_id
        """
        self._check_mutable()
        for task_id in (from_id, to_id):
            if task_id not in self:
                raise UnknownTaskReference(task_id)
        if from_id == to_id:
            raise SelfDependency(from_id)

        self._tasks[to_id - 1].dependencies.add(from_id)
        self._linearization = None
        logger.debug(f"Added dependency {from_id} -> {to_id}")

    def reset_for_rerun(self) -> None:
        """Reset every task to pending with no result; structure is unchanged."""
        self._check_mutable()
        for task in self._tasks:
            task.reset()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def tasks(self) -> Dict[int, TaskRecord]:
        """Mapping of id to TaskRecord in creation order."""
        return {task.id: task for task in self._tasks}

    def get_task(self, task_id: int) -> TaskRecord:
        """Get task by id."""
        if task_id not in self:
            raise UnknownTaskReference(task_id)
        return self._tasks[task_id - 1]

    def get_status(self, task_id: int) -> TaskStatus:
        """Get task status."""
        return self.get_task(task_id).status

    def task_ids(self) -> List[int]:
        """All task ids in ascending order."""
        return [task.id for task in self._tasks]

    def dependents(self, task_id: int) -> List[int]:
        """Ids of tasks that depend directly on ``task_id``, ascending."""
        self.get_task(task_id)
        return [task.id for task in self._tasks if task_id in task.dependencies]

    def edges(self) -> List[Tuple[int, int]]:
        """All dependency edges as sorted (from_id, to_id) pairs."""
        return sorted(
            (dep_id, task.id) for task in self._tasks for dep_id in task.dependencies
        )

    def results(self) -> Dict[int, Any]:
        """Results of succeeded tasks, keyed by id."""
        return {task.id: task.result for task in self._tasks if task.status == "succeeded"}

    # ------------------------------------------------------------------
    # Linearization
    # ------------------------------------------------------------------

    def linearize(self) -> Linearization:
        """
        Validate the graph and compute its execution order and levels.

        The result is cached until the next structural mutation.

        Raises:
            CycleDetected: If the dependencies contain a cycle
        """
        if self._linearization is None:
            self._linearization = linearize(self._tasks)
        return self._linearization

    @property
    def execution_order(self) -> List[int]:
        """Topologically sorted task ids (ascending id among ties)."""
        return list(self.linearize().order)

    def get_execution_order(self) -> List[int]:
        """Get topologically sorted task execution order."""
        return self.execution_order

    def get_topological_levels(self) -> List[List[int]]:
        """
        Get tasks grouped by dependency level for parallel execution.

        Level 0: Tasks with no dependencies
        Level N: 1 + max level of the task's dependencies
        """
        return [list(level) for level in self.linearize().levels]

    # ------------------------------------------------------------------
    # Status updates (used by the executor)
    # ------------------------------------------------------------------

    def mark_status(self, task_id: int, status: TaskStatus) -> None:
        """Update task status."""
        self.get_task(task_id).status = status

    def mark_succeeded(self, task_id: int, result: Any, compute_time_s: float = 0.0) -> None:
        """Mark task as succeeded with result."""
        task = self.get_task(task_id)
        task.status = "succeeded"
        task.result = result
        task.error = None
        task.compute_time_s = compute_time_s

    def mark_failed(self, task_id: int, error: TaskExecutionError, compute_time_s: float = 0.0) -> None:
        """Mark task as failed with its error; result stays empty."""
        task = self.get_task(task_id)
        task.status = "failed"
        task.result = None
        task.error = error
        task.compute_time_s = compute_time_s

    def mark_skipped(self, task_id: int, because: int) -> None:
        """Mark task as skipped because dependency ``because`` did not succeed."""
        task = self.get_task(task_id)
        task.status = SKIPPED_DUE_TO_DEPENDENCY_FAILURE
        task.skipped_because = because

    def is_complete(self) -> bool:
        """Check if every task has reached a terminal status."""
        return all(task.status in ("succeeded", "failed", "skipped") for task in self._tasks)

    def has_failed_tasks(self) -> bool:
        """Check if any tasks have failed."""
        return any(task.status == "failed" for task in self._tasks)

    def get_stats(self) -> Dict[str, int]:
        """Get task statistics by status."""
        stats = {"total": len(self._tasks)}
        stats.update({status: 0 for status in TASK_STATUSES})
        for task in self._tasks:
            stats[task.status] += 1
        return stats

    # ------------------------------------------------------------------
    # Run guard
    # ------------------------------------------------------------------

    def _begin_run(self) -> None:
        with self._run_lock:
            if self._running:
                raise RuntimeError("TaskGraph is already executing")
            self._running = True

    def _end_run(self) -> None:
        with self._run_lock:
            self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def _check_mutable(self) -> None:
        if self._running:
            raise RuntimeError("TaskGraph is frozen while executing")

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def describe(self) -> str:
        """Render tasks, their dependencies and the execution order as text."""
        lines = [f"TaskGraph with {len(self)} task(s):"]
        for task in self._tasks:
            deps = ", ".join(str(d) for d in sorted(task.dependencies)) or "-"
            lines.append(f"  [{task.id}] {task.name}  deps: {deps}  status: {task.status}")
        try:
            order = " -> ".join(str(t) for t in self.execution_order)
        except ValueError as e:
            order = f"<invalid: {e}>"
        lines.append(f"  Execution order: {order}")
        return "\n".join(lines)

    def __len__(self) -> int:
        """Number of tasks in the graph."""
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        if isinstance(task_id, bool) or not isinstance(task_id, int):
            return False
        return 1 <= task_id <= len(self._tasks)

    def __iter__(self) -> Iterator[TaskRecord]:
        return iter(self._tasks)

    def __repr__(self) -> str:
        stats = self.get_stats()
        return (
            f"TaskGraph({stats['total']} tasks: "
            f"{stats['succeeded']} succeeded, "
            f"{stats['failed']} failed, "
            f"{stats['skipped']} skipped, "
            f"{stats['pending']} pending)"
        )


def _noop() -> None:
    return None
