"""
Linearizer: topological order and parallel levels for a task graph.

Kahn's algorithm over in-degree counts, with a min-heap ready queue so
that ties are always broken by ascending task id.
"""
from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Sequence, Tuple

from .errors import CycleDetected, UnknownTaskReference

if TYPE_CHECKING:
    from .task_graph import TaskRecord


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Linearization:
    """
    Execution order and level assignment of a validated graph.

    Attributes:
        order: Task ids in topological order
        levels: Task ids grouped by level, ascending id within a level
        level_of: Level of each task id
    """

    order: Tuple[int, ...]
    levels: Tuple[Tuple[int, ...], ...]
    level_of: Dict[int, int]

    def __len__(self) -> int:
        return len(self.order)


def linearize(tasks: Sequence["TaskRecord"]) -> Linearization:
    """
    Compute the topological order and level of every task.

    Args:
        tasks: Dense task list where ``tasks[i].id == i + 1``

    Returns:
        Linearization of the graph

    Raises:
        UnknownTaskReference: If a dependency id is not in ``tasks``
        CycleDetected: If the dependencies contain a cycle
    """
    n = len(tasks)
    in_degree = [0] * (n + 1)
    successors: List[List[int]] = [[] for _ in range(n + 1)]

    for task in tasks:
        for dep_id in task.dependencies:
            if not 1 <= dep_id <= n:
                raise UnknownTaskReference(dep_id)
            successors[dep_id].append(task.id)
        in_degree[task.id] = len(task.dependencies)

    ready = [task.id for task in tasks if in_degree[task.id] == 0]
    heapq.heapify(ready)
    order: List[int] = []

    while ready:
        task_id = heapq.heappop(ready)
        order.append(task_id)
        for succ_id in successors[task_id]:
            in_degree[succ_id] -= 1
            if in_degree[succ_id] == 0:
                heapq.heappush(ready, succ_id)

    if len(order) != n:
        remaining = [task.id for task in tasks if in_degree[task.id] > 0]
        on_cycle = _find_cycle_member(tasks, remaining)
        logger.warning(f"Cycle detected through task {on_cycle}; {len(remaining)} task(s) unordered")
        raise CycleDetected(on_cycle, remaining)

    # Dependencies precede dependents in `order`, so their levels are known
    level_of: Dict[int, int] = {}
    for task_id in order:
        deps = tasks[task_id - 1].dependencies
        level_of[task_id] = 1 + max(level_of[d] for d in deps) if deps else 0

    grouped: List[List[int]] = [[] for _ in range(max(level_of.values(), default=-1) + 1)]
    for task_id in sorted(level_of):
        grouped[level_of[task_id]].append(task_id)

    logger.debug(f"Linearized {n} task(s) into {len(grouped)} level(s)")
    return Linearization(
        order=tuple(order),
        levels=tuple(tuple(level) for level in grouped),
        level_of=level_of,
    )


def _find_cycle_member(tasks: Sequence["TaskRecord"], remaining: List[int]) -> int:
    """
    Return a task id lying on a cycle.

    Every unordered task still has an unordered dependency, so walking
    those dependencies from any unordered task must revisit a task.
    """
    unresolved = set(remaining)
    seen = set()
    current = remaining[0]
    while current not in seen:
        seen.add(current)
        current = min(d for d in tasks[current - 1].dependencies if d in unresolved)
    return current
