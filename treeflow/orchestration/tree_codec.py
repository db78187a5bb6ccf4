"""
TreeCodec: conversion between rooted-tree level sequences and task graphs.

A level sequence lists node depths in pre-order, root first at depth 1.
The parent of node i is the nearest preceding node one level shallower.
Decoding turns every node into a task and every parent -> child link into
a dependency; encoding reverses this for tree-shaped graphs.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence, Union

import numpy as np

from ..shared.defaults import DEFAULT_TASK_NAME_PREFIX
from .errors import MalformedLevelSequence, NonTreeGraph
from .task_graph import TaskAction, TaskGraph


logger = logging.getLogger(__name__)

LevelSequence = Union[Sequence[int], np.ndarray]
ActionProvider = Callable[[int], Optional[TaskAction]]


def _as_level_array(level_sequence: LevelSequence) -> np.ndarray:
    levels = np.asarray(level_sequence)

    if levels.ndim != 1:
        raise MalformedLevelSequence(f"Level sequence must be one-dimensional, got shape {levels.shape}")
    if levels.size == 0:
        raise MalformedLevelSequence("Level sequence is empty")
    if not np.issubdtype(levels.dtype, np.integer):
        raise MalformedLevelSequence(f"Level sequence must contain integers, got dtype {levels.dtype}")

    non_positive = np.flatnonzero(levels < 1)
    if non_positive.size:
        index = int(non_positive[0]) + 1
        raise MalformedLevelSequence(
            f"Level {int(levels[index - 1])} at position {index} is not positive",
            index=index,
            level=int(levels[index - 1]),
        )
    if levels[0] != 1:
        raise MalformedLevelSequence(
            f"Level sequence must start at root level 1, got {int(levels[0])}",
            index=1,
            level=int(levels[0]),
        )
    return levels


def parent_indices(level_sequence: LevelSequence) -> List[int]:
    """
    Parent position of every node in a level sequence.

    Args:
        level_sequence: Pre-order depths, e.g. [1, 2, 2, 3]

    Returns:
        1-based parent index per node, 0 for the root (e.g. [0, 1, 1, 3])

    Raises:
        MalformedLevelSequence: If some node has no preceding node one level up
    """
    levels = _as_level_array(level_sequence)

    # Latest position seen at each level is the nearest one scanning backward
    last_at_level: Dict[int, int] = {1: 1}
    parents = [0]
    for index in range(2, levels.size + 1):
        level = int(levels[index - 1])
        parent = last_at_level.get(level - 1)
        if parent is None:
            raise MalformedLevelSequence(
                f"Node {index} at level {level} has no ancestor at level {level - 1}",
                index=index,
                level=level,
            )
        parents.append(parent)
        last_at_level[level] = index
    return parents


def tree_to_taskgraph(
    level_sequence: LevelSequence,
    action_provider: Optional[ActionProvider] = None,
    name_prefix: str = DEFAULT_TASK_NAME_PREFIX,
) -> TaskGraph:
    """
    Build a TaskGraph from a level sequence.

    Node i (1-based) becomes task i named ``f"{name_prefix}{i}"``; each
    parent p gets an edge p -> i.

    Args:
        level_sequence: Pre-order depths of a rooted tree
        action_provider: Optional ``index -> action`` giving each node's task body
                         (None or a None return means a no-op task)
        name_prefix: Prefix for generated task names

    Raises:
        MalformedLevelSequence: If the sequence does not encode a rooted tree
    """
    parents = parent_indices(level_sequence)

    graph = TaskGraph()
    for index in range(1, len(parents) + 1):
        action = action_provider(index) if action_provider is not None else None
        graph.create_task(f"{name_prefix}{index}", action)

    for index, parent in enumerate(parents, start=1):
        if parent:
            graph.add_dependency(parent, index)

    logger.debug(f"Decoded level sequence of {len(parents)} node(s) into a task graph")
    return graph


def taskgraph_to_tree(graph: TaskGraph) -> List[int]:
    """
    Encode a tree-shaped TaskGraph as a level sequence.

    Tasks are visited depth-first from the root, children in ascending id,
    which for decoded graphs is exactly the execution order.

    Raises:
        NonTreeGraph: If the graph is empty, has more or fewer than one root,
                      a task with several dependencies, or unreachable tasks
    """
    if len(graph) == 0:
        raise NonTreeGraph("graph is empty")

    roots = [task.id for task in graph if not task.dependencies]
    if len(roots) != 1:
        raise NonTreeGraph(f"expected exactly one root task, found {len(roots)}")

    children: Dict[int, List[int]] = {task.id: [] for task in graph}
    for task in graph:
        if len(task.dependencies) > 1:
            raise NonTreeGraph(
                f"task {task.id} has {len(task.dependencies)} dependencies "
                f"({', '.join(str(d) for d in sorted(task.dependencies))})"
            )
        for parent in task.dependencies:
            children[parent].append(task.id)

    level_sequence: List[int] = []
    stack = [(roots[0], 1)]
    while stack:
        task_id, depth = stack.pop()
        level_sequence.append(depth)
        for child in sorted(children[task_id], reverse=True):
            stack.append((child, depth + 1))

    if len(level_sequence) != len(graph):
        raise NonTreeGraph(
            f"{len(graph) - len(level_sequence)} task(s) unreachable from root {roots[0]}"
        )
    return level_sequence
