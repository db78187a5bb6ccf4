"""
TaskGraphRegistry: bookkeeping for many task graphs in one process.

Graphs are stored under integer ids starting at 1. Graphs decoded from a
level sequence remember that sequence, so callers that evolve tree-shaped
objects can map between a tree and the graph that runs its work.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .executor import ExecutionSummary, Executor
from .task_graph import TaskGraph
from .tree_codec import ActionProvider, LevelSequence, taskgraph_to_tree, tree_to_taskgraph


logger = logging.getLogger(__name__)


class TaskGraphRegistry:
    """Holds task graphs by id, with the level sequence each tree graph came from."""

    def __init__(self):
        self._graphs: Dict[int, TaskGraph] = {}
        self._trees: Dict[int, List[int]] = {}
        self._next_id = 1

    def create_graph(self) -> int:
        """Register a new empty graph and return its id."""
        return self.add_graph(TaskGraph())

    def add_graph(self, graph: TaskGraph) -> int:
        """Register an existing graph and return its id."""
        graph_id = self._next_id
        self._next_id += 1
        self._graphs[graph_id] = graph
        logger.debug(f"Registered graph {graph_id} ({len(graph)} tasks)")
        return graph_id

    def register_tree(
        self,
        level_sequence: LevelSequence,
        action_provider: Optional[ActionProvider] = None,
    ) -> int:
        """
        Decode a level sequence and register the resulting graph.

        Raises:
            MalformedLevelSequence: If the sequence does not encode a rooted tree
        """
        graph = tree_to_taskgraph(level_sequence, action_provider)
        graph_id = self.add_graph(graph)
        self._trees[graph_id] = [int(level) for level in level_sequence]
        return graph_id

    def get(self, graph_id: int) -> TaskGraph:
        """Get graph by id."""
        if graph_id not in self._graphs:
            raise KeyError(f"Graph not found: {graph_id}")
        return self._graphs[graph_id]

    def tree_for(self, graph_id: int) -> Optional[List[int]]:
        """
        Level sequence a graph was decoded from, or None for hand-built graphs.

        This is the source sequence as registered; later structural changes to
        the graph are not reflected. Use ``current_tree`` for the graph's
        present shape.
        """
        self.get(graph_id)
        tree = self._trees.get(graph_id)
        return list(tree) if tree is not None else None

    def current_tree(self, graph_id: int) -> List[int]:
        """
        Encode the graph's present structure as a level sequence.

        Raises:
            NonTreeGraph: If the graph is no longer tree-shaped
        """
        return taskgraph_to_tree(self.get(graph_id))

    def graph_ids(self) -> List[int]:
        return list(self._graphs)

    def run(self, graph_id: int, executor: Executor, parallel: Optional[bool] = None) -> ExecutionSummary:
        """Reset the graph's run state and execute it."""
        graph = self.get(graph_id)
        graph.reset_for_rerun()
        return executor.execute(graph, parallel=parallel)

    def remove(self, graph_id: int) -> TaskGraph:
        """Unregister and return a graph."""
        graph = self.get(graph_id)
        del self._graphs[graph_id]
        self._trees.pop(graph_id, None)
        return graph

    def __len__(self) -> int:
        return len(self._graphs)

    def __contains__(self, graph_id: object) -> bool:
        return graph_id in self._graphs
