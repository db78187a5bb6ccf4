"""
Tests for TaskGraphRegistry: graph ids and tree <-> graph mapping.
"""
import numpy as np
import pytest
from treeflow.orchestration.errors import MalformedLevelSequence
from treeflow.orchestration.executor import Executor
from treeflow.orchestration.registry import TaskGraphRegistry
from treeflow.orchestration.task_graph import TaskGraph
from treeflow.orchestration.tree_codec import taskgraph_to_tree


class TestTaskGraphRegistry:
    """Tests for registering and running graphs."""

    def test_ids_start_at_one(self):
        """Test graph ids are assigned from 1."""
        registry = TaskGraphRegistry()

        assert registry.create_graph() == 1
        assert registry.add_graph(TaskGraph()) == 2
        assert registry.graph_ids() == [1, 2]
        assert len(registry) == 2

    def test_register_tree(self):
        """Test a level sequence is decoded and remembered."""
        registry = TaskGraphRegistry()
        graph_id = registry.register_tree([1, 2, 2, 3])

        graph = registry.get(graph_id)
        assert graph.edges() == [(1, 2), (1, 3), (3, 4)]
        assert registry.tree_for(graph_id) == [1, 2, 2, 3]
        assert taskgraph_to_tree(graph) == registry.tree_for(graph_id)

    def test_register_tree_numpy(self):
        """Test NumPy level sequences are stored as plain ints."""
        registry = TaskGraphRegistry()
        graph_id = registry.register_tree(np.array([1, 2, 3]))

        assert registry.tree_for(graph_id) == [1, 2, 3]
        assert all(type(level) is int for level in registry.tree_for(graph_id))

    def test_register_malformed_tree(self):
        """Test a malformed sequence registers nothing."""
        registry = TaskGraphRegistry()

        with pytest.raises(MalformedLevelSequence):
            registry.register_tree([1, 3])
        assert len(registry) == 0

    def test_tree_for_hand_built_graph(self):
        """Test hand-built graphs have no source tree."""
        registry = TaskGraphRegistry()
        graph_id = registry.create_graph()
        assert registry.tree_for(graph_id) is None

    def test_unknown_id(self):
        """Test unknown ids raise KeyError."""
        registry = TaskGraphRegistry()
        with pytest.raises(KeyError):
            registry.get(1)
        with pytest.raises(KeyError):
            registry.tree_for(1)

    def test_run_resets_between_runs(self):
        """Test run() executes a fresh run each time."""
        calls = []
        registry = TaskGraphRegistry()
        graph_id = registry.register_tree(
            [1, 2, 2],
            action_provider=lambda i: (lambda: calls.append(i) or i),
        )
        executor = Executor(max_workers=2)

        first = registry.run(graph_id, executor)
        second = registry.run(graph_id, executor, parallel=False)

        assert first.succeeded == second.succeeded == 3
        assert sorted(calls) == [1, 1, 2, 2, 3, 3]
        assert registry.get(graph_id).results() == {1: 1, 2: 2, 3: 3}

    def test_remove(self):
        """Test removing a graph forgets its tree and keeps ids unique."""
        registry = TaskGraphRegistry()
        graph_id = registry.register_tree([1, 2])

        removed = registry.remove(graph_id)

        assert len(removed) == 2
        assert graph_id not in registry
        assert registry.create_graph() == graph_id + 1

    def test_tree_for_is_source_sequence(self):
        """Test tree_for keeps the registered sequence while current_tree follows edits."""
        registry = TaskGraphRegistry()
        graph_id = registry.register_tree([1, 2])
        graph = registry.get(graph_id)
        leaf = graph.create_task("leaf")
        graph.add_dependency(2, leaf)

        assert registry.tree_for(graph_id) == [1, 2]
        assert registry.current_tree(graph_id) == [1, 2, 3]
