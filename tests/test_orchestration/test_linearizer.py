"""
Tests for the linearizer: Kahn ordering, level assignment, cycle reporting.
"""
import pytest
from treeflow.orchestration.errors import CycleDetected, UnknownTaskReference
from treeflow.orchestration.linearizer import linearize
from treeflow.orchestration.task_graph import TaskGraph, TaskRecord


def _graph(n: int, edges) -> TaskGraph:
    graph = TaskGraph()
    for i in range(1, n + 1):
        graph.create_task(f"t{i}")
    for a, b in edges:
        graph.add_dependency(a, b)
    return graph


class TestLinearize:
    """Tests for topological order and levels."""

    def test_independent_tasks_share_level_zero(self):
        """Test tasks without dependencies all land in level 0."""
        result = _graph(3, []).linearize()

        assert result.order == (1, 2, 3)
        assert result.levels == ((1, 2, 3),)
        assert result.level_of == {1: 0, 2: 0, 3: 0}

    def test_level_is_max_over_dependencies(self):
        """Test level = 1 + max(dependency levels), not dependency count."""
        # 1 -> 2 -> 3 -> 5 and 4 -> 5: task 5 sits after the longest chain
        result = _graph(5, [(1, 2), (2, 3), (3, 5), (4, 5)]).linearize()

        assert result.level_of == {1: 0, 2: 1, 3: 2, 4: 0, 5: 3}
        assert result.levels == ((1, 4), (2,), (3,), (5,))

    def test_many_dependencies_one_level(self):
        """Test a task with many shallow dependencies is only one level deeper."""
        result = _graph(4, [(1, 4), (2, 4), (3, 4)]).linearize()

        assert result.level_of[4] == 1
        assert result.levels == ((1, 2, 3), (4,))

    def test_order_respects_every_edge(self):
        """Test every dependency precedes its dependent."""
        edges = [(7, 1), (7, 2), (1, 3), (2, 3), (3, 4), (6, 5), (5, 4), (2, 6)]
        result = _graph(7, edges).linearize()
        position = {task_id: i for i, task_id in enumerate(result.order)}

        assert len(result) == 7
        for a, b in edges:
            assert position[a] < position[b]
            assert result.level_of[a] < result.level_of[b]

    def test_ties_use_smallest_ready_id(self):
        """Test the ready queue always yields the smallest available id."""
        # 1 -> 2 -> 3 and 1 -> 4: pre-order ids come out in ascending order
        result = _graph(4, [(1, 2), (2, 3), (1, 4)]).linearize()

        assert result.order == (1, 2, 3, 4)

    def test_result_is_cached(self):
        """Test repeated linearization returns the cached result."""
        graph = _graph(2, [(1, 2)])
        assert graph.linearize() is graph.linearize()

    def test_empty(self):
        """Test an empty task list."""
        result = linearize([])
        assert result.order == ()
        assert result.levels == ()


class TestCycleDetection:
    """Tests for CycleDetected reporting."""

    def test_three_cycle(self):
        """Test 1->2, 2->3, 3->1 is rejected without a partial order."""
        graph = _graph(3, [(1, 2), (2, 3), (3, 1)])

        with pytest.raises(CycleDetected) as exc_info:
            graph.linearize()

        assert exc_info.value.task_id in {1, 2, 3}
        assert sorted(exc_info.value.remaining) == [1, 2, 3]
        assert graph._linearization is None

    def test_cycle_downstream_of_valid_tasks(self):
        """Test the named task lies on the cycle, not on its upstream."""
        # 1 -> 2, and 2 -> 3 -> 4 -> 3 forms the cycle {3, 4}
        graph = _graph(4, [(1, 2), (2, 3), (3, 4), (4, 3)])

        with pytest.raises(CycleDetected) as exc_info:
            graph.linearize()

        assert exc_info.value.task_id in {3, 4}
        assert sorted(exc_info.value.remaining) == [3, 4]

    def test_cycle_message(self):
        """Test the error message mentions the cycle."""
        with pytest.raises(ValueError, match="cycle"):
            _graph(2, [(1, 2), (2, 1)]).linearize()


class TestDanglingReference:
    """Tests for records referencing ids outside the list."""

    def test_unknown_dependency(self):
        """Test a dependency id beyond the task list is reported."""
        tasks = [TaskRecord(id=1, name="a", action=lambda: None, dependencies={5})]

        with pytest.raises(UnknownTaskReference) as exc_info:
            linearize(tasks)
        assert exc_info.value.task_id == 5
