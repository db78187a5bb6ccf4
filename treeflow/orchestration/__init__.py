"""
Orchestration layer: task graphs, wave-parallel execution, tree codec.
"""

from .errors import (
    CycleDetected,
    MalformedLevelSequence,
    NonTreeGraph,
    SelfDependency,
    TaskExecutionError,
    TaskGraphError,
    UnknownTaskReference,
)
from .linearizer import Linearization, linearize
from .task_graph import SKIPPED_DUE_TO_DEPENDENCY_FAILURE, TaskGraph, TaskRecord
from .config import ExecutorConfig, load_config_from_yaml
from .executor import ExecutionSummary, Executor, execute
from .tree_codec import parent_indices, taskgraph_to_tree, tree_to_taskgraph
from .registry import TaskGraphRegistry

__all__ = [
    "TaskGraph",
    "TaskRecord",
    "SKIPPED_DUE_TO_DEPENDENCY_FAILURE",
    "Linearization",
    "linearize",
    "Executor",
    "ExecutionSummary",
    "execute",
    "ExecutorConfig",
    "load_config_from_yaml",
    "tree_to_taskgraph",
    "taskgraph_to_tree",
    "parent_indices",
    "TaskGraphRegistry",
    "TaskGraphError",
    "UnknownTaskReference",
    "SelfDependency",
    "CycleDetected",
    "MalformedLevelSequence",
    "NonTreeGraph",
    "TaskExecutionError",
]
