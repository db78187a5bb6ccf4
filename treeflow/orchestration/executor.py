"""
Executor: Wave-parallel task execution engine with dependency management.

Executes tasks from a TaskGraph level by level. Tasks within a level have
no path between them and run concurrently on a bounded thread pool; the
coordinator waits for the whole level before releasing the next one.
A failing task never aborts the run: its dependents are skipped and the
failure is reported in the ExecutionSummary.
"""
from __future__ import annotations

import logging
import os
import sys
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TextIO, Tuple

from ..shared.defaults import DEFAULT_MAX_WORKERS, DEFAULT_PARALLEL, DEFAULT_VERBOSE
from .config import ExecutorConfig
from .errors import TaskExecutionError
from .task_graph import TaskAction, TaskGraph, TaskRecord


logger = logging.getLogger(__name__)


@dataclass
class ExecutionSummary:
    """Outcome of one Executor.execute() call."""

    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[Tuple[int, TaskExecutionError]] = field(default_factory=list)
    waves: List[List[int]] = field(default_factory=list)
    parallel: bool = DEFAULT_PARALLEL
    max_workers: int = 1
    elapsed_s: float = 0.0

    @property
    def total(self) -> int:
        return self.succeeded + self.failed + self.skipped

    @property
    def ok(self) -> bool:
        """True if no task failed or was skipped."""
        return self.failed == 0 and self.skipped == 0

    def __repr__(self) -> str:
        return (
            f"ExecutionSummary({self.succeeded} succeeded, {self.failed} failed, "
            f"{self.skipped} skipped in {self.elapsed_s:.3f}s)"
        )


@dataclass
class _TaskOutcome:
    result: Any = None
    error: Optional[Exception] = None
    compute_time_s: float = 0.0


def _execute_task_worker(action: TaskAction) -> _TaskOutcome:
    """
    Run a single task action and time it.

    Exceptions raised by the action are captured in the outcome so the
    coordinator can record them on the task.
    """
    compute_start = time.perf_counter()
    try:
        result = action()
    except Exception as e:
        return _TaskOutcome(error=e, compute_time_s=time.perf_counter() - compute_start)
    return _TaskOutcome(result=result, compute_time_s=time.perf_counter() - compute_start)


class Executor:
    """
    Parallel executor for TaskGraph.

    Each execute() call owns its own thread pool, so one Executor (or
    several) can run different graphs concurrently without sharing workers.
    """

    def __init__(
        self,
        max_workers: Optional[int] = DEFAULT_MAX_WORKERS,
        verbose: bool = DEFAULT_VERBOSE,
        stream: Optional[TextIO] = None,
        parallel: bool = DEFAULT_PARALLEL,
    ):
        """
        Initialize executor.

        Args:
            max_workers: Maximum parallel workers (default: available CPU count)
            verbose: Print execution plan and progress messages
            stream: Output stream for messages (default: sys.stdout)
            parallel: Default mode for execute() when it is not given one
        """
        if max_workers is None:
            max_workers = os.cpu_count() or 1
        if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
            raise ValueError(f"max_workers must be a positive integer, got {max_workers!r}")

        self.max_workers = max_workers
        self.verbose = verbose
        self.stream = stream or sys.stdout
        self.parallel = parallel

    @classmethod
    def from_config(cls, config: ExecutorConfig, stream: Optional[TextIO] = None) -> Executor:
        """Build an executor from an ExecutorConfig."""
        return cls(
            max_workers=config.resolved_workers(),
            verbose=config.verbose,
            stream=stream,
            parallel=config.parallel,
        )

    def execute(self, graph: TaskGraph, parallel: Optional[bool] = None) -> ExecutionSummary:
        """
        Execute all pending tasks in the graph.

        Tasks that already reached a terminal status in an earlier run are
        left as they are; call ``graph.reset_for_rerun()`` for a fresh run.

        Args:
            graph: TaskGraph to execute
            parallel: Run each level on the worker pool (False = one task at a time
                      in execution order; default: the executor's own setting)

        Returns:
            ExecutionSummary with per-status counts and task errors

        Raises:
            CycleDetected: If the graph is not acyclic (nothing is run)
            RuntimeError: If the graph is already being executed
        """
        if parallel is None:
            parallel = self.parallel
        linearization = graph.linearize()
        if parallel:
            waves = [list(level) for level in linearization.levels]
        else:
            waves = [[task_id] for task_id in linearization.order]

        graph._begin_run()
        try:
            start_time = time.perf_counter()
            logger.info(
                f"Executing {len(graph)} task(s) in {len(waves)} wave(s) "
                f"(parallel={parallel}, workers={self.max_workers})"
            )
            if self.verbose:
                self._write_plan(graph, waves, parallel)

            if parallel and graph:
                with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="treeflow") as pool:
                    for level_idx, level_tasks in enumerate(waves):
                        self._execute_level(graph, self._prepare_level(graph, level_tasks), level_idx, pool)
            else:
                for level_idx, level_tasks in enumerate(waves):
                    self._execute_level(graph, self._prepare_level(graph, level_tasks), level_idx, None)

            summary = self._summarize(graph, waves, parallel, time.perf_counter() - start_time)
        finally:
            # Tasks interrupted by a BaseException never finished; make them runnable again
            for task in graph:
                if task.status == "running":
                    graph.mark_status(task.id, "pending")
            graph._end_run()

        logger.info(
            f"Execution complete: {summary.succeeded} succeeded, "
            f"{summary.failed} failed, {summary.skipped} skipped"
        )
        if self.verbose:
            self.stream.write(f"\nExecution complete: {summary.elapsed_s:.1f}s\n")
            self.stream.write(f"  Succeeded: {summary.succeeded}/{summary.total}\n")
            self.stream.write(f"  Failed: {summary.failed}\n")
            self.stream.write(f"  Skipped: {summary.skipped}\n")
            self.stream.flush()
        return summary

    def _prepare_level(self, graph: TaskGraph, level_tasks: List[int]) -> List[int]:
        """Skip tasks with an unsuccessful dependency; return those left to run."""
        tasks_to_run = []
        for task_id in level_tasks:
            task = graph.get_task(task_id)
            if task.status != "pending":
                continue

            blocker = _first_unsuccessful_dependency(graph, task)
            if blocker is not None:
                graph.mark_skipped(task_id, blocker)
                logger.info(f"Task {task_id} ({task.name}) skipped: dependency {blocker} did not succeed")
                if self.verbose:
                    self.stream.write(f"  {task.name} SKIPPED (dependency {blocker} did not succeed)\n")
                    self.stream.flush()
                continue

            tasks_to_run.append(task_id)
        return tasks_to_run

    def _execute_level(
        self,
        graph: TaskGraph,
        task_ids: List[int],
        level_idx: int,
        pool: Optional[ThreadPoolExecutor],
    ) -> None:
        """Run one level and block until every task in it has finished."""
        if not task_ids:
            return

        level_start = time.perf_counter()
        total_in_level = len(task_ids)

        if pool is None:
            for completed_count, task_id in enumerate(task_ids, start=1):
                graph.mark_status(task_id, "running")
                outcome = _execute_task_worker(graph.get_task(task_id).action)
                self._record_outcome(graph, task_id, outcome, completed_count, total_in_level)
            return

        # Submitted in ascending id order; the pool queues FIFO beyond max_workers
        future_to_task: Dict[Future, int] = {}
        for task_id in task_ids:
            graph.mark_status(task_id, "running")
            future = pool.submit(_execute_task_worker, graph.get_task(task_id).action)
            future_to_task[future] = task_id

        for completed_count, future in enumerate(as_completed(future_to_task), start=1):
            self._record_outcome(graph, future_to_task[future], future.result(), completed_count, total_in_level)

        logger.debug(f"Level {level_idx} complete: {total_in_level} task(s) in {time.perf_counter() - level_start:.3f}s")

    def _record_outcome(
        self,
        graph: TaskGraph,
        task_id: int,
        outcome: _TaskOutcome,
        completed_count: int,
        total_in_level: int,
    ) -> None:
        task = graph.get_task(task_id)
        progress_str = f"[{completed_count}/{total_in_level}]"

        if outcome.error is None:
            graph.mark_succeeded(task_id, outcome.result, outcome.compute_time_s)
            if self.verbose:
                self.stream.write(f"  {progress_str} {task.name}  compute: {outcome.compute_time_s:>6.1f}s\n")
                self.stream.flush()
            return

        error = TaskExecutionError(task_id, task.name, outcome.error)
        graph.mark_failed(task_id, error, outcome.compute_time_s)
        error_type = type(outcome.error).__name__
        logger.warning(f"Task {task_id} ({task.name}) failed: {error_type}: {outcome.error}")
        if self.verbose:
            self.stream.write(
                f"  {progress_str} {task.name} FAILED after {outcome.compute_time_s:.1f}s: "
                f"{error_type}: {outcome.error}\n"
            )
            self.stream.flush()

    def _write_plan(self, graph: TaskGraph, waves: List[List[int]], parallel: bool) -> None:
        self.stream.write(f"\nExecuting TaskGraph: {len(graph)} tasks\n")
        self.stream.write(f"  Workers: {self.max_workers if parallel else 1}\n")
        if parallel:
            self.stream.write("\nExecution Plan:\n")
            for level_idx, level_tasks in enumerate(waves):
                names = ", ".join(graph.get_task(t).name for t in level_tasks)
                self.stream.write(f"  Level {level_idx}: {len(level_tasks)} tasks ({names})\n")
        self.stream.write("\n")
        self.stream.flush()

    def _summarize(
        self,
        graph: TaskGraph,
        waves: List[List[int]],
        parallel: bool,
        elapsed_s: float,
    ) -> ExecutionSummary:
        stats = graph.get_stats()
        return ExecutionSummary(
            succeeded=stats["succeeded"],
            failed=stats["failed"],
            skipped=stats["skipped"],
            errors=[(task.id, task.error) for task in graph if task.status == "failed"],
            waves=waves,
            parallel=parallel,
            max_workers=self.max_workers if parallel else 1,
            elapsed_s=elapsed_s,
        )


def _first_unsuccessful_dependency(graph: TaskGraph, task: TaskRecord) -> Optional[int]:
    """Lowest dependency id that has not succeeded, if any."""
    for dep_id in sorted(task.dependencies):
        if graph.get_task(dep_id).status != "succeeded":
            return dep_id
    return None


def execute(
    graph: TaskGraph,
    parallel: bool = DEFAULT_PARALLEL,
    max_workers: Optional[int] = DEFAULT_MAX_WORKERS,
) -> ExecutionSummary:
    """Execute ``graph`` with a one-off Executor."""
    return Executor(max_workers=max_workers).execute(graph, parallel=parallel)
