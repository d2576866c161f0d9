"""Task selector - picks the next task to work on.

Selection runs over one snapshot of a project's tasks:

1. In-progress work is resumed first when ``prefer_in_progress`` is set.
2. Otherwise eligible pending tasks are ranked by the configured strategy.
3. When nothing is eligible, the failure is classified (no tasks, cycle,
   dangling reference, deadlock, or filtered out) and raised as a
   ``SelectionError`` subclass the caller can render.
"""

import time
from collections.abc import Iterable

from loguru import logger

from knot.core.errors import (
    CircularDependencyError,
    DanglingDependencyError,
    DataInconsistencyError,
    DeadlockError,
    NoActionableTasksError,
    NoTasksError,
    SelectionError,
)
from knot.selection.graph import DependencyAnalyzer, are_dependencies_met
from knot.selection.models import ScoreBreakdown, SelectionConfig, SelectionResult
from knot.selection.strategies import StrategyFactory
from knot.tasks.models import Task, TaskState


class TaskSelector:
    """
    Select the next actionable task under a scoring strategy.

    Example:
        >>> selector = TaskSelector(SelectionConfig(strategy=Strategy.PRIORITY))
        >>> result = selector.select_next_actionable_task(tasks)
        >>> result.task.id
        'task-3'
    """

    def __init__(self, config: SelectionConfig | None = None) -> None:
        """
        Initialize the selector.

        Args:
            config: Selection configuration. Defaults to dependency-aware.

        Raises:
            ConfigurationError: If the weights do not suit the strategy.
        """
        self.config = config or SelectionConfig()
        StrategyFactory.validate_weights(self.config.strategy, self.config.weights)
        self._strategy = StrategyFactory.create(self.config.strategy)

    def select_next_actionable_task(self, tasks: Iterable[Task]) -> SelectionResult:
        """
        Pick the best eligible task from a project snapshot.

        Args:
            tasks: Every task of the project, in any state.

        Returns:
            SelectionResult with the winner, its score breakdown, a reason
            and the next-best alternatives.

        Raises:
            NoTasksError: No pending or in-progress tasks.
            DataInconsistencyError: In-progress tasks exist but none is eligible.
            CircularDependencyError: Remaining tasks wait on a dependency loop.
            DanglingDependencyError: Remaining tasks wait on missing tasks.
            DeadlockError: Every remaining task waits on unfinished work.
            NoActionableTasksError: Ready tasks were all filtered out.
        """
        started = time.perf_counter()
        analyzer = DependencyAnalyzer(tasks)
        behavior = self.config.behavior

        pending = [t for t in analyzer.tasks.values() if t.state == TaskState.PENDING]
        in_progress = [t for t in analyzer.tasks.values() if t.state == TaskState.IN_PROGRESS]

        if not pending and not in_progress:
            raise NoTasksError("No pending or in-progress tasks remain")

        if behavior.prefer_in_progress and in_progress:
            ranked = self._rank(in_progress, analyzer)
            if not ranked:
                raise DataInconsistencyError(
                    f"{len(in_progress)} task(s) are in progress but none has its "
                    "dependencies met",
                    task_ids=[t.id for t in in_progress],
                )
            return self._build_result(ranked, started, resuming=True)

        candidates = pending if behavior.prefer_in_progress else pending + in_progress
        ranked = self._rank(candidates, analyzer)
        if not ranked:
            raise self._classify_failure(candidates, analyzer)

        return self._build_result(ranked, started, resuming=False)

    def is_eligible(self, task: Task, analyzer: DependencyAnalyzer) -> bool:
        """Check dependencies and hierarchy filters for one candidate."""
        if not are_dependencies_met(task, analyzer.tasks):
            return False
        if self.config.behavior.allow_parent_with_subtasks:
            return True
        return not analyzer.has_unfinished_children(task.id)

    # =========================================================================
    # RANKING
    # =========================================================================

    def _rank(
        self,
        candidates: list[Task],
        analyzer: DependencyAnalyzer,
    ) -> list[ScoreBreakdown]:
        scored = [
            self._strategy.score(task, analyzer, self.config)
            for task in candidates
            if self.is_eligible(task, analyzer)
        ]
        scored = [s for s in scored if s.weighted_score >= self.config.min_weighted_score]
        scored.sort(key=self._strategy.rank_key)
        return scored

    def _build_result(
        self,
        ranked: list[ScoreBreakdown],
        started: float,
        resuming: bool,
    ) -> SelectionResult:
        best = ranked[0]
        reason = self._strategy.explain(best)
        if resuming:
            reason = f"resuming in-progress work; {reason}"

        result = SelectionResult(
            task=best.task,
            strategy=self.config.strategy,
            reason=reason,
            breakdown=best,
            alternatives=ranked[1 : 1 + self.config.max_alternatives],
            execution_time=time.perf_counter() - started,
        )

        logger.debug(
            f"Selected task {best.task.id} via {self.config.strategy.value} "
            f"(score={best.score:.2f}, {len(ranked) - 1} other candidate(s))"
        )
        return result

    # =========================================================================
    # FAILURE CLASSIFICATION
    # =========================================================================

    @staticmethod
    def _unmet_dependency_closure(
        candidates: list[Task],
        analyzer: DependencyAnalyzer,
    ) -> list[Task]:
        """Candidates plus every known, uncompleted task they transitively wait on."""
        seen = {t.id for t in candidates}
        closure = list(candidates)
        stack = list(candidates)
        while stack:
            task = stack.pop()
            for dep_id in task.dependencies:
                dep = analyzer.get(dep_id)
                if dep is None or dep.state == TaskState.COMPLETED or dep_id in seen:
                    continue
                seen.add(dep_id)
                closure.append(dep)
                stack.append(dep)
        return closure

    def _classify_failure(
        self,
        candidates: list[Task],
        analyzer: DependencyAnalyzer,
    ) -> SelectionError:
        ready = [t for t in candidates if are_dependencies_met(t, analyzer.tasks)]
        if ready:
            return NoActionableTasksError(
                f"{len(ready)} task(s) have their dependencies met but were filtered out",
                task_ids=[t.id for t in ready],
            )

        waited_on = DependencyAnalyzer(self._unmet_dependency_closure(candidates, analyzer))
        cycles = waited_on.detect_cycles()
        if cycles:
            return CircularDependencyError(
                f"Found {len(cycles)} dependency cycle(s) among the tasks still waited on",
                task_ids=sorted({task_id for cycle in cycles for task_id in cycle}),
                cycles=cycles,
            )

        dangling = [
            t.id
            for t in candidates
            if any(dep_id not in analyzer for dep_id in t.dependencies)
        ]
        if dangling:
            return DanglingDependencyError(
                f"{len(dangling)} task(s) depend on tasks that do not exist",
                task_ids=dangling,
            )

        return DeadlockError(
            f"All {len(candidates)} remaining task(s) wait on unfinished dependencies",
            task_ids=[t.id for t in candidates],
        )


def select_next_actionable_task(
    tasks: Iterable[Task],
    config: SelectionConfig | None = None,
) -> SelectionResult:
    """Select the next task with a one-off selector."""
    return TaskSelector(config).select_next_actionable_task(tasks)
