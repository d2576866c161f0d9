"""Project characteristics and strategy recommendation."""

from collections.abc import Iterable

from loguru import logger

from knot.selection.models import (
    ProjectCharacteristics,
    ProjectComplexity,
    Strategy,
    Weights,
)
from knot.tasks.models import Task, TaskPriority

# Hierarchy depth from which depth-first is recommended
DEEP_HIERARCHY_DEPTH = 2


class ProjectAnalyzer:
    """Describe a project's task graph and recommend a strategy for it."""

    def analyze(self, tasks: Iterable[Task]) -> ProjectCharacteristics:
        """
        Compute task count, dependency density and depth distribution.

        Args:
            tasks: Tasks of one project.

        Returns:
            ProjectCharacteristics for the snapshot.
        """
        tasks = list(tasks)
        total = len(tasks)
        if total == 0:
            return ProjectCharacteristics()

        dependency_count = sum(len(t.dependencies) for t in tasks)
        with_dependencies = sum(1 for t in tasks if t.dependencies)
        with_parent = sum(1 for t in tasks if t.parent_id is not None)
        high_priority = sum(1 for t in tasks if t.priority == TaskPriority.HIGH)
        max_depth = max(t.depth for t in tasks)

        if total > 50 or dependency_count > total or max_depth > 3:
            complexity = ProjectComplexity.COMPLEX
        elif total > 15 or dependency_count > 0 or max_depth > 1:
            complexity = ProjectComplexity.MEDIUM
        else:
            complexity = ProjectComplexity.SIMPLE

        return ProjectCharacteristics(
            task_count=total,
            dependency_count=dependency_count,
            average_dependencies=dependency_count / total,
            dependency_ratio=with_dependencies / total,
            max_hierarchy_depth=max_depth,
            hierarchy_ratio=with_parent / total,
            high_priority_ratio=high_priority / total,
            complexity=complexity,
        )

    def recommend(self, characteristics: ProjectCharacteristics) -> tuple[Strategy, str]:
        """Pick a strategy for the given characteristics."""
        if characteristics.dependency_count > 0:
            return (
                Strategy.DEPENDENCY_AWARE,
                f"{characteristics.dependency_count} dependency edge(s) across "
                f"{characteristics.task_count} tasks; unblocking work first keeps them moving",
            )
        if characteristics.max_hierarchy_depth >= DEEP_HIERARCHY_DEPTH:
            return (
                Strategy.DEPTH_FIRST,
                f"hierarchy is {characteristics.max_hierarchy_depth} levels deep; "
                "finishing subtasks first closes out parents",
            )
        return (
            Strategy.CREATION_ORDER,
            f"{characteristics.task_count} independent task(s) with a flat hierarchy",
        )

    def suggest_weights(self, characteristics: ProjectCharacteristics) -> Weights:
        """Suggest dependency-aware weights for the project's shape."""
        if characteristics.dependency_ratio > 0.5:
            return Weights(dependent_count=0.6, priority=0.2, depth_first=0.1, critical_path=0.1)
        if characteristics.hierarchy_ratio > 0.5:
            return Weights(dependent_count=0.3, priority=0.2, depth_first=0.4, critical_path=0.1)
        if characteristics.high_priority_ratio > 0.3:
            return Weights(dependent_count=0.3, priority=0.5, depth_first=0.1, critical_path=0.1)
        return Weights()


def analyze_project_and_recommend_strategy(tasks: Iterable[Task]) -> tuple[Strategy, str]:
    """
    Recommend a selection strategy for a project.

    Never raises: if the analysis fails the failure is logged and
    dependency-aware is returned with a reason saying so.

    Args:
        tasks: Tasks of one project.

    Returns:
        Tuple of (strategy, reason).
    """
    analyzer = ProjectAnalyzer()
    try:
        characteristics = analyzer.analyze(tasks)
        strategy, reason = analyzer.recommend(characteristics)
    except Exception as e:
        logger.warning(f"Project analysis failed, defaulting to dependency-aware: {e}")
        return Strategy.DEPENDENCY_AWARE, f"project analysis failed ({e}); using the default"

    logger.debug(f"Recommended {strategy.value}: {reason}")
    return strategy, reason
