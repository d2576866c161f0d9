"""Complexity breakdown heuristics.

A task at or above the complexity threshold with no subtasks is a
breakdown candidate. As subtasks are added, the parent's own complexity is
lowered: the remaining work now lives in the children.
"""

from collections.abc import Iterable

from loguru import logger

from knot.tasks.models import BreakdownConfig, Task
from knot.tasks.repository import TaskRepository


def find_tasks_needing_breakdown(
    tasks: Iterable[Task],
    config: BreakdownConfig | None = None,
) -> list[Task]:
    """
    Find high-complexity tasks that have not been broken down yet.

    Args:
        tasks: Tasks of one project.
        config: Breakdown limits. Defaults to threshold 8.

    Returns:
        Tasks with complexity at or above the threshold and no children,
        in input order.
    """
    config = config or BreakdownConfig()
    tasks = list(tasks)
    parents = {t.parent_id for t in tasks if t.parent_id is not None}
    return [
        t for t in tasks
        if t.complexity >= config.complexity_threshold and t.id not in parents
    ]


def reduced_complexity(complexity: int, child_count: int) -> int:
    """
    Parent complexity after it gains ``child_count`` children.

    One child takes two points off; more children cap the parent at a
    fixed level (4 for up to three, 3 for up to five, 2 beyond). The
    result never drops below 1.

    Example:
        >>> reduced_complexity(9, 1)
        7
        >>> reduced_complexity(9, 6)
        2
    """
    if child_count <= 0:
        return complexity
    if child_count == 1:
        new_complexity = complexity - 2
    elif child_count <= 3:
        new_complexity = 4
    elif child_count <= 5:
        new_complexity = 3
    else:
        new_complexity = 2
    return max(new_complexity, 1)


def auto_reduce_parent_complexity(
    parent_id: str,
    repository: TaskRepository,
    config: BreakdownConfig | None = None,
) -> int | None:
    """
    Lower a parent's complexity to reflect its current children.

    Only fires when auto-reduction is enabled and the parent is still at or
    above the threshold.

    Args:
        parent_id: Parent task id.
        repository: Storage holding the parent and its children.
        config: Breakdown limits.

    Returns:
        The new complexity if it changed, else None.

    Raises:
        TaskNotFoundError: If the parent does not exist.
    """
    config = config or BreakdownConfig()
    if not config.auto_reduce_complexity:
        return None

    parent = repository.get_task(parent_id)
    if parent.complexity < config.complexity_threshold:
        return None

    child_count = len(repository.get_child_tasks(parent_id))
    new_complexity = reduced_complexity(parent.complexity, child_count)
    if new_complexity == parent.complexity:
        return None

    repository.update_task(parent.model_copy(update={"complexity": new_complexity}))
    logger.info(
        f"Reduced complexity of task {parent_id} from {parent.complexity} "
        f"to {new_complexity} ({child_count} subtasks)"
    )
    return new_complexity
