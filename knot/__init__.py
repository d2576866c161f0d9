"""
Knot - dependency-aware task selection.

Keeps a project's task graph consistent and answers "what should be worked
on next?" under pluggable scoring strategies.
"""

__version__ = "0.1.0"
__author__ = "Knot Team"

from knot.core.errors import KnotError, SelectionError
from knot.selection import (
    SelectionConfig,
    SelectionResult,
    Strategy,
    analyze_project_and_recommend_strategy,
    detect_cycles,
    select_next_actionable_task,
    validate_referential_integrity,
)
from knot.tasks import (
    Task,
    TaskPriority,
    TaskState,
    find_tasks_needing_breakdown,
    validate_transition,
)
from knot.tasks.manager import TaskManager

__all__ = [
    "__version__",
    "KnotError",
    "SelectionError",
    "Task",
    "TaskState",
    "TaskPriority",
    "TaskManager",
    "Strategy",
    "SelectionConfig",
    "SelectionResult",
    "validate_transition",
    "detect_cycles",
    "validate_referential_integrity",
    "select_next_actionable_task",
    "analyze_project_and_recommend_strategy",
    "find_tasks_needing_breakdown",
]
