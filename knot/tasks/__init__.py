"""Tasks - models, state rules, storage and breakdown heuristics.

The manager is imported from ``knot.tasks.manager`` directly; it builds on
``knot.selection``, which in turn builds on these models.
"""

from knot.tasks.breakdown import (
    auto_reduce_parent_complexity,
    find_tasks_needing_breakdown,
    reduced_complexity,
)
from knot.tasks.models import (
    FINISHED_STATES,
    BreakdownConfig,
    Project,
    ProjectState,
    Task,
    TaskPriority,
    TaskState,
)
from knot.tasks.repository import InMemoryTaskRepository, TaskRepository
from knot.tasks.state_machine import (
    PROJECT_TRANSITIONS,
    TASK_TRANSITIONS,
    StateValidator,
    get_state_transition_matrix,
    is_valid_state,
    validate_transition,
)

__all__ = [
    # Models
    "Task",
    "TaskState",
    "TaskPriority",
    "Project",
    "ProjectState",
    "BreakdownConfig",
    "FINISHED_STATES",
    # State machine
    "StateValidator",
    "TASK_TRANSITIONS",
    "PROJECT_TRANSITIONS",
    "is_valid_state",
    "validate_transition",
    "get_state_transition_matrix",
    # Storage
    "TaskRepository",
    "InMemoryTaskRepository",
    # Breakdown
    "find_tasks_needing_breakdown",
    "reduced_complexity",
    "auto_reduce_parent_complexity",
]
