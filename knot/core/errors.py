"""Exception hierarchy for Knot.

Selection failures are ordinary, caller-recoverable outcomes: each one
carries a ``kind`` plus the task ids and cycles that explain it, so a
caller can render a diagnosis instead of a traceback.
"""

from enum import Enum


# =============================================================================
# BASE EXCEPTIONS
# =============================================================================


class KnotError(Exception):
    """Base exception for Knot errors."""

    pass


class InvalidStateError(KnotError):
    """A state string is not a known task or project state."""

    def __init__(self, state: str) -> None:
        self.state = state
        super().__init__(f"Invalid state: {state!r}")


class InvalidStateTransitionError(KnotError):
    """A state change is not allowed by the transition table."""

    def __init__(
        self,
        from_state: str,
        to_state: str,
        valid_targets: list[str] | None = None,
        subject: str = "task",
    ) -> None:
        self.from_state = from_state
        self.to_state = to_state
        self.valid_targets = valid_targets or []
        message = f"Invalid {subject} state transition: {from_state} -> {to_state}"
        if self.valid_targets:
            message += f" (allowed: {', '.join(self.valid_targets)})"
        else:
            message += f" ({from_state} is terminal)"
        super().__init__(message)


class TaskNotFoundError(KnotError):
    """Referenced task does not exist."""

    pass


class ProjectNotFoundError(KnotError):
    """Referenced project does not exist."""

    pass


class TaskConstraintError(KnotError):
    """Task input violates a depth, count or length limit."""

    pass


class DependencyError(KnotError):
    """A dependency edge was rejected (self-loop, cycle or unknown task)."""

    pass


class ConfigurationError(KnotError):
    """Selection configuration is invalid."""

    pass


# =============================================================================
# SELECTION ERRORS
# =============================================================================


class SelectionErrorKind(str, Enum):
    """Why no task could be selected."""

    NO_TASKS = "no_tasks"
    NO_ACTIONABLE = "no_actionable"
    DEADLOCK = "deadlock"
    CIRCULAR_DEPENDENCY = "circular_dependency"
    DANGLING_DEPENDENCY = "dangling_dependency"
    DATA_INCONSISTENCY = "data_inconsistency"


class SelectionError(KnotError):
    """No task could be selected from the snapshot."""

    kind: SelectionErrorKind = SelectionErrorKind.NO_ACTIONABLE
    default_suggestions: tuple[str, ...] = ()

    def __init__(
        self,
        message: str,
        task_ids: list[str] | None = None,
        cycles: list[list[str]] | None = None,
        suggestions: list[str] | None = None,
    ) -> None:
        self.message = message
        self.task_ids = task_ids or []
        self.cycles = cycles or []
        self.suggestions = (
            suggestions if suggestions is not None else list(self.default_suggestions)
        )
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "task_ids": self.task_ids,
            "cycles": self.cycles,
            "suggestions": self.suggestions,
        }


class NoTasksError(SelectionError):
    """There are no pending or in-progress tasks."""

    kind = SelectionErrorKind.NO_TASKS
    default_suggestions = (
        "Create new tasks to continue the project",
        "Reopen cancelled tasks if work should resume",
    )


class NoActionableTasksError(SelectionError):
    """Tasks have met dependencies but every one was filtered out."""

    kind = SelectionErrorKind.NO_ACTIONABLE
    default_suggestions = (
        "Finish the subtasks of parent tasks first",
        "Allow parents with subtasks in the selection behavior",
    )


class DeadlockError(SelectionError):
    """Every remaining task waits on an unfinished dependency."""

    kind = SelectionErrorKind.DEADLOCK
    default_suggestions = (
        "Complete or cancel the tasks that others depend on",
        "Remove dependencies that are no longer needed",
    )


class CircularDependencyError(SelectionError):
    """Unfinished tasks depend on each other in a loop."""

    kind = SelectionErrorKind.CIRCULAR_DEPENDENCY
    default_suggestions = (
        "Remove one dependency edge from each reported cycle",
    )


class DanglingDependencyError(SelectionError):
    """Blocked tasks depend on task ids that do not exist."""

    kind = SelectionErrorKind.DANGLING_DEPENDENCY
    default_suggestions = (
        "Remove dependencies on deleted tasks",
        "Run 'knot validate' to list every missing reference",
    )


class DataInconsistencyError(SelectionError):
    """In-progress tasks exist but none of them is eligible."""

    kind = SelectionErrorKind.DATA_INCONSISTENCY
    default_suggestions = (
        "Move in-progress tasks with unmet dependencies back to blocked",
        "Complete the dependencies of the in-progress tasks",
    )
