"""State transition rules for tasks and projects.

The transition tables are fixed module constants. ``validate_transition``
only enforces the table: dependency completeness is reported as a warning
by ``validate_transition_lenient`` and never blocks a state change.
"""

from collections.abc import Iterable
from types import MappingProxyType

from loguru import logger

from knot.core.errors import InvalidStateError, InvalidStateTransitionError
from knot.tasks.models import BreakdownConfig, ProjectState, Task, TaskState


TASK_TRANSITIONS = MappingProxyType({
    TaskState.PENDING: frozenset({
        TaskState.IN_PROGRESS,
        TaskState.BLOCKED,
        TaskState.CANCELLED,
        TaskState.DELETION_PENDING,
    }),
    TaskState.IN_PROGRESS: frozenset({
        TaskState.COMPLETED,
        TaskState.BLOCKED,
        TaskState.CANCELLED,
        TaskState.DELETION_PENDING,
    }),
    TaskState.BLOCKED: frozenset({
        TaskState.PENDING,
        TaskState.IN_PROGRESS,
        TaskState.CANCELLED,
        TaskState.DELETION_PENDING,
    }),
    TaskState.COMPLETED: frozenset({TaskState.DELETION_PENDING}),
    TaskState.CANCELLED: frozenset({TaskState.PENDING, TaskState.DELETION_PENDING}),
    TaskState.DELETION_PENDING: frozenset(),
})

PROJECT_TRANSITIONS = MappingProxyType({
    ProjectState.ACTIVE: frozenset({
        ProjectState.COMPLETED,
        ProjectState.ARCHIVED,
        ProjectState.DELETION_PENDING,
    }),
    ProjectState.COMPLETED: frozenset({
        ProjectState.ARCHIVED,
        ProjectState.DELETION_PENDING,
        ProjectState.ACTIVE,
    }),
    ProjectState.ARCHIVED: frozenset({ProjectState.ACTIVE, ProjectState.DELETION_PENDING}),
    ProjectState.DELETION_PENDING: frozenset(),
})

# A project without a state yet may only start out active or completed
INITIAL_PROJECT_STATES = frozenset({ProjectState.ACTIVE, ProjectState.COMPLETED})


def _sorted_values(states: Iterable[TaskState | ProjectState]) -> list[str]:
    return sorted(s.value for s in states)


class StateValidator:
    """Validates task and project state transitions."""

    def __init__(self, config: BreakdownConfig | None = None) -> None:
        self.config = config or BreakdownConfig()

    # =========================================================================
    # TASK STATES
    # =========================================================================

    def is_valid_state(self, state: str) -> bool:
        """Check whether a string names a task state."""
        return state in TaskState._value2member_map_

    def parse_state(self, state: str | TaskState) -> TaskState:
        """Convert a string to a TaskState.

        Raises:
            InvalidStateError: If the string is not a task state.
        """
        if isinstance(state, TaskState):
            return state
        if not self.is_valid_state(state):
            raise InvalidStateError(state)
        return TaskState(state)

    def validate_transition(
        self,
        from_state: str | TaskState,
        to_state: str | TaskState,
        task: Task | None = None,
    ) -> None:
        """Check a task state change against the transition table.

        Staying in the same state is always allowed.

        Args:
            from_state: Current state.
            to_state: Requested state.
            task: Task being changed, used for log context only.

        Raises:
            InvalidStateError: If either state is unknown.
            InvalidStateTransitionError: If the table forbids the change.
        """
        current = self.parse_state(from_state)
        target = self.parse_state(to_state)

        if current == target:
            return

        allowed = TASK_TRANSITIONS[current]
        if target not in allowed:
            if task is not None:
                logger.debug(f"Rejected transition for task {task.id}: {current} -> {target}")
            raise InvalidStateTransitionError(
                current.value, target.value, _sorted_values(allowed)
            )

    def validate_transition_lenient(
        self,
        from_state: str | TaskState,
        to_state: str | TaskState,
        task: Task,
        all_tasks: Iterable[Task] | None = None,
    ) -> list[str]:
        """Validate a transition and collect non-fatal warnings.

        The table is still enforced. On top of it this reports conditions
        worth a second look, formatted as ``rule: suggestion``.

        Args:
            from_state: Current state.
            to_state: Requested state.
            task: Task being changed.
            all_tasks: Tasks of the same project, needed to check
                dependency completeness.

        Returns:
            Warning strings, empty when nothing looks off.
        """
        self.validate_transition(from_state, to_state, task)
        target = self.parse_state(to_state)
        warnings: list[str] = []

        if target == TaskState.IN_PROGRESS and task.dependencies and all_tasks is not None:
            by_id = {t.id: t for t in all_tasks}
            unmet = [
                dep_id
                for dep_id in task.dependencies
                if dep_id not in by_id or by_id[dep_id].state != TaskState.COMPLETED
            ]
            if unmet:
                warnings.append(
                    "unmet_dependencies: complete "
                    f"{', '.join(unmet)} before working on this task"
                )

        if target == TaskState.BLOCKED and not task.dependencies:
            warnings.append(
                "blocked_requires_dependencies: add the dependency that blocks this task"
            )

        if (
            target == TaskState.COMPLETED
            and task.complexity >= self.config.complexity_threshold
        ):
            warnings.append(
                f"high_complexity_warning: complexity {task.complexity} task "
                "completed without breakdown; verify all work is done"
            )

        return warnings

    def get_state_transition_matrix(self) -> dict[str, list[str]]:
        """Return allowed targets for every task state."""
        return {
            state.value: _sorted_values(targets)
            for state, targets in TASK_TRANSITIONS.items()
        }

    # =========================================================================
    # PROJECT STATES
    # =========================================================================

    def is_valid_project_state(self, state: str) -> bool:
        return state in ProjectState._value2member_map_

    def validate_project_transition(
        self,
        from_state: str | ProjectState | None,
        to_state: str | ProjectState,
    ) -> None:
        """Check a project state change.

        A project with no state yet (``None`` or ``""``) may move to
        active or completed.

        Raises:
            InvalidStateError: If a state is unknown.
            InvalidStateTransitionError: If the change is not allowed.
        """
        target = self._parse_project_state(to_state)

        if from_state is None or from_state == "":
            if target not in INITIAL_PROJECT_STATES:
                raise InvalidStateTransitionError(
                    "", target.value, _sorted_values(INITIAL_PROJECT_STATES), "project"
                )
            return

        current = self._parse_project_state(from_state)
        if current == target:
            return

        allowed = PROJECT_TRANSITIONS[current]
        if target not in allowed:
            raise InvalidStateTransitionError(
                current.value, target.value, _sorted_values(allowed), "project"
            )

    def get_project_transition_matrix(self) -> dict[str, list[str]]:
        """Return allowed targets for every project state."""
        return {
            state.value: _sorted_values(targets)
            for state, targets in PROJECT_TRANSITIONS.items()
        }

    def _parse_project_state(self, state: str | ProjectState) -> ProjectState:
        if isinstance(state, ProjectState):
            return state
        if not self.is_valid_project_state(state):
            raise InvalidStateError(state)
        return ProjectState(state)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

_default_validator = StateValidator()


def is_valid_state(state: str) -> bool:
    """Check whether a string names a task state."""
    return _default_validator.is_valid_state(state)


def validate_transition(
    from_state: str | TaskState,
    to_state: str | TaskState,
    task: Task | None = None,
) -> None:
    """Validate a task state change with the default validator."""
    _default_validator.validate_transition(from_state, to_state, task)


def get_state_transition_matrix() -> dict[str, list[str]]:
    """Return allowed targets for every task state."""
    return _default_validator.get_state_transition_matrix()
