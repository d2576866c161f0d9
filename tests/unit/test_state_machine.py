"""Unit tests for task and project state transitions."""

import pytest

from knot.core.errors import InvalidStateError, InvalidStateTransitionError
from knot.tasks.models import BreakdownConfig, ProjectState, TaskState
from knot.tasks.state_machine import (
    TASK_TRANSITIONS,
    StateValidator,
    get_state_transition_matrix,
    is_valid_state,
    validate_transition,
)


class TestTaskTransitions:
    """Tests for the task transition table."""

    @pytest.mark.parametrize("state", list(TaskState))
    def test_same_state_always_allowed(self, state: TaskState) -> None:
        """Test that staying in a state is idempotent, even when terminal."""
        validate_transition(state, state)

    def test_allowed_transitions(self) -> None:
        """Test a few transitions from the table."""
        validator = StateValidator()

        validator.validate_transition("pending", "in_progress")
        validator.validate_transition(TaskState.IN_PROGRESS, TaskState.COMPLETED)
        validator.validate_transition(TaskState.BLOCKED, TaskState.PENDING)
        validator.validate_transition(TaskState.CANCELLED, TaskState.PENDING)
        validator.validate_transition(TaskState.COMPLETED, TaskState.DELETION_PENDING)

    def test_every_pair_outside_table_rejected(self) -> None:
        """Test that the matrix and validate_transition agree on all pairs."""
        matrix = get_state_transition_matrix()

        for current in TaskState:
            for target in TaskState:
                if current == target:
                    continue
                if target.value in matrix[current.value]:
                    validate_transition(current, target)
                else:
                    with pytest.raises(InvalidStateTransitionError):
                        validate_transition(current, target)

    def test_pending_cannot_complete_directly(self) -> None:
        """Test that pending -> completed is rejected with both states named."""
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            validate_transition(TaskState.PENDING, TaskState.COMPLETED)

        assert exc_info.value.from_state == "pending"
        assert exc_info.value.to_state == "completed"
        assert "in_progress" in exc_info.value.valid_targets

    def test_deletion_pending_is_terminal(self) -> None:
        """Test that nothing leaves deletion_pending."""
        assert get_state_transition_matrix()["deletion_pending"] == []

        with pytest.raises(InvalidStateTransitionError, match="terminal"):
            validate_transition(TaskState.DELETION_PENDING, TaskState.PENDING)

    def test_unknown_state(self) -> None:
        """Test that unknown state strings raise InvalidStateError."""
        assert not is_valid_state("done")
        assert is_valid_state("blocked")

        with pytest.raises(InvalidStateError):
            validate_transition("pending", "done")

    def test_table_is_immutable(self) -> None:
        """Test that the module table cannot be modified."""
        with pytest.raises(TypeError):
            TASK_TRANSITIONS[TaskState.PENDING] = frozenset()  # type: ignore[index]


class TestLenientValidation:
    """Tests for warnings from validate_transition_lenient."""

    def test_unmet_dependencies_warn_but_allow(self, sample_tasks: list) -> None:
        """Test that starting a task with unfinished dependencies only warns."""
        frontend = next(t for t in sample_tasks if t.id == "frontend")

        warnings = StateValidator().validate_transition_lenient(
            TaskState.PENDING, TaskState.IN_PROGRESS, frontend, sample_tasks
        )

        assert len(warnings) == 1
        assert warnings[0].startswith("unmet_dependencies:")
        assert "api" in warnings[0]

    def test_met_dependencies_no_warning(self, sample_tasks: list) -> None:
        """Test that a task whose dependencies are complete gets no warning."""
        models = next(t for t in sample_tasks if t.id == "models")

        warnings = StateValidator().validate_transition_lenient(
            TaskState.PENDING, TaskState.IN_PROGRESS, models, sample_tasks
        )

        assert warnings == []

    def test_blocked_without_dependencies(self, make_task) -> None:
        """Test the warning for blocking a task that has no dependencies."""
        task = make_task("solo")

        warnings = StateValidator().validate_transition_lenient(
            TaskState.PENDING, TaskState.BLOCKED, task
        )

        assert any(w.startswith("blocked_requires_dependencies") for w in warnings)

    def test_high_complexity_completion(self, make_task) -> None:
        """Test the warning for completing a task above the threshold."""
        task = make_task("big", state=TaskState.IN_PROGRESS, complexity=9)
        validator = StateValidator(BreakdownConfig(complexity_threshold=8))

        warnings = validator.validate_transition_lenient(
            TaskState.IN_PROGRESS, TaskState.COMPLETED, task
        )

        assert any(w.startswith("high_complexity_warning") for w in warnings)

    def test_lenient_still_enforces_table(self, make_task) -> None:
        """Test that lenient validation rejects illegal transitions."""
        with pytest.raises(InvalidStateTransitionError):
            StateValidator().validate_transition_lenient(
                TaskState.COMPLETED, TaskState.PENDING, make_task("x")
            )


class TestProjectTransitions:
    """Tests for project state transitions."""

    def test_initial_state(self) -> None:
        """Test that a project without state may become active or completed."""
        validator = StateValidator()

        validator.validate_project_transition(None, ProjectState.ACTIVE)
        validator.validate_project_transition("", ProjectState.COMPLETED)

        with pytest.raises(InvalidStateTransitionError):
            validator.validate_project_transition(None, ProjectState.ARCHIVED)

    def test_archive_and_reactivate(self) -> None:
        """Test active -> archived -> active."""
        validator = StateValidator()

        validator.validate_project_transition(ProjectState.ACTIVE, ProjectState.ARCHIVED)
        validator.validate_project_transition(ProjectState.ARCHIVED, ProjectState.ACTIVE)

    def test_deletion_pending_is_terminal(self) -> None:
        """Test that a project pending deletion cannot be reactivated."""
        with pytest.raises(InvalidStateTransitionError):
            StateValidator().validate_project_transition(
                ProjectState.DELETION_PENDING, ProjectState.ACTIVE
            )

    def test_project_matrix(self) -> None:
        """Test the exposed project matrix."""
        matrix = StateValidator().get_project_transition_matrix()

        assert matrix["active"] == ["archived", "completed", "deletion_pending"]
        assert matrix["deletion_pending"] == []
