"""Task manager - the write side of Knot.

Wraps a ``TaskRepository`` with the rules that apply when data changes:
input limits, depth bookkeeping, validated state transitions, dependency
edges that may not create cycles, and parent complexity reduction.
Selection and recommendation read the project snapshot from here.
"""

from loguru import logger

from knot.core.errors import DependencyError, TaskConstraintError
from knot.selection.analyzer import analyze_project_and_recommend_strategy
from knot.selection.graph import DependencyAnalyzer
from knot.selection.models import SelectionConfig, SelectionResult, Strategy
from knot.selection.selector import TaskSelector
from knot.tasks.breakdown import auto_reduce_parent_complexity, find_tasks_needing_breakdown
from knot.tasks.models import (
    BreakdownConfig,
    Project,
    ProjectState,
    Task,
    TaskPriority,
    TaskState,
    utc_now,
)
from knot.tasks.repository import InMemoryTaskRepository, TaskRepository
from knot.tasks.state_machine import StateValidator

MAX_TITLE_LENGTH = 200


class TaskManager:
    """
    Create and change projects and tasks under Knot's rules.

    Example:
        >>> manager = TaskManager()
        >>> project = manager.create_project("Website")
        >>> task = manager.create_task(project.id, "Design landing page", complexity=9)
        >>> manager.update_task_state(task.id, TaskState.IN_PROGRESS)
    """

    def __init__(
        self,
        repository: TaskRepository | None = None,
        config: BreakdownConfig | None = None,
    ) -> None:
        self.repository = repository or InMemoryTaskRepository()
        self.config = config or BreakdownConfig()
        self.validator = StateValidator(self.config)

    # =========================================================================
    # PROJECTS
    # =========================================================================

    def create_project(self, title: str, description: str = "") -> Project:
        """Create an active project."""
        self.validator.validate_project_transition(None, ProjectState.ACTIVE)
        project = self.repository.create_project(
            Project(title=title, description=description)
        )
        logger.info(f"Created project {project.id}: {title}")
        return project

    def update_project_state(self, project_id: str, state: ProjectState | str) -> Project:
        """Move a project to a new state.

        Raises:
            InvalidStateTransitionError: If the change is not allowed.
        """
        project = self.repository.get_project(project_id)
        self.validator.validate_project_transition(project.state, state)
        return self.repository.update_project(
            project.model_copy(update={"state": ProjectState(state)})
        )

    def delete_project(self, project_id: str) -> None:
        self.repository.delete_project(project_id)

    # =========================================================================
    # TASKS
    # =========================================================================

    def create_task(
        self,
        project_id: str,
        title: str,
        description: str = "",
        complexity: int = 5,
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        parent_id: str | None = None,
        dependencies: list[str] | None = None,
    ) -> Task:
        """
        Create a task, computing its depth from the parent.

        When the parent is at or above the complexity threshold its
        complexity is reduced afterwards. A failed reduction is logged and
        does not undo the new task.

        Raises:
            ProjectNotFoundError: If the project does not exist.
            TaskNotFoundError: If the parent or a dependency does not exist.
            TaskConstraintError: If an input or hierarchy limit is exceeded.
            DependencyError: If a dependency belongs to another project.
        """
        self._validate_task_input(title, description, complexity)
        self.repository.get_project(project_id)

        depth = 0
        if parent_id is not None:
            parent = self.repository.get_task(parent_id)
            if parent.project_id != project_id:
                raise TaskConstraintError(
                    f"Parent task {parent_id} belongs to another project"
                )
            depth = parent.depth + 1

        if depth > self.config.max_depth:
            raise TaskConstraintError(
                f"Task depth {depth} exceeds the maximum of {self.config.max_depth}"
            )

        siblings_at_depth = sum(
            1 for t in self.repository.list_tasks_for_project(project_id) if t.depth == depth
        )
        if siblings_at_depth >= self.config.max_tasks_per_depth:
            raise TaskConstraintError(
                f"Project already has {siblings_at_depth} tasks at depth {depth} "
                f"(max {self.config.max_tasks_per_depth})"
            )

        for dep_id in dependencies or []:
            if self.repository.get_task(dep_id).project_id != project_id:
                raise DependencyError("Dependencies must stay within one project")

        task = self.repository.create_task(
            Task(
                project_id=project_id,
                title=title,
                description=description,
                complexity=complexity,
                priority=TaskPriority(priority),
                parent_id=parent_id,
                depth=depth,
                dependencies=dependencies or [],
            )
        )
        logger.info(f"Created task {task.id} at depth {depth}: {title}")

        if parent_id is not None:
            try:
                auto_reduce_parent_complexity(parent_id, self.repository, self.config)
            except Exception as e:
                logger.warning(f"Could not reduce complexity of parent {parent_id}: {e}")

        return task

    def get_task(self, task_id: str) -> Task:
        return self.repository.get_task(task_id)

    def list_tasks(self, project_id: str) -> list[Task]:
        return self.repository.list_tasks_for_project(project_id)

    def update_task_state(self, task_id: str, state: TaskState | str) -> Task:
        """
        Apply a validated state change.

        Entering completed stamps ``completed_at``; leaving it clears the
        stamp. Non-fatal warnings are logged.

        Raises:
            TaskNotFoundError: If the task does not exist.
            InvalidStateError: If the state is unknown.
            InvalidStateTransitionError: If the change is not allowed.
        """
        task = self.repository.get_task(task_id)
        target = self.validator.parse_state(state)
        warnings = self.validator.validate_transition_lenient(
            task.state,
            target,
            task,
            self.repository.list_tasks_for_project(task.project_id),
        )
        for warning in warnings:
            logger.warning(f"Task {task_id}: {warning}")

        update: dict = {"state": target}
        if target == TaskState.COMPLETED and task.state != TaskState.COMPLETED:
            update["completed_at"] = utc_now()
        elif target != TaskState.COMPLETED:
            update["completed_at"] = None

        updated = self.repository.update_task(task.model_copy(update=update))
        logger.info(f"Task {task_id}: {task.state.value} -> {target.value}")
        return updated

    # =========================================================================
    # DEPENDENCIES
    # =========================================================================

    def add_task_dependency(self, task_id: str, depends_on_id: str) -> Task:
        """
        Make ``task_id`` wait on ``depends_on_id``.

        Adding an existing edge is a no-op.

        Raises:
            TaskNotFoundError: If either task does not exist.
            DependencyError: If the edge is a self-loop, crosses projects,
                or would close a cycle.
        """
        if task_id == depends_on_id:
            raise DependencyError(f"Task {task_id} cannot depend on itself")

        task = self.repository.get_task(task_id)
        target = self.repository.get_task(depends_on_id)
        if task.project_id != target.project_id:
            raise DependencyError("Dependencies must stay within one project")
        if depends_on_id in task.dependencies:
            return task

        analyzer = DependencyAnalyzer(self.repository.list_tasks_for_project(task.project_id))
        if task_id in analyzer.transitive_dependencies(depends_on_id):
            raise DependencyError(
                f"Adding {task_id} -> {depends_on_id} would create a dependency cycle"
            )

        updated = self.repository.update_task(
            task.model_copy(update={"dependencies": [*task.dependencies, depends_on_id]})
        )
        logger.debug(f"Added dependency {task_id} -> {depends_on_id}")
        return updated

    def remove_task_dependency(self, task_id: str, depends_on_id: str) -> Task:
        """Drop a dependency edge; missing edges are ignored."""
        task = self.repository.get_task(task_id)
        if depends_on_id not in task.dependencies:
            return task
        return self.repository.update_task(
            task.model_copy(
                update={"dependencies": [d for d in task.dependencies if d != depends_on_id]}
            )
        )

    def get_dependent_tasks(self, task_id: str) -> list[Task]:
        return self.repository.get_dependent_tasks(task_id)

    def get_task_dependencies(self, task_id: str) -> list[Task]:
        return self.repository.get_task_dependencies(task_id)

    # =========================================================================
    # READ-SIDE SHORTCUTS
    # =========================================================================

    def select_next_task(
        self,
        project_id: str,
        config: SelectionConfig | None = None,
    ) -> SelectionResult:
        """Select the next task of a project.

        Without a config the strategy is recommended from the project shape.
        """
        tasks = self.repository.list_tasks_for_project(project_id)
        if config is None:
            strategy, _ = analyze_project_and_recommend_strategy(tasks)
            config = SelectionConfig(strategy=strategy)
        return TaskSelector(config).select_next_actionable_task(tasks)

    def recommend_strategy(self, project_id: str) -> tuple[Strategy, str]:
        return analyze_project_and_recommend_strategy(
            self.repository.list_tasks_for_project(project_id)
        )

    def find_tasks_needing_breakdown(self, project_id: str) -> list[Task]:
        return find_tasks_needing_breakdown(
            self.repository.list_tasks_for_project(project_id), self.config
        )

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def _validate_task_input(self, title: str, description: str, complexity: int) -> None:
        if not title.strip():
            raise TaskConstraintError("Task title must not be empty")
        if len(title) > MAX_TITLE_LENGTH:
            raise TaskConstraintError(
                f"Task title exceeds {MAX_TITLE_LENGTH} characters"
            )
        if len(description) > self.config.max_description_length:
            raise TaskConstraintError(
                f"Task description exceeds {self.config.max_description_length} characters"
            )
        if not 1 <= complexity <= 10:
            raise TaskConstraintError(f"Complexity must be between 1 and 10, got {complexity}")
