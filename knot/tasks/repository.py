"""Task and project storage.

``TaskRepository`` is the interface the manager and breakdown helpers
depend on; ``InMemoryTaskRepository`` keeps everything in dictionaries and
hands out copies so callers cannot mutate stored state by accident.
"""

from abc import ABC, abstractmethod

from loguru import logger

from knot.core.errors import ProjectNotFoundError, TaskNotFoundError
from knot.tasks.models import Project, Task, utc_now


class TaskRepository(ABC):
    """Storage interface for projects and tasks."""

    # Projects

    @abstractmethod
    def create_project(self, project: Project) -> Project:
        pass

    @abstractmethod
    def get_project(self, project_id: str) -> Project:
        """Raises ProjectNotFoundError if missing."""
        pass

    @abstractmethod
    def update_project(self, project: Project) -> Project:
        pass

    @abstractmethod
    def delete_project(self, project_id: str) -> None:
        """Delete a project and every task it owns."""
        pass

    @abstractmethod
    def list_projects(self) -> list[Project]:
        pass

    # Tasks

    @abstractmethod
    def create_task(self, task: Task) -> Task:
        pass

    @abstractmethod
    def get_task(self, task_id: str) -> Task:
        """Raises TaskNotFoundError if missing."""
        pass

    @abstractmethod
    def update_task(self, task: Task) -> Task:
        pass

    @abstractmethod
    def delete_task(self, task_id: str) -> None:
        pass

    @abstractmethod
    def list_tasks_for_project(self, project_id: str) -> list[Task]:
        pass

    def get_child_tasks(self, parent_id: str) -> list[Task]:
        """Direct subtasks of a task."""
        parent = self.get_task(parent_id)
        return [
            t for t in self.list_tasks_for_project(parent.project_id)
            if t.parent_id == parent_id
        ]

    def get_dependent_tasks(self, task_id: str) -> list[Task]:
        """Tasks that directly depend on the given task."""
        task = self.get_task(task_id)
        return [
            t for t in self.list_tasks_for_project(task.project_id)
            if task_id in t.dependencies
        ]

    def get_task_dependencies(self, task_id: str) -> list[Task]:
        """Existing tasks the given task directly depends on."""
        task = self.get_task(task_id)
        by_id = {t.id: t for t in self.list_tasks_for_project(task.project_id)}
        return [by_id[dep_id] for dep_id in task.dependencies if dep_id in by_id]


class InMemoryTaskRepository(TaskRepository):
    """Dictionary-backed repository for tests, the CLI and embedding."""

    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}
        self._tasks: dict[str, Task] = {}

    def create_project(self, project: Project) -> Project:
        self._projects[project.id] = project.model_copy(deep=True)
        logger.debug(f"Stored project {project.id}")
        return project

    def get_project(self, project_id: str) -> Project:
        try:
            return self._projects[project_id].model_copy(deep=True)
        except KeyError:
            raise ProjectNotFoundError(f"Project not found: {project_id}") from None

    def update_project(self, project: Project) -> Project:
        if project.id not in self._projects:
            raise ProjectNotFoundError(f"Project not found: {project.id}")
        project = project.model_copy(update={"updated_at": utc_now()})
        self._projects[project.id] = project
        return project.model_copy(deep=True)

    def delete_project(self, project_id: str) -> None:
        if project_id not in self._projects:
            raise ProjectNotFoundError(f"Project not found: {project_id}")
        del self._projects[project_id]
        owned = [task_id for task_id, t in self._tasks.items() if t.project_id == project_id]
        for task_id in owned:
            del self._tasks[task_id]
        logger.debug(f"Deleted project {project_id} with {len(owned)} tasks")

    def list_projects(self) -> list[Project]:
        return [p.model_copy(deep=True) for p in self._projects.values()]

    def create_task(self, task: Task) -> Task:
        if task.project_id not in self._projects:
            raise ProjectNotFoundError(f"Project not found: {task.project_id}")
        self._tasks[task.id] = task.model_copy(deep=True)
        return task

    def get_task(self, task_id: str) -> Task:
        try:
            return self._tasks[task_id].model_copy(deep=True)
        except KeyError:
            raise TaskNotFoundError(f"Task not found: {task_id}") from None

    def update_task(self, task: Task) -> Task:
        if task.id not in self._tasks:
            raise TaskNotFoundError(f"Task not found: {task.id}")
        task = task.model_copy(update={"updated_at": utc_now()})
        self._tasks[task.id] = task
        return task.model_copy(deep=True)

    def delete_task(self, task_id: str) -> None:
        if task_id not in self._tasks:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        del self._tasks[task_id]

    def list_tasks_for_project(self, project_id: str) -> list[Task]:
        return [
            t.model_copy(deep=True)
            for t in self._tasks.values()
            if t.project_id == project_id
        ]
