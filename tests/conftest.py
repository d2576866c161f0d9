"""Pytest configuration and shared fixtures."""

import itertools
import json
import os
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Set test environment
os.environ.setdefault("KNOT_LOG_LEVEL", "WARNING")

BASE_TIME = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_settings() -> Generator:
    """Clear cached settings around a test."""
    from knot.core.config import clear_settings_cache

    clear_settings_cache()

    yield

    clear_settings_cache()


@pytest.fixture
def make_task() -> Callable:
    """Provide a factory for tasks with increasing creation times.

    Each call creates a task one minute after the previous one unless
    ``created_offset`` (minutes after BASE_TIME) is given.
    """
    from knot.tasks.models import Task, TaskPriority, TaskState

    counter = itertools.count()

    def _make(
        task_id: str,
        state: TaskState = TaskState.PENDING,
        priority: TaskPriority = TaskPriority.MEDIUM,
        dependencies: list[str] | None = None,
        parent_id: str | None = None,
        depth: int = 0,
        complexity: int = 5,
        created_offset: int | None = None,
    ) -> Task:
        offset = next(counter) if created_offset is None else created_offset
        return Task(
            id=task_id,
            project_id="proj-1",
            title=f"Task {task_id}",
            state=state,
            priority=priority,
            dependencies=dependencies or [],
            parent_id=parent_id,
            depth=depth,
            complexity=complexity,
            created_at=BASE_TIME + timedelta(minutes=offset),
        )

    return _make


@pytest.fixture
def sample_tasks(make_task: Callable) -> list:
    """Provide a small web-app plan with a dependency chain.

    setup (completed) <- models <- api <- frontend, plus an independent docs
    task and a high-priority tests task that waits on api.
    """
    from knot.tasks.models import TaskPriority, TaskState

    return [
        make_task("setup", state=TaskState.COMPLETED),
        make_task("models", dependencies=["setup"]),
        make_task("api", dependencies=["models"], complexity=8),
        make_task("frontend", dependencies=["api"]),
        make_task("docs", priority=TaskPriority.LOW),
        make_task("tests", priority=TaskPriority.HIGH, dependencies=["api"]),
    ]


@pytest.fixture
def cyclic_tasks(make_task: Callable) -> list:
    """Provide A <-> B plus an independent C that is already completed."""
    from knot.tasks.models import TaskState

    return [
        make_task("a", dependencies=["b"]),
        make_task("b", dependencies=["a"]),
        make_task("c", state=TaskState.COMPLETED),
    ]


@pytest.fixture
def manager():
    """Provide a task manager over an empty in-memory repository."""
    from knot.tasks.manager import TaskManager

    return TaskManager()


@pytest.fixture
def write_tasks(tmp_path: Path) -> Callable:
    """Provide a helper that writes tasks to a JSON snapshot file."""

    def _write(tasks: list, name: str = "tasks.json") -> Path:
        path = tmp_path / name
        path.write_text(
            json.dumps([t.model_dump(mode="json") for t in tasks], indent=2),
            encoding="utf-8",
        )
        return path

    return _write


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
