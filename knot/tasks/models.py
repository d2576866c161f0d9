"""Pydantic models for projects, tasks and breakdown limits."""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class TaskState(str, Enum):
    """Lifecycle state of a task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"
    DELETION_PENDING = "deletion_pending"

    def __str__(self) -> str:
        return self.value


class ProjectState(str, Enum):
    """Lifecycle state of a project."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"
    DELETION_PENDING = "deletion_pending"

    def __str__(self) -> str:
        return self.value


class TaskPriority(str, Enum):
    """Task priority, ordered low < medium < high."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def weight(self) -> int:
        """Integer weight used for scoring (low=1, medium=2, high=3)."""
        return _PRIORITY_WEIGHTS[self]

    def __str__(self) -> str:
        return self.value


_PRIORITY_WEIGHTS = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
}

# States that no longer need work
FINISHED_STATES = frozenset(
    {TaskState.COMPLETED, TaskState.CANCELLED, TaskState.DELETION_PENDING}
)


class Task(BaseModel):
    """A unit of work within a project.

    ``dependencies`` holds the ids of tasks this one waits on. Edge A -> B
    means A is not ready until B completes. ``parent_id`` is a weak
    reference used for hierarchy only; a missing parent is tolerated.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_id, description="Unique task identifier")
    project_id: str = Field(default="", description="Owning project id")
    title: str = Field(..., min_length=1, max_length=200, description="Short title")
    description: str = Field(default="", description="Detailed description")
    state: TaskState = Field(default=TaskState.PENDING, description="Lifecycle state")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Priority")
    complexity: int = Field(default=5, ge=1, le=10, description="Complexity 1-10")
    depth: int = Field(default=0, ge=0, description="Hierarchy depth, 0 for roots")
    parent_id: str | None = Field(default=None, description="Parent task id")
    dependencies: list[str] = Field(
        default_factory=list,
        description="IDs of tasks this task depends on",
    )
    assigned_agent: str | None = Field(default=None, description="Assigned agent")
    estimate: int | None = Field(default=None, ge=0, description="Estimate in minutes")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = Field(default=None)

    @field_validator("dependencies")
    @classmethod
    def dedupe_dependencies(cls, v: list[str]) -> list[str]:
        """Drop duplicate dependency ids, keeping first occurrence order."""
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def check_self_dependency(self) -> "Task":
        if self.id in self.dependencies:
            raise ValueError(f"Task {self.id} cannot depend on itself")
        return self

    @property
    def is_finished(self) -> bool:
        return self.state in FINISHED_STATES


class Project(BaseModel):
    """A container owning a set of tasks."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_id, description="Unique project identifier")
    title: str = Field(..., min_length=1, max_length=200, description="Project title")
    description: str = Field(default="", description="Project description")
    state: ProjectState = Field(default=ProjectState.ACTIVE, description="State")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class BreakdownConfig(BaseModel):
    """Limits for task creation and complexity breakdown."""

    model_config = ConfigDict(frozen=True)

    complexity_threshold: int = Field(default=8, ge=1, le=10)
    max_depth: int = Field(default=5, ge=0)
    max_tasks_per_depth: int = Field(default=100, ge=1)
    max_description_length: int = Field(default=2000, ge=1)
    auto_reduce_complexity: bool = Field(default=True)
