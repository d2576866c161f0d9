"""Models for task selection: strategies, configuration and results."""

import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from knot.core.errors import ConfigurationError
from knot.tasks.models import Task, utc_now


class Strategy(str, Enum):
    """Scoring policy used to rank candidate tasks."""

    CREATION_ORDER = "creation-order"
    DEPENDENCY_AWARE = "dependency-aware"
    DEPTH_FIRST = "depth-first"
    PRIORITY = "priority"
    CRITICAL_PATH = "critical-path"

    def __str__(self) -> str:
        return self.value


class ProjectComplexity(str, Enum):
    """Coarse size classification of a project."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class Weights(BaseModel):
    """Weights applied to raw task metrics for the weighted score."""

    model_config = ConfigDict(frozen=True)

    dependent_count: float = Field(default=0.4, ge=0.0, description="Unblocked task weight")
    priority: float = Field(default=0.3, ge=0.0, description="Priority weight")
    depth_first: float = Field(default=0.2, ge=0.0, description="Hierarchy depth weight")
    critical_path: float = Field(default=0.1, ge=0.0, description="Critical path weight")

    @property
    def total(self) -> float:
        return self.dependent_count + self.priority + self.depth_first + self.critical_path


class BehaviorConfig(BaseModel):
    """Flags controlling candidate eligibility and ordering."""

    model_config = ConfigDict(frozen=True)

    allow_parent_with_subtasks: bool = Field(
        default=False,
        description="Allow selecting tasks that still have unfinished children",
    )
    prefer_in_progress: bool = Field(
        default=True,
        description="Resume in-progress tasks before starting pending ones",
    )


class SelectionConfig(BaseModel):
    """Per-call configuration for task selection."""

    model_config = ConfigDict(frozen=True)

    strategy: Strategy = Field(default=Strategy.DEPENDENCY_AWARE)
    weights: Weights = Field(default_factory=Weights)
    behavior: BehaviorConfig = Field(default_factory=BehaviorConfig)
    max_alternatives: int = Field(default=5, ge=0, description="Alternatives to report")
    min_weighted_score: float = Field(
        default=0.0,
        ge=0.0,
        description="Candidates with a lower weighted score are skipped",
    )

    @classmethod
    def from_template(cls, name: str) -> "SelectionConfig":
        """Build a configuration from a named built-in template.

        Raises:
            ConfigurationError: If no template has that name.
        """
        try:
            template = CONFIG_TEMPLATES[name]
        except KeyError:
            available = ", ".join(sorted(CONFIG_TEMPLATES))
            raise ConfigurationError(
                f"Unknown config template {name!r} (available: {available})"
            ) from None
        return cls.model_validate(template)


CONFIG_TEMPLATES: dict[str, dict[str, Any]] = {
    "default": {},
    "priority-driven": {
        "strategy": Strategy.PRIORITY,
        "weights": {"dependent_count": 0.2, "priority": 0.6, "depth_first": 0.1, "critical_path": 0.1},
    },
    "depth-first": {
        "strategy": Strategy.DEPTH_FIRST,
        "weights": {"dependent_count": 0.2, "priority": 0.2, "depth_first": 0.5, "critical_path": 0.1},
    },
    "dependency-focused": {
        "strategy": Strategy.DEPENDENCY_AWARE,
        "weights": {"dependent_count": 0.6, "priority": 0.2, "depth_first": 0.1, "critical_path": 0.1},
    },
    "critical-path": {
        "strategy": Strategy.CRITICAL_PATH,
        "weights": {"dependent_count": 0.3, "priority": 0.1, "depth_first": 0.1, "critical_path": 0.5},
    },
    "legacy-compatible": {
        "strategy": Strategy.CREATION_ORDER,
        "behavior": {"allow_parent_with_subtasks": True, "prefer_in_progress": True},
    },
}


def load_selection_config(path: str | Path) -> SelectionConfig:
    """Load a selection configuration from a JSON file.

    Raises:
        ConfigurationError: If the file cannot be read or is invalid.
    """
    path = Path(path)
    try:
        return SelectionConfig.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read selection config {path}: {e}") from e
    except ValueError as e:
        raise ConfigurationError(f"Invalid selection config {path}: {e}") from e


def save_selection_config(config: SelectionConfig, path: str | Path) -> None:
    """Write a selection configuration as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.model_dump(mode="json"), indent=2), encoding="utf-8")


class ScoreBreakdown(BaseModel):
    """Metrics and scores computed for one candidate."""

    model_config = ConfigDict(frozen=True)

    task: Task
    unblocked_count: int = Field(default=0, description="Blocked tasks this one would unblock")
    dependent_count: int = Field(default=0, description="Direct dependents")
    critical_path_length: int = Field(default=1, description="Longest unfinished chain from here")
    hierarchy_depth: int = Field(default=0)
    priority: int = Field(default=2, description="Priority weight 1-3")
    score: float = Field(default=0.0, description="Strategy primary score")
    weighted_score: float = Field(default=0.0, description="Weights applied to raw metrics")


class SelectionResult(BaseModel):
    """Outcome of a successful selection."""

    task: Task
    strategy: Strategy
    reason: str
    breakdown: ScoreBreakdown
    alternatives: list[ScoreBreakdown] = Field(default_factory=list)
    selected_at: datetime = Field(default_factory=utc_now)
    execution_time: float = Field(default=0.0, description="Seconds spent selecting")

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "task_id": self.task.id,
            "title": self.task.title,
            "strategy": self.strategy.value,
            "reason": self.reason,
            "score": self.breakdown.score,
            "unblocked_count": self.breakdown.unblocked_count,
            "dependent_count": self.breakdown.dependent_count,
            "alternatives": [
                {"task_id": alt.task.id, "title": alt.task.title, "score": alt.score}
                for alt in self.alternatives
            ],
            "selected_at": self.selected_at.isoformat(),
            "execution_time": self.execution_time,
        }


class ProjectCharacteristics(BaseModel):
    """Shape of a project's task graph."""

    task_count: int = 0
    dependency_count: int = 0
    average_dependencies: float = 0.0
    dependency_ratio: float = Field(default=0.0, description="Share of tasks with dependencies")
    max_hierarchy_depth: int = 0
    hierarchy_ratio: float = Field(default=0.0, description="Share of tasks with a parent")
    high_priority_ratio: float = 0.0
    complexity: ProjectComplexity = ProjectComplexity.SIMPLE
