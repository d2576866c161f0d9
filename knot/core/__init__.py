"""Core infrastructure: settings, logging and errors."""

from knot.core.config import Settings, clear_settings_cache, get_settings
from knot.core.errors import (
    CircularDependencyError,
    ConfigurationError,
    DanglingDependencyError,
    DataInconsistencyError,
    DeadlockError,
    DependencyError,
    InvalidStateError,
    InvalidStateTransitionError,
    KnotError,
    NoActionableTasksError,
    NoTasksError,
    ProjectNotFoundError,
    SelectionError,
    SelectionErrorKind,
    TaskConstraintError,
    TaskNotFoundError,
)
from knot.core.logging import configure_logging

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "configure_logging",
    # Errors
    "KnotError",
    "InvalidStateError",
    "InvalidStateTransitionError",
    "TaskNotFoundError",
    "ProjectNotFoundError",
    "TaskConstraintError",
    "DependencyError",
    "ConfigurationError",
    # Selection errors
    "SelectionError",
    "SelectionErrorKind",
    "NoTasksError",
    "NoActionableTasksError",
    "DeadlockError",
    "CircularDependencyError",
    "DanglingDependencyError",
    "DataInconsistencyError",
]
