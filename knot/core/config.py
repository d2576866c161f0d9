"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from typing import TYPE_CHECKING, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from knot.selection.models import SelectionConfig
    from knot.tasks.models import BreakdownConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    knot_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    knot_debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    knot_log_file: str | None = Field(
        default=None,
        description="Optional path of a rotating log file",
    )

    # Selection
    knot_strategy: str | None = Field(
        default=None,
        description="Preferred selection strategy; unset means recommend per project",
    )
    knot_allow_parent_with_subtasks: bool = Field(
        default=False,
        description="Allow selecting tasks that still have unfinished children",
    )
    knot_prefer_in_progress: bool = Field(
        default=True,
        description="Resume in-progress work before starting pending tasks",
    )
    knot_max_alternatives: int = Field(
        default=5,
        ge=0,
        le=50,
        description="Maximum number of alternatives reported with a selection",
    )

    # Breakdown
    knot_complexity_threshold: int = Field(
        default=8,
        ge=1,
        le=10,
        description="Complexity at which a task is recommended for breakdown",
    )
    knot_max_depth: int = Field(
        default=5,
        ge=0,
        description="Maximum hierarchy depth for new tasks",
    )
    knot_max_tasks_per_depth: int = Field(
        default=100,
        ge=1,
        description="Maximum number of tasks per depth level within a project",
    )
    knot_max_description_length: int = Field(
        default=2000,
        ge=1,
        description="Maximum task description length",
    )
    knot_auto_reduce_complexity: bool = Field(
        default=True,
        description="Lower parent complexity automatically as children are added",
    )

    def selection_config(self) -> "SelectionConfig":
        """Build a selection config from these settings.

        Unknown strategy names fall back to the default with a warning.
        """
        from knot.selection.models import BehaviorConfig, SelectionConfig, Strategy
        from knot.selection.strategies import resolve_strategy

        return SelectionConfig(
            strategy=resolve_strategy(self.knot_strategy, Strategy.DEPENDENCY_AWARE),
            behavior=BehaviorConfig(
                allow_parent_with_subtasks=self.knot_allow_parent_with_subtasks,
                prefer_in_progress=self.knot_prefer_in_progress,
            ),
            max_alternatives=self.knot_max_alternatives,
        )

    def breakdown_config(self) -> "BreakdownConfig":
        """Build a breakdown config from these settings."""
        from knot.tasks.models import BreakdownConfig

        return BreakdownConfig(
            complexity_threshold=self.knot_complexity_threshold,
            max_depth=self.knot_max_depth,
            max_tasks_per_depth=self.knot_max_tasks_per_depth,
            max_description_length=self.knot_max_description_length,
            auto_reduce_complexity=self.knot_auto_reduce_complexity,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
